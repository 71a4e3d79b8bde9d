"""CLI entry point for billig."""

import typer

from billig.commands.admin import init_command
from billig.commands.ledger import check_command, entries_command, templates_command
from billig.config import get_log_json
from billig.log import configure_logging

app = typer.Typer(
    name="billig",
    help="billig - plain-text budgeting with templates, spans and imports",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging on stderr"),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON lines"),
) -> None:
    """billig - plain-text budgeting with templates, spans and imports."""
    configure_logging(verbose=verbose, log_json=log_json or get_log_json())


@app.command()
def entries(
    file: str = typer.Argument(None, help="Root ledger file (default: default_file from config)"),
) -> None:
    """Show the resolved entries of a ledger."""
    entries_command(file)


@app.command()
def check(
    file: str = typer.Argument(None, help="Root ledger file (default: default_file from config)"),
) -> None:
    """Validate a ledger and its imports."""
    check_command(file)


@app.command()
def templates(
    file: str = typer.Argument(None, help="Root ledger file (default: default_file from config)"),
) -> None:
    """List the templates visible from a ledger."""
    templates_command(file)


@app.command(name="init")
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
    default_file: str = typer.Option(None, "--default-file", help="Ledger loaded when no FILE is given"),
) -> None:
    """Initialize billig configuration."""
    init_command(force, default_file)


if __name__ == "__main__":
    app()
