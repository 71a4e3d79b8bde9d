"""Commands loading a ledger file: entries, check and templates."""

import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from billig.config import get_default_file
from billig.domain.entries import format_money
from billig.errors import BilligError
from billig.load import Program, load_file

console = Console()


def print_error(err: BilligError) -> None:
    """Print a loading error with its location, hints and chain."""
    console.print(f"[red]{err.kind} error: {escape(err.message)}[/red]", style="bold", soft_wrap=True)
    if err.location is not None:
        console.print(f"  [dim]-->[/dim] {escape(str(err.location))}", soft_wrap=True)
    for hint in err.hints:
        console.print(f"  [yellow]hint:[/yellow] {escape(hint)}", soft_wrap=True)
    for site in reversed(err.chain):
        console.print(f"  [dim]from {escape(str(site))}[/dim]", soft_wrap=True)


def resolve_file(file: str | None) -> Path:
    """Pick the file given on the command line, else the configured default."""
    if file:
        return Path(file).expanduser()

    default_file = get_default_file()
    if default_file is None:
        console.print("[red]No file given and no default_file configured[/red]", style="bold")
        console.print("[dim]Pass a FILE argument or set default_file in the config ('billig init')[/dim]")
        sys.exit(1)
    return default_file


def load_or_exit(file: str | None) -> Program:
    """Load the ledger, exiting with status 1 on the first error."""
    path = resolve_file(file)
    try:
        return load_file(path)
    except BilligError as err:
        print_error(err)
        sys.exit(1)


def entries_command(file: str | None = None) -> None:
    """Print resolved entries in source order."""
    program = load_or_exit(file)

    if not program.entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title=f"Entries ({len(program.entries)})")
    table.add_column("Range", style="cyan")
    table.add_column("Days", justify="right", style="dim")
    table.add_column("Value", justify="right")
    table.add_column("Category", style="magenta")
    table.add_column("Tag", style="white")

    for entry in program.entries:
        amount = format_money(entry.value)
        if entry.value < 0:
            value_display = f"[red]{amount}[/red]"
        else:
            value_display = f"[green]+{amount}[/green]"
        table.add_row(
            escape(str(entry.range)),
            str(entry.range.days),
            value_display,
            entry.category,
            escape(entry.tag),
        )

    console.print(table)


def check_command(file: str | None = None) -> None:
    """Validate a ledger and report what it contains."""
    program = load_or_exit(file)

    console.print("[green]✓[/green] Ledger is valid")
    console.print(f"[dim]Files: {len(program.files)}[/dim]")
    console.print(f"[dim]Templates: {len(program.templates)}[/dim]")
    console.print(f"[dim]Entries: {len(program.entries)}[/dim]")


def templates_command(file: str | None = None) -> None:
    """List the templates visible from the root file."""
    program = load_or_exit(file)

    if not program.templates:
        console.print("[yellow]No templates found[/yellow]")
        return

    table = Table(title=f"Templates ({len(program.templates)})")
    table.add_column("Signature", style="cyan")
    table.add_column("Defined at", style="dim")

    for name in sorted(program.templates):
        defn = program.templates[name]
        if defn.location is not None and defn.location.path is not None:
            location = f"{Path(defn.location.path).name}:{defn.location.line}"
        else:
            location = "-"
        table.add_row(escape(defn.signature()), escape(location))

    console.print(table)
