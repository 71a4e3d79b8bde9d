"""Admin commands for initializing configuration."""

import sys
from pathlib import Path

from rich.console import Console

from billig.config import create_default_config, get_config_path, load_config, save_config

console = Console()


def init_command(force: bool = False, default_file: str | None = None) -> None:
    """Create the configuration file."""
    config_path = get_config_path()

    # Guard: refuse to overwrite without force flag
    if config_path.exists() and not force:
        console.print("[red]Initialization failed:[/red]", style="bold")
        console.print(f"  Config already exists: {config_path}")
        console.print("\n[yellow]Use 'billig init --force' to overwrite[/yellow]")
        sys.exit(1)

    try:
        console.print(f"[cyan]Creating config file at {config_path}...[/cyan]")
        create_default_config(config_path)

        if default_file:
            config = load_config(config_path)
            config["default_file"] = str(Path(default_file).expanduser().resolve())
            save_config(config, config_path)

        console.print("[green]✓[/green] Config file created (permissions: 600)")
    except OSError as e:
        console.print(f"[red]Filesystem error: {e}[/red]", style="bold")
        sys.exit(1)

    console.print("\n[green]Initialization complete![/green]", style="bold")
    console.print(f"[dim]Config: {config_path}[/dim]")
    if default_file:
        console.print(f"[dim]Default file: {config['default_file']}[/dim]")
