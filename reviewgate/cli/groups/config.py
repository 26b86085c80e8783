"""Config command group for the reviewgate CLI."""

import typer
import yaml
from pathlib import Path
from typing import Optional

from rich.markup import escape

from reviewgate.cli.utils.console import get_console, print_error, print_success, print_warning
from reviewgate.cli.utils.decorators import EXIT_ERROR, handle_errors

app = typer.Typer(help="Configuration management")


@app.command("init")
@handle_errors
def config_init(
    path: str = typer.Option(".", "--path", "-p", help="Repository path"),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Base ref for diffs"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a default .reviewgate/config.yaml."""
    from reviewgate.utils.config import Config, initialize_project

    project_path = Path(path).resolve()
    existing = Config.load_or_default(project_path)
    if existing.config_file.exists() and not force:
        print_warning(f"Config already exists: {existing.config_file}")
        get_console().print("  Use [cyan]--force[/cyan] to overwrite")
        raise typer.Exit(1)

    config = initialize_project(project_path, base_ref=base)
    print_success(f"Wrote {config.config_file}")


@app.command("show")
@handle_errors
def config_show(
    path: str = typer.Option(".", "--path", "-p", help="Repository path"),
) -> None:
    """Print the effective configuration."""
    from reviewgate.utils.config import Config

    console = get_console()
    project_path = Path(path).resolve()
    config = Config.load_or_default(project_path)

    try:
        config.validate()
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(EXIT_ERROR)

    source = config.config_file if config.config_file.exists() else "built-in defaults"
    console.print(f"[dim]# {escape(str(source))}[/dim]")
    console.print(escape(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False)))
