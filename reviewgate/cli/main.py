"""reviewgate CLI - Main entry point."""

import typer

from reviewgate.cli.commands import confirm, review
from reviewgate.cli.groups import config

app = typer.Typer(
    name="reviewgate",
    help="Review skill, command and MCP server changes before they merge",
    add_completion=False,
    no_args_is_help=True,
)

app.command()(review)
app.command()(confirm)

app.add_typer(config.app, name="config")


def _version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from reviewgate import __version__
        from reviewgate.cli.utils.console import get_console
        get_console().print(f"[bold]reviewgate[/bold] version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Change review gate for skills, commands and MCP servers."""
    pass


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
