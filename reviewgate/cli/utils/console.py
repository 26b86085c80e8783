"""Console helpers shared by all CLI commands."""

from typing import Optional

from rich.console import Console
from rich.markup import escape

_console: Optional[Console] = None
_err_console: Optional[Console] = None


def get_console() -> Console:
    """Console for regular output (stdout)."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_err_console() -> Console:
    """Console for messages that must not mix with machine-readable stdout."""
    global _err_console
    if _err_console is None:
        _err_console = Console(stderr=True)
    return _err_console


def print_error(message: str, console: Optional[Console] = None) -> None:
    (console or get_console()).print(f"[red]✗ {escape(message)}[/red]")


def print_warning(message: str, console: Optional[Console] = None) -> None:
    (console or get_console()).print(f"[yellow]⚠ {escape(message)}[/yellow]")


def print_success(message: str, console: Optional[Console] = None) -> None:
    (console or get_console()).print(f"[green]✓ {escape(message)}[/green]")
