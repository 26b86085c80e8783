"""Confirm command: record a compression decision."""

from pathlib import Path

import typer

from reviewgate.cli.utils.console import print_success, print_warning
from reviewgate.cli.utils.decorators import handle_errors


@handle_errors
def confirm(
    file: str = typer.Argument(..., help="Repository-relative file to decide on"),
    decline: bool = typer.Option(
        False,
        "--decline",
        help="Record 'no' instead of 'yes'",
    ),
    path: str = typer.Option(".", "--path", "-p", help="Repository path"),
) -> None:
    """Approve (or decline) compression of a file flagged by a review.

    Nothing is compressed here; the next 'reviewgate review
    --apply-confirmed' acts on the recorded decision.
    """
    from reviewgate.review.categorizer import normalize_path
    from reviewgate.review.compression import ConfirmationStore

    project_path = Path(path).resolve()
    target = normalize_path(file)

    if not (project_path / target).is_file():
        print_warning(f"{target} does not exist yet; recording the decision anyway")

    store = ConfirmationStore.for_project(project_path)
    store.record(target, approved=not decline)

    if decline:
        print_success(f"Declined compression of {target}")
    else:
        print_success(f"Confirmed compression of {target}")
