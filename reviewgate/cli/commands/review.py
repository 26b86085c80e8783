"""Review command for the reviewgate CLI."""

from pathlib import Path
from typing import List, Optional

import typer

from reviewgate.cli.utils.console import (
    get_console,
    get_err_console,
    print_error,
    print_success,
    print_warning,
)
from reviewgate.cli.utils.decorators import EXIT_ERROR, handle_errors


@handle_errors
def review(
    path: str = typer.Argument(".", help="Repository path"),
    scope: Optional[List[str]] = typer.Option(
        None,
        "--scope",
        "-s",
        help="Diff scope: branch, pr or commit (repeatable)",
    ),
    base: Optional[str] = typer.Option(
        None,
        "--base",
        "-b",
        help="Base ref to compare against (default from config, 'main')",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the report as JSON",
    ),
    no_external: bool = typer.Option(
        False,
        "--no-external",
        help="Skip the external second-opinion reviewer",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="External reviewer timeout in seconds",
    ),
    apply_confirmed_flag: bool = typer.Option(
        False,
        "--apply-confirmed",
        help="Compress files that have a recorded 'yes' confirmation",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show changed files, suggestions and debug logs",
    ),
) -> None:
    """Review the current changes and print a verdict.

    Exit status: 0 approve, 1 request changes, 2 needs discussion,
    3 error.

    Examples:
      reviewgate review                       # Branch changes against main
      reviewgate review --scope pr --base dev
      reviewgate review --json --no-external  # For CI
    """
    from reviewgate.review.models import DiffScope
    from reviewgate.review.output import RichReviewOutput
    from reviewgate.review.pipeline import ReviewPipeline
    from reviewgate.utils.config import Config
    from reviewgate.utils.logging import setup_logging

    project_path = Path(path).resolve()
    if not project_path.is_dir():
        print_error(f"Not a directory: {project_path}", get_err_console())
        raise typer.Exit(EXIT_ERROR)

    config = Config.load_or_default(project_path)
    if base:
        config.diff.base_ref = base
    config.validate()

    setup_logging(
        "DEBUG" if verbose else config.logging.level,
        json_format=config.logging.json_format,
    )

    scopes = None
    if scope:
        try:
            scopes = [DiffScope(s) for s in scope]
        except ValueError:
            print_error(
                f"Invalid scope in {', '.join(scope)}. Choose: branch, pr, commit",
                get_err_console(),
            )
            raise typer.Exit(EXIT_ERROR)

    # Keep stdout clean for --json
    console = get_err_console() if json_output else get_console()
    if not json_output:
        console.print(f"[dim]Reviewing changes against {config.diff.base_ref}...[/dim]")

    pipeline = ReviewPipeline(
        project_path,
        config=config,
        use_external=not no_external,
        external_timeout=timeout,
    )
    report = pipeline.run(scopes)

    if json_output:
        typer.echo(report.to_json())
    else:
        RichReviewOutput(console, verbose=verbose).print_report(report)

    if apply_confirmed_flag:
        _apply_confirmed(report, config, project_path, console)

    raise typer.Exit(report.verdict.exit_code)


def _apply_confirmed(report, config, project_path: Path, console) -> None:
    """Compress confirmed files and write the results."""
    from reviewgate.review.compression import CommandActuator, ConfirmationStore, apply_confirmed

    if not report.confirmations:
        return
    if not config.compression.command:
        print_warning(
            "No compression command configured (compression.command); nothing applied",
            console,
        )
        return

    store = ConfirmationStore.for_project(project_path)
    actuator = CommandActuator(config.compression.command, project_path)
    applied = apply_confirmed(report.confirmations, store, actuator)

    for file, content in applied.items():
        (project_path / file).write_text(content, encoding="utf-8")
        print_success(f"Compressed {file}", console)

    skipped = len(report.confirmations) - len(applied)
    if skipped:
        console.print(
            f"[dim]{skipped} compression request(s) not applied "
            f"(unconfirmed, declined or failed)[/dim]"
        )
