"""Command decorators."""

import functools

import typer

from reviewgate.cli.utils.console import get_err_console, print_error, print_warning
from reviewgate.review.errors import ReviewGateError
from reviewgate.utils.logging import get_logger

logger = get_logger("cli")

EXIT_ERROR = 3
EXIT_INTERRUPTED = 130


def handle_errors(func):
    """Turn failures into a console message and a stable exit status.

    ``typer.Exit`` passes through untouched, so commands keep control of
    their own exit codes.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort):
            raise
        except KeyboardInterrupt:
            print_warning("Interrupted; nothing was written", get_err_console())
            raise typer.Exit(EXIT_INTERRUPTED)
        except ReviewGateError as e:
            print_error(str(e), get_err_console())
            raise typer.Exit(EXIT_ERROR)
        except (ValueError, FileNotFoundError) as e:
            print_error(f"Configuration error: {e}", get_err_console())
            raise typer.Exit(EXIT_ERROR)
        except Exception as e:
            logger.debug("Unhandled error", exc_info=True)
            print_error(f"Unexpected error: {e}", get_err_console())
            raise typer.Exit(EXIT_ERROR)

    return wrapper
