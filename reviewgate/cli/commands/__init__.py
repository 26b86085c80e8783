"""Command modules for the reviewgate CLI."""

from reviewgate.cli.commands.confirm import confirm
from reviewgate.cli.commands.review import review

__all__ = [
    "review",
    "confirm",
]
