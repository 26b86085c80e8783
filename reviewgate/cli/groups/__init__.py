"""Command groups for the reviewgate CLI."""

from reviewgate.cli.groups import config

__all__ = [
    "config",
]
