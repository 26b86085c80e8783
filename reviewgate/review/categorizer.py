"""Path categorization by ordered glob rules.

First matching rule wins; anything unmatched is ``other``, so every path
maps to exactly one category. Patterns match segment by segment, so ``*``
never crosses a ``/``.
"""

import fnmatch
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Sequence, Tuple

from reviewgate.review.models import FileCategory


@dataclass(frozen=True)
class CategoryRule:
    """A single ``glob -> category`` entry."""

    pattern: str
    category: FileCategory

    def matches(self, path: str) -> bool:
        parts = path.split("/")
        pattern_parts = self.pattern.split("/")
        if len(parts) != len(pattern_parts):
            return False
        return all(fnmatch.fnmatchcase(part, pat) for part, pat in zip(parts, pattern_parts))


DEFAULT_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule("skills/*/SKILL.md", FileCategory.SKILL),
    CategoryRule("commands/README.md", FileCategory.OTHER),
    CategoryRule("commands/*.md", FileCategory.COMMAND),
    CategoryRule("mcp-servers/*/README.md", FileCategory.MCP_SERVER),
    CategoryRule("mcp/*/README.md", FileCategory.MCP_SERVER),
    CategoryRule("CHANGELOG.md", FileCategory.DOCUMENTATION),
    CategoryRule("README.md", FileCategory.DOCUMENTATION),
)


def normalize_path(path: str) -> str:
    """POSIX form, no leading ``./``, no trailing slash."""
    posix = str(path).replace("\\", "/")
    while posix.startswith("./"):
        posix = posix[2:]
    return str(PurePosixPath(posix)) if posix else posix


class Categorizer:
    """Deterministic, total path classifier."""

    def __init__(self, rules: Optional[Sequence[CategoryRule]] = None) -> None:
        self.rules: Tuple[CategoryRule, ...] = tuple(
            DEFAULT_RULES if rules is None else rules
        )

    @classmethod
    def from_config(cls, entries: Iterable[dict]) -> "Categorizer":
        """Build from config entries like ``{"pattern": ..., "category": ...}``.

        Raises:
            ValueError: If an entry names an unknown category.
        """
        rules: List[CategoryRule] = []
        for entry in entries:
            try:
                pattern = str(entry["pattern"])
                category = FileCategory(entry["category"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Invalid category rule {entry!r}: {e}") from e
            rules.append(CategoryRule(pattern, category))
        return cls(rules or None)

    def categorize(self, path: str) -> FileCategory:
        normalized = normalize_path(path)
        for rule in self.rules:
            if rule.matches(normalized):
                return rule.category
        return FileCategory.OTHER
