"""Base class shared by all check stages."""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple

from reviewgate.review.models import (
    ALL_CATEGORIES,
    ChangedFile,
    ChangeSet,
    FileCategory,
    Issue,
    Severity,
    StageKind,
    StageResult,
)


@dataclass(frozen=True)
class StageContext:
    """Read-only inputs shared by every stage of a run.

    ``repo`` is any object with ``read_file(path)`` and ``exists(path)``,
    normally the run's ``DiffSource``.
    """

    repo: object
    changelog_path: str = "CHANGELOG.md"
    readme_path: str = "README.md"

    def read(self, path: str) -> Optional[str]:
        return self.repo.read_file(path)

    def exists(self, path: str) -> bool:
        return self.repo.exists(path)


class CheckStage:
    """A stateless unit of review work.

    Subclasses either implement ``check_file`` (called once per applicable,
    non-deleted file with its content) or override ``run`` entirely.
    """

    stage_id: str = ""
    kind: StageKind = StageKind.ADVISORY
    applicable_categories: FrozenSet[FileCategory] = ALL_CATEGORIES
    required_tools: Tuple[str, ...] = ()

    def applicable(self, changeset: ChangeSet) -> List[ChangedFile]:
        return changeset.in_categories(self.applicable_categories)

    def run(self, changeset: ChangeSet, context: StageContext) -> StageResult:
        issues: List[Issue] = []
        for changed in self.applicable(changeset):
            if changed.is_deleted:
                continue
            content = context.read(changed.path)
            if content is None:
                continue
            issues.extend(self.check_file(changed, content, context))
        return StageResult(stage_id=self.stage_id, kind=self.kind, issues=tuple(issues))

    def check_file(
        self, changed: ChangedFile, content: str, context: StageContext
    ) -> Iterable[Issue]:
        return []

    def issue(
        self,
        file: str,
        severity: Severity,
        message: str,
        rule_id: Optional[str] = None,
        line: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> Issue:
        return Issue(
            file=file,
            severity=severity,
            message=message,
            stage_id=self.stage_id,
            line=line,
            rule_id=rule_id,
            suggestion=suggestion,
        )

    def with_tools(self, tools: Iterable[str]) -> "CheckStage":
        """Override the tools this stage instance requires."""
        self.required_tools = tuple(tools)
        return self

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.stage_id} ({self.kind.value})>"


def split_front_matter(content: str) -> Tuple[Optional[str], str, int]:
    """Split a leading ``---`` YAML block from markdown.

    Returns:
        (front matter text or None, body, number of lines before the body).
    """
    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        return None, content, 0
    for idx in range(1, len(lines)):
        if lines[idx].strip() in ("---", "..."):
            body = "\n".join(lines[idx + 1:])
            return "\n".join(lines[1:idx]), body, idx + 1
    return None, content, 0


def is_markdown(path: str) -> bool:
    return path.lower().endswith((".md", ".markdown"))


_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})(.*)$")


def match_fence(line: str) -> Optional[Tuple[str, str]]:
    """(marker, info string) if ``line`` is a code fence line."""
    m = _FENCE_RE.match(line)
    if m is None:
        return None
    return m.group(1), m.group(2).strip()


def closes_fence(opening: str, line: str) -> bool:
    """True if ``line`` closes a fence opened with ``opening``.

    The closing marker must use the same character, be at least as long as
    the opening one and carry no info string.
    """
    fence = match_fence(line)
    if fence is None:
        return False
    marker, info = fence
    return marker[0] == opening[0] and len(marker) >= len(opening) and not info


def outside_fences(lines: Iterable[str]) -> Iterator[Tuple[int, str]]:
    """(line number, text) for lines outside fenced code blocks."""
    opening: Optional[str] = None
    for lineno, line in enumerate(lines, 1):
        if opening is not None:
            if closes_fence(opening, line):
                opening = None
            continue
        fence = match_fence(line)
        if fence is not None:
            opening = fence[0]
            continue
        yield lineno, line
