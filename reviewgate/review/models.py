"""Review data models.

Contains all data structures passed between pipeline components. Everything
produced during a run is frozen; a run builds these once and discards them
after the report is returned.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from reviewgate.review.errors import GateFailure


class Severity(str, Enum):
    """Severity levels for review issues."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: "Severity") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        return self == other or self < other

    def __gt__(self, other: "Severity") -> bool:
        return not self <= other

    def __ge__(self, other: "Severity") -> bool:
        return not self < other


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]

# Highest first, the order used in every report table
SEVERITY_DISPLAY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class FileCategory(str, Enum):
    """Domain category of a changed path."""

    SKILL = "skill"
    COMMAND = "command"
    MCP_SERVER = "mcp_server"
    DOCUMENTATION = "documentation"
    OTHER = "other"


# Categories that describe a shipped component (need README/CHANGELOG entries)
COMPONENT_CATEGORIES = frozenset(
    {FileCategory.SKILL, FileCategory.COMMAND, FileCategory.MCP_SERVER}
)

ALL_CATEGORIES = frozenset(FileCategory)


class StageKind(str, Enum):
    """Whether a stage failure pins the verdict."""

    GATING = "gating"
    ADVISORY = "advisory"


class Verdict(str, Enum):
    """Final tri-state recommendation."""

    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"
    NEEDS_DISCUSSION = "needs_discussion"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").upper()

    @property
    def exit_code(self) -> int:
        """0 for approve, non-zero otherwise so hooks and CI can gate on it."""
        return _VERDICT_EXIT_CODES[self]


_VERDICT_EXIT_CODES = {
    Verdict.APPROVE: 0,
    Verdict.REQUEST_CHANGES: 1,
    Verdict.NEEDS_DISCUSSION: 2,
}


class DiffScope(str, Enum):
    """Which delta a diff source is asked for."""

    BRANCH = "branch"  # merge-base with the base ref up to the working tree
    PR = "pr"  # base...HEAD, committed changes only
    COMMIT = "commit"  # HEAD~1..HEAD

    @property
    def width(self) -> int:
        return _SCOPE_WIDTH[self]


_SCOPE_WIDTH = {DiffScope.COMMIT: 1, DiffScope.PR: 2, DiffScope.BRANCH: 3}


@dataclass(frozen=True)
class DiffStats:
    """Line statistics for a single changed path."""

    status: str = "M"  # A=added, M=modified, D=deleted, R=renamed
    additions: int = 0
    deletions: int = 0

    @property
    def is_added(self) -> bool:
        return self.status.startswith("A")

    @property
    def is_deleted(self) -> bool:
        return self.status.startswith("D")

    @property
    def total(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class ChangedFile:
    """A changed path with its category and stats."""

    path: str
    category: FileCategory
    stats: DiffStats = field(default_factory=DiffStats)

    @property
    def is_deleted(self) -> bool:
        return self.stats.is_deleted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "status": self.stats.status,
            "additions": self.stats.additions,
            "deletions": self.stats.deletions,
        }


@dataclass(frozen=True)
class ChangeSet:
    """Normalized, deduplicated files under review for one run."""

    files: Tuple[ChangedFile, ...] = ()

    def __iter__(self):
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    def get(self, path: str) -> Optional[ChangedFile]:
        for changed in self.files:
            if changed.path == path:
                return changed
        return None

    def contains(self, path: str) -> bool:
        return self.get(path) is not None

    def in_categories(self, categories) -> List[ChangedFile]:
        return [f for f in self.files if f.category in categories]

    @property
    def total_additions(self) -> int:
        return sum(f.stats.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.stats.deletions for f in self.files)

    def summary(self) -> Dict[str, Any]:
        """Counts used by the report summary and the external reviewer."""
        by_category = {c.value: 0 for c in FileCategory}
        for changed in self.files:
            by_category[changed.category.value] += 1
        return {
            "files_changed": len(self.files),
            "additions": self.total_additions,
            "deletions": self.total_deletions,
            "by_category": by_category,
        }


@dataclass(frozen=True)
class Issue:
    """A single finding produced by a stage."""

    file: str
    severity: Severity
    message: str
    stage_id: str
    line: Optional[int] = None
    rule_id: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "severity": self.severity.value,
            "message": self.message,
            "stage_id": self.stage_id,
            "rule_id": self.rule_id,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class DocGateStatus:
    """Documentation gate outcome for one required artifact."""

    file: str
    status: str  # updated, missing, malformed, deleted, not_required
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "status": self.status, "detail": self.detail}


@dataclass(frozen=True)
class FileSavings:
    """Token savings estimate for a single file."""

    file: str
    total_words: int
    filler_words: int = 0
    table_words: int = 0
    duplicate_words: int = 0

    @property
    def saved_words(self) -> int:
        return self.filler_words + self.table_words + self.duplicate_words

    @property
    def percent(self) -> float:
        if self.total_words <= 0:
            return 0.0
        return min(100.0, round(100.0 * self.saved_words / self.total_words, 1))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "total_words": self.total_words,
            "filler_words": self.filler_words,
            "table_words": self.table_words,
            "duplicate_words": self.duplicate_words,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class ConfirmationRequest:
    """A compression that needs an explicit human "yes" before it is applied."""

    file: str
    estimated_percent: float
    level: str  # light, moderate, aggressive

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "estimated_percent": self.estimated_percent,
            "level": self.level,
        }


@dataclass(frozen=True)
class StageResult:
    """Immutable output of one stage.

    ``skipped`` means a required tool was unavailable; it never counts as a
    failure and carries no issues.
    """

    stage_id: str
    kind: StageKind
    issues: Tuple[Issue, ...] = ()
    blocked: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None
    doc_status: Tuple[DocGateStatus, ...] = ()
    savings: Tuple[FileSavings, ...] = ()
    confirmations: Tuple[ConfirmationRequest, ...] = ()

    @property
    def is_gating(self) -> bool:
        return self.kind == StageKind.GATING

    @classmethod
    def skip(cls, stage_id: str, kind: StageKind, reason: str) -> "StageResult":
        return cls(stage_id=stage_id, kind=kind, skipped=True, skip_reason=reason)

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        if self.blocked:
            return "blocked"
        return "passed" if not self.issues else "issues"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_id": self.stage_id,
            "kind": self.kind.value,
            "status": self.status,
            "blocked": self.blocked,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
            "issues": [i.to_dict() for i in self.issues],
        }


@dataclass(frozen=True)
class ToolStatus:
    """Availability of one external tool, as probed at the start of a run."""

    name: str
    available: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "available": self.available}


@dataclass(frozen=True)
class ExternalOpinion:
    """Free-form opinion from the second reviewer."""

    reviewer: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"reviewer": self.reviewer, "text": self.text}


@dataclass(frozen=True)
class ExternalReviewOutcome:
    """Result of consulting the external reviewer; ``opinion`` may be absent."""

    status: str  # ok, unavailable, timeout, error, disabled
    opinion: Optional[ExternalOpinion] = None
    detail: str = ""


@dataclass(frozen=True)
class AggregatedIssues:
    """All issues in stage order, with per-severity counts."""

    issues: Tuple[Issue, ...] = ()

    def count(self, severity: Severity) -> int:
        return len([i for i in self.issues if i.severity == severity])

    @property
    def counts(self) -> Dict[str, int]:
        return {s.value: self.count(s) for s in SEVERITY_DISPLAY_ORDER}

    def by_stage(self, stage_id: str) -> List[Issue]:
        return [i for i in self.issues if i.stage_id == stage_id]

    def at_least(self, severity: Severity) -> List[Issue]:
        return [i for i in self.issues if i.severity >= severity]


@dataclass(frozen=True)
class ReviewReport:
    """Complete review outcome, suitable for direct rendering."""

    changeset: ChangeSet
    stage_results: Tuple[StageResult, ...]
    aggregated: AggregatedIssues
    verdict: Verdict
    external: ExternalReviewOutcome
    tools: Tuple[ToolStatus, ...] = ()
    generated_at: Optional[datetime] = None

    @property
    def changeset_summary(self) -> Dict[str, Any]:
        return self.changeset.summary()

    @property
    def doc_status(self) -> List[DocGateStatus]:
        return [s for r in self.stage_results for s in r.doc_status]

    @property
    def token_savings(self) -> List[FileSavings]:
        return [s for r in self.stage_results for s in r.savings]

    @property
    def confirmations(self) -> List[ConfirmationRequest]:
        return [c for r in self.stage_results for c in r.confirmations]

    @property
    def external_opinion(self) -> Optional[ExternalOpinion]:
        return self.external.opinion

    def result_for(self, stage_id: str) -> Optional[StageResult]:
        for result in self.stage_results:
            if result.stage_id == stage_id:
                return result
        return None

    def raise_for_verdict(self) -> None:
        """Raise ``GateFailure`` if the verdict is request_changes."""
        if self.verdict != Verdict.REQUEST_CHANGES:
            return
        raise GateFailure(
            [r.stage_id for r in self.stage_results if r.is_gating and r.blocked and not r.skipped]
        )

    def sections(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Ordered report sections; see ``reviewgate.review.report``."""
        from reviewgate.review.report import build_sections

        return build_sections(self)

    def to_dict(self, include_timestamp: bool = True) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary with stable ordering."""
        data: Dict[str, Any] = {}
        if include_timestamp:
            data["generated_at"] = (
                self.generated_at.isoformat() if self.generated_at else None
            )
        data["verdict"] = self.verdict.value
        data["sections"] = {title: body for title, body in self.sections()}
        data["stages"] = [r.to_dict() for r in self.stage_results]
        data["changed_files"] = [f.to_dict() for f in self.changeset]
        return data

    def to_json(self, indent: int = 2, include_timestamp: bool = True) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(include_timestamp=include_timestamp), indent=indent)
