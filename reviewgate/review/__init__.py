"""Review pipeline for skill, command and MCP server changes.

Collects a changeset, runs gating and advisory checks, and produces a
single verdict with an optional independent second opinion.
"""

from reviewgate.review.errors import (
    CollectionError,
    ExternalReviewerTimeout,
    GateFailure,
    ReviewGateError,
    ToolUnavailable,
)
from reviewgate.review.models import (
    ChangedFile,
    ChangeSet,
    DiffScope,
    FileCategory,
    Issue,
    ReviewReport,
    Severity,
    StageResult,
    Verdict,
)

__all__ = [
    "ChangedFile",
    "ChangeSet",
    "DiffScope",
    "FileCategory",
    "Issue",
    "ReviewReport",
    "Severity",
    "StageResult",
    "Verdict",
    "ReviewGateError",
    "CollectionError",
    "ToolUnavailable",
    "GateFailure",
    "ExternalReviewerTimeout",
]
