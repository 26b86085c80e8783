"""Error taxonomy for the review pipeline.

Only ``CollectionError`` aborts a run. Every other condition is turned into
report data by the component that meets it.
"""

from typing import Optional


class ReviewGateError(Exception):
    """Base class for all reviewgate errors."""


class CollectionError(ReviewGateError):
    """No diff source could be read; no report can be produced."""


class ToolUnavailable(ReviewGateError):
    """A stage needs an external tool that is not installed.

    The controller records the stage as skipped with ``reason``.
    """

    def __init__(self, tool: str, reason: Optional[str] = None) -> None:
        self.tool = tool
        self.reason = reason or f"required tool '{tool}' is not available"
        super().__init__(self.reason)


class GateFailure(ReviewGateError):
    """A ``request_changes`` verdict turned into an error.

    Raised by ``ReviewReport.raise_for_verdict``; the pipeline itself only
    records gate failures as ``StageResult.blocked``.
    """

    def __init__(self, stage_ids) -> None:
        self.stage_ids = list(stage_ids)
        super().__init__(
            "Documentation gate failed: " + ", ".join(self.stage_ids)
            if self.stage_ids
            else "Review requested changes"
        )


class ExternalReviewerTimeout(ReviewGateError):
    """The external reviewer did not answer within its time budget."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"External reviewer timed out after {timeout:g}s")
