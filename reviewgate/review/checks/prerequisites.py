"""Stage 1: tool availability probe."""

from typing import Iterable, Tuple

from reviewgate.review.checks.base import CheckStage, StageContext
from reviewgate.review.models import ChangeSet, Severity, StageResult, ToolStatus

STAGE_ID = "prerequisites"


class PrerequisiteStage(CheckStage):
    """Reports which tools are missing.

    The controller does the probing (it needs the answer to decide skips);
    this stage turns the probe snapshot into issues.
    """

    stage_id = STAGE_ID

    def __init__(self, tools: Iterable[ToolStatus] = ()) -> None:
        self.tools: Tuple[ToolStatus, ...] = tuple(tools)

    def run(self, changeset: ChangeSet, context: StageContext) -> StageResult:
        issues = [
            self.issue(
                file="-",
                severity=Severity.LOW,
                message=f"Tool '{tool.name}' is not available; stages that need it are skipped",
                rule_id="PRE-TOOL-MISSING",
                suggestion=f"Install '{tool.name}' or remove it from the stage requirements",
            )
            for tool in self.tools
            if not tool.available
        ]
        return StageResult(stage_id=self.stage_id, kind=self.kind, issues=tuple(issues))
