"""Gate controller: runs the stage set against one changeset.

The tool probe runs first and alone. Every other stage runs in its own
worker thread and the results are joined in the fixed stage order, so a
slow stage never reorders the report.
"""

import asyncio
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from reviewgate.review.checks.base import CheckStage, StageContext
from reviewgate.review.checks.prerequisites import PrerequisiteStage
from reviewgate.review.errors import ToolUnavailable
from reviewgate.review.models import ChangeSet, StageResult, ToolStatus
from reviewgate.review.tools import ToolAvailability, WhichToolProbe, probe_tools
from reviewgate.utils.logging import get_logger, log_operation

logger = get_logger("review.gate")


@dataclass(frozen=True)
class GateRun:
    """Probe snapshot plus stage results in fixed order."""

    tools: Tuple[ToolStatus, ...]
    results: Tuple[StageResult, ...]


class GateController:
    """Runs stages, skipping any whose required tools are missing.

    Gating failures never stop later stages; a stage that raises is
    recorded as skipped so the verdict cannot approve on missing evidence.
    """

    def __init__(
        self,
        stages: Sequence[CheckStage],
        probe: Optional[ToolAvailability] = None,
        extra_tools: Iterable[str] = (),
    ) -> None:
        self.stages = list(stages)
        self.probe = probe or WhichToolProbe()
        self.extra_tools = tuple(extra_tools)

    def tools_to_probe(self) -> List[str]:
        names = set(self.extra_tools)
        for stage in self.stages:
            names.update(stage.required_tools)
        return sorted(names)

    async def run_async(self, changeset: ChangeSet, context: StageContext) -> GateRun:
        tools = probe_tools(self.probe, self.tools_to_probe())
        available = frozenset(t.name for t in tools if t.available)

        prerequisites = PrerequisiteStage(tools).run(changeset, context)

        results = await asyncio.gather(
            *(self._run_stage(stage, changeset, context, available) for stage in self.stages)
        )
        return GateRun(tools=tools, results=(prerequisites, *results))

    def run(self, changeset: ChangeSet, context: StageContext) -> GateRun:
        """Synchronous wrapper for ``run_async``."""
        return asyncio.run(self.run_async(changeset, context))

    async def _run_stage(
        self,
        stage: CheckStage,
        changeset: ChangeSet,
        context: StageContext,
        available: FrozenSet[str],
    ) -> StageResult:
        missing = [tool for tool in stage.required_tools if tool not in available]
        if missing:
            reason = f"required tool(s) not available: {', '.join(missing)}"
            logger.warning(f"Skipping stage '{stage.stage_id}': {reason}")
            return StageResult.skip(stage.stage_id, stage.kind, reason)

        try:
            with log_operation(logger, f"stage {stage.stage_id}"):
                result = await asyncio.to_thread(stage.run, changeset, context)
        except ToolUnavailable as e:
            logger.warning(f"Skipping stage '{stage.stage_id}': {e.reason}")
            return StageResult.skip(stage.stage_id, stage.kind, e.reason)
        except Exception as e:
            logger.error(f"Stage '{stage.stage_id}' failed: {e}", exc_info=True)
            return StageResult.skip(stage.stage_id, stage.kind, f"stage error: {e}")

        logger.debug(
            f"Stage '{stage.stage_id}' finished: {result.status}, {len(result.issues)} issue(s)"
        )
        return result
