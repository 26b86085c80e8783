"""Check stages for the review pipeline.

All stages return an immutable ``StageResult``. ``default_stages`` gives the
fixed run order used by the gate controller.
"""

from typing import List, Mapping, Optional, Sequence

from reviewgate.review.checks.base import CheckStage, StageContext
from reviewgate.review.checks.content import ContentQualityStage
from reviewgate.review.checks.docs_gate import ChangelogGate, ReadmeGate
from reviewgate.review.checks.markdown import MarkdownStage
from reviewgate.review.checks.prerequisites import PrerequisiteStage
from reviewgate.review.checks.structure import StructureStage
from reviewgate.review.checks.token_savings import TokenSavingsStage

DEFAULT_STAGE_TOOLS = {
    "changelog": ("gh",),
    "readme": ("gh",),
}


def default_stages(
    stage_tools: Optional[Mapping[str, Sequence[str]]] = None,
    savings_threshold: Optional[float] = None,
) -> List[CheckStage]:
    """Stages 2-5 plus token savings, in report order."""
    tools = dict(DEFAULT_STAGE_TOOLS if stage_tools is None else stage_tools)
    token_stage = (
        TokenSavingsStage()
        if savings_threshold is None
        else TokenSavingsStage(threshold=savings_threshold)
    )
    stages: List[CheckStage] = [
        ChangelogGate(),
        ReadmeGate(),
        StructureStage(),
        ContentQualityStage(),
        token_stage,
        MarkdownStage(),
    ]
    for stage in stages:
        stage.with_tools(tools.get(stage.stage_id, ()))
    return stages


__all__ = [
    "CheckStage",
    "StageContext",
    "PrerequisiteStage",
    "ChangelogGate",
    "ReadmeGate",
    "StructureStage",
    "ContentQualityStage",
    "TokenSavingsStage",
    "MarkdownStage",
    "DEFAULT_STAGE_TOOLS",
    "default_stages",
]
