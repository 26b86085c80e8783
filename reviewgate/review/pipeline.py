"""Review pipeline orchestrator.

Wires collection, the gate controller, the external reviewer and report
assembly into one pass:

1. Collect and categorize the changeset (a ``CollectionError`` aborts).
2. Start the external reviewer in the background.
3. Probe tools, then run every stage concurrently.
4. Join the reviewer (bounded by its own timeout) and build the report.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from reviewgate.review.checks import default_stages
from reviewgate.review.checks.base import StageContext
from reviewgate.review.collector import ChangeSetCollector, DiffSource, GitDiffSource
from reviewgate.review.external import CommandReviewer, ExternalReviewer, ExternalReviewerAdapter
from reviewgate.review.gate import GateController
from reviewgate.review.models import DiffScope, ReviewReport
from reviewgate.review.report import ReportBuilder
from reviewgate.review.tools import ToolAvailability, WhichToolProbe
from reviewgate.utils.config import Config
from reviewgate.utils.logging import get_logger, log_operation

logger = get_logger("review.pipeline")


class ReviewPipeline:
    """Runs a full review for one repository.

    Usage::

        pipeline = ReviewPipeline(repo_path=Path("."))
        report = pipeline.run()
        sys.exit(report.verdict.exit_code)

    Collaborators default to the configured git, ``PATH`` and command
    implementations; pass them explicitly to embed or test the pipeline.
    """

    def __init__(
        self,
        repo_path: Path,
        config: Optional[Config] = None,
        source: Optional[DiffSource] = None,
        probe: Optional[ToolAvailability] = None,
        reviewer: Optional[ExternalReviewer] = None,
        use_external: bool = True,
        external_timeout: Optional[float] = None,
    ):
        self.repo_path = Path(repo_path).resolve()
        self.config = config or Config.load_or_default(self.repo_path)
        self.source = source or GitDiffSource(self.repo_path, base_ref=self.config.diff.base_ref)
        self.probe = probe or WhichToolProbe(overrides=self.config.tools.force)

        external_cfg = self.config.external
        if reviewer is None and external_cfg.command:
            reviewer = CommandReviewer(external_cfg.command)
        self.external = ExternalReviewerAdapter(
            reviewer,
            timeout=external_timeout or external_cfg.timeout,
            probe=self.probe,
            enabled=use_external and external_cfg.enabled,
        )

        self.collector = ChangeSetCollector(self.source, self.config.categorizer())
        self.controller = GateController(
            default_stages(
                stage_tools=self.config.stages.tools,
                savings_threshold=self.config.token_savings.threshold,
            ),
            probe=self.probe,
            extra_tools=self.config.stages.extra_tools,
        )
        self.builder = ReportBuilder()

    async def run_async(
        self,
        scopes: Optional[Sequence[DiffScope]] = None,
        generated_at: Optional[datetime] = None,
    ) -> ReviewReport:
        """Execute the review.

        Raises:
            CollectionError: If no diff scope could be read.
        """
        scopes = list(scopes or self.config.diff_scopes)

        with log_operation(logger, "changeset collection"):
            changeset = await asyncio.to_thread(self.collector.collect, scopes)

        context = StageContext(
            repo=self.source,
            changelog_path=self.config.stages.changelog_path,
            readme_path=self.config.stages.readme_path,
        )

        # The reviewer only sees collection output, never stage issues
        external_task = asyncio.create_task(
            self.external.review(changeset.summary(), [f.to_dict() for f in changeset])
        )
        try:
            with log_operation(logger, "check stages"):
                gate_run = await self.controller.run_async(changeset, context)
            external = await external_task
        finally:
            if not external_task.done():
                external_task.cancel()

        report = self.builder.build(
            changeset=changeset,
            tools=gate_run.tools,
            results=gate_run.results,
            external=external,
            generated_at=generated_at or datetime.now(timezone.utc),
        )
        logger.info(
            f"Review of {len(changeset)} file(s) finished: {report.verdict.value}"
        )
        return report

    def run(
        self,
        scopes: Optional[Sequence[DiffScope]] = None,
        generated_at: Optional[datetime] = None,
    ) -> ReviewReport:
        """Synchronous wrapper for ``run_async``."""
        return asyncio.run(self.run_async(scopes, generated_at))
