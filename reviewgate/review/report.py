"""Report assembly.

``ReportBuilder`` freezes one run into a ``ReviewReport``; ``build_sections``
gives the fixed, ordered section view that both the terminal renderer and
JSON output use.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from reviewgate.review.aggregator import aggregate, derive_verdict
from reviewgate.review.models import (
    ChangeSet,
    ExternalReviewOutcome,
    Issue,
    ReviewReport,
    Severity,
    StageResult,
    ToolStatus,
    Verdict,
)

SECTION_TITLES = (
    "Summary",
    "Docs Status",
    "Content",
    "Token Optimization",
    "Markdown",
    "Verdict",
    "External Opinion",
)

DOCS_STAGES = ("changelog", "readme")
CONTENT_STAGES = ("structure", "content")
TOKEN_STAGES = ("token-savings",)
MARKDOWN_STAGES = ("markdown",)


class ReportBuilder:
    """Builds a ``ReviewReport`` from the pieces of one run."""

    def build(
        self,
        changeset: ChangeSet,
        tools: Iterable[ToolStatus],
        results: Sequence[StageResult],
        external: Optional[ExternalReviewOutcome] = None,
        generated_at: Optional[datetime] = None,
    ) -> ReviewReport:
        results = tuple(results)
        return ReviewReport(
            changeset=changeset,
            stage_results=results,
            aggregated=aggregate(results),
            verdict=derive_verdict(results),
            external=external or ExternalReviewOutcome(status="unavailable"),
            tools=tuple(tools),
            generated_at=generated_at,
        )


def _stage_block(report: ReviewReport, stage_ids: Sequence[str]) -> Dict[str, Any]:
    stages: Dict[str, Any] = {}
    issues: List[Issue] = []
    for stage_id in stage_ids:
        result = report.result_for(stage_id)
        if result is None:
            continue
        stages[stage_id] = {"status": result.status, "skip_reason": result.skip_reason}
        issues.extend(result.issues)
    return {"stages": stages, "issues": [i.to_dict() for i in issues]}


def verdict_reasons(report: ReviewReport) -> List[str]:
    """Plain-language reasons behind the verdict, most decisive first."""
    reasons: List[str] = []
    gating = [r for r in report.stage_results if r.is_gating]
    for result in gating:
        if result.blocked and not result.skipped:
            reasons.append(f"gating stage '{result.stage_id}' blocked")
    for result in gating:
        if result.skipped:
            reasons.append(f"gating stage '{result.stage_id}' skipped ({result.skip_reason})")

    advisory_high = [
        i for r in report.stage_results
        if not r.is_gating and not r.skipped
        for i in r.issues
        if i.severity >= Severity.HIGH
    ]
    if advisory_high:
        reasons.append(f"{len(advisory_high)} critical/high advisory issue(s)")

    medium = report.aggregated.count(Severity.MEDIUM)
    if report.verdict == Verdict.NEEDS_DISCUSSION and medium:
        reasons.append(f"{medium} medium issue(s) to discuss")
    if report.verdict == Verdict.APPROVE:
        reasons.append("no issues at medium severity or above")
    return reasons


def build_sections(report: ReviewReport) -> List[Tuple[str, Dict[str, Any]]]:
    """Fixed ordered sections; each body is a plain JSON-serializable dict."""
    summary = dict(report.changeset_summary)
    summary["issue_counts"] = report.aggregated.counts
    summary["tools"] = [t.to_dict() for t in report.tools]
    summary["stages"] = {r.stage_id: r.status for r in report.stage_results}
    prerequisites = report.result_for("prerequisites")
    summary["suggestions"] = [
        i.suggestion for i in (prerequisites.issues if prerequisites else ()) if i.suggestion
    ]

    docs = _stage_block(report, DOCS_STAGES)
    docs["files"] = [s.to_dict() for s in report.doc_status]

    tokens = _stage_block(report, TOKEN_STAGES)
    tokens["files"] = [s.to_dict() for s in report.token_savings]
    tokens["confirmations"] = [c.to_dict() for c in report.confirmations]

    verdict = {
        "verdict": report.verdict.value,
        "label": report.verdict.label,
        "exit_code": report.verdict.exit_code,
        "reasons": verdict_reasons(report),
    }

    opinion = report.external_opinion
    external = {
        "status": report.external.status,
        "reviewer": opinion.reviewer if opinion else None,
        "opinion": opinion.text if opinion else None,
        "detail": report.external.detail,
    }

    bodies = (
        summary,
        docs,
        _stage_block(report, CONTENT_STAGES),
        tokens,
        _stage_block(report, MARKDOWN_STAGES),
        verdict,
        external,
    )
    return list(zip(SECTION_TITLES, bodies))
