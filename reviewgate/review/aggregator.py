"""Issue aggregation and verdict derivation.

Severities are carried through unchanged: aggregation only merges and
counts, and the verdict is derived from stage outcomes by fixed precedence.
"""

from typing import Iterable, List

from reviewgate.review.models import (
    AggregatedIssues,
    Issue,
    Severity,
    StageResult,
    Verdict,
)


def aggregate(results: Iterable[StageResult]) -> AggregatedIssues:
    """Merge issues in stage order, then source order within a stage."""
    issues: List[Issue] = []
    for result in results:
        if result.skipped:
            continue
        issues.extend(result.issues)
    return AggregatedIssues(issues=tuple(issues))


def derive_verdict(results: Iterable[StageResult]) -> Verdict:
    """Apply the verdict precedence to a set of stage results.

    1. A blocked gating stage requests changes.
    2. A skipped gating stage needs discussion (its evidence is missing).
    3. A critical or high advisory issue requests changes.
    4. No issue at medium or above approves.
    5. Anything else needs discussion.

    Only set membership is inspected, so the order of ``results`` does not
    matter.
    """
    results = list(results)
    gating = [r for r in results if r.is_gating]

    if any(r.blocked and not r.skipped for r in gating):
        return Verdict.REQUEST_CHANGES
    if any(r.skipped for r in gating):
        return Verdict.NEEDS_DISCUSSION

    active = [i for r in results if not r.skipped for i in r.issues]
    advisory = [i for r in results if not r.is_gating and not r.skipped for i in r.issues]
    if any(i.severity >= Severity.HIGH for i in advisory):
        return Verdict.REQUEST_CHANGES
    if not any(i.severity >= Severity.MEDIUM for i in active):
        return Verdict.APPROVE
    return Verdict.NEEDS_DISCUSSION
