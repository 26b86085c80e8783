"""Token savings estimator.

A static scan of documentation and skill prose that estimates how much a
compression pass could remove. It never rewrites anything: files above the
threshold get a ``medium`` issue and a confirmation request, and only an
explicit human "yes" (see ``reviewgate.review.compression``) lets a later run
hand the file to a compression actuator.
"""

import re
from typing import List, Tuple

from reviewgate.review.checks.base import CheckStage, StageContext, split_front_matter
from reviewgate.review.checks.content import normalize_passage, paragraphs, prose_lines
from reviewgate.review.models import (
    ChangeSet,
    ConfirmationRequest,
    FileCategory,
    FileSavings,
    Severity,
    StageResult,
)

DEFAULT_THRESHOLD = 20.0
TABLE_SAVINGS_RATIO = 0.25
TABLE_MIN_RUN = 3
DUPLICATE_MIN_WORDS = 6

# phrase -> words saved when removed or replaced by its short form
FILLER_PHRASES = {
    "it is important to note that": 6,
    "due to the fact that": 4,  # because
    "at this point in time": 4,  # now
    "for the purpose of": 3,  # for
    "please note that": 3,
    "in order to": 2,  # to
    "make sure to": 2,  # ensure
    "note that": 2,
    "basically": 1,
    "actually": 1,
    "really": 1,
    "very": 1,
    "simply": 1,
    "just": 1,
    "essentially": 1,
    "literally": 1,
    "quite": 1,
    "definitely": 1,
    "obviously": 1,
}

_WORD_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9'_\-]*")
_KEY_VALUE_BULLET_RE = re.compile(
    r"^\s*[-*]\s+(?:\*\*[^*]{1,40}\*\*:?|[^:\s][^:]{0,39}:)\s+\S"
)
_FILLER_PATTERNS: List[Tuple["re.Pattern", int]] = [
    (re.compile(r"\b" + re.escape(phrase) + r"\b"), saving)
    for phrase, saving in sorted(FILLER_PHRASES.items(), key=lambda kv: -len(kv[0]))
]


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text))


def compression_level(percent: float) -> str:
    if percent < 30:
        return "light"
    if percent < 50:
        return "moderate"
    return "aggressive"


def estimate_savings(path: str, content: str) -> FileSavings:
    """Estimate removable words in the prose of ``content``."""
    _, body, _ = split_front_matter(content)
    lines = [text for _, text in prose_lines(body)]
    prose = "\n".join(lines)

    total = count_words(prose)
    if total == 0:
        return FileSavings(file=path, total_words=0)

    # Longest phrases first; matched text is blanked so overlaps count once
    remaining = prose.lower()
    filler = 0
    for pattern, saving in _FILLER_PATTERNS:
        hits = len(pattern.findall(remaining))
        if hits:
            filler += hits * saving
            remaining = pattern.sub(" ", remaining)

    table = 0
    run: List[str] = []
    for line in lines + [""]:
        if _KEY_VALUE_BULLET_RE.match(line):
            run.append(line)
            continue
        if len(run) >= TABLE_MIN_RUN:
            table += int(round(count_words("\n".join(run)) * TABLE_SAVINGS_RATIO))
        run = []

    duplicate = 0
    seen = set()
    for _, text in paragraphs(body):
        key = normalize_passage(text)
        words = count_words(text)
        if words < DUPLICATE_MIN_WORDS:
            continue
        if key in seen:
            duplicate += words
        else:
            seen.add(key)

    return FileSavings(
        file=path,
        total_words=total,
        filler_words=filler,
        table_words=table,
        duplicate_words=duplicate,
    )


class TokenSavingsStage(CheckStage):
    """Advisory compression estimate for documentation and skill files."""

    stage_id = "token-savings"
    applicable_categories = frozenset({FileCategory.DOCUMENTATION, FileCategory.SKILL})

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold = threshold

    def run(self, changeset: ChangeSet, context: StageContext) -> StageResult:
        savings: List[FileSavings] = []
        for changed in self.applicable(changeset):
            if changed.is_deleted:
                continue
            content = context.read(changed.path)
            if content is None:
                continue
            savings.append(estimate_savings(changed.path, content))

        issues = []
        confirmations = []
        for estimate in savings:
            if estimate.percent <= self.threshold:
                continue
            level = compression_level(estimate.percent)
            issues.append(self.issue(
                file=estimate.file,
                severity=Severity.MEDIUM,
                message=(
                    f"Estimated {estimate.percent:.1f}% token savings "
                    f"(threshold {self.threshold:g}%)"
                ),
                rule_id="TOK-SAVINGS",
                suggestion=f"Run 'reviewgate confirm {estimate.file}' to approve a {level} compression",
            ))
            confirmations.append(ConfirmationRequest(
                file=estimate.file,
                estimated_percent=estimate.percent,
                level=level,
            ))

        return StageResult(
            stage_id=self.stage_id,
            kind=self.kind,
            issues=tuple(issues),
            savings=tuple(savings),
            confirmations=tuple(confirmations),
        )
