"""Stage 5: markdown well-formedness."""

import re
from typing import List

from reviewgate.review.checks.base import (
    CheckStage,
    StageContext,
    closes_fence,
    is_markdown,
    match_fence,
    split_front_matter,
)
from reviewgate.review.models import ChangedFile, ChangeSet, Issue, Severity

_ATX_HEADING_RE = re.compile(r"^(#{1,6})(\s+|$)")
_EMPTY_LINK_RE = re.compile(r"(?<!!)\[\s*\]\([^)]*\)|\[[^\]]+\]\(\s*\)")
_INLINE_CODE_RE = re.compile(r"`[^`]*`")


class MarkdownStage(CheckStage):
    """Fences, headings and links that render badly."""

    stage_id = "markdown"

    def applicable(self, changeset: ChangeSet) -> List[ChangedFile]:
        return [f for f in changeset if is_markdown(f.path)]

    def check_file(
        self, changed: ChangedFile, content: str, context: StageContext
    ) -> List[Issue]:
        path = changed.path
        _, body, offset = split_front_matter(content)
        findings: List[Issue] = []

        open_fence = None  # (marker, line)
        last_level = 0
        h1_lines: List[int] = []

        for idx, line in enumerate(body.splitlines(), 1):
            lineno = idx + offset
            if open_fence is not None:
                if closes_fence(open_fence[0], line):
                    open_fence = None
                continue
            fence = match_fence(line)
            if fence:
                marker, info = fence
                open_fence = (marker, lineno)
                if not info:
                    findings.append(self.issue(
                        file=path,
                        severity=Severity.LOW,
                        message="Code fence has no language",
                        rule_id="MD-FENCE-LANG",
                        line=lineno,
                    ))
                continue

            heading = _ATX_HEADING_RE.match(line)
            if heading:
                level = len(heading.group(1))
                if level == 1:
                    h1_lines.append(lineno)
                if last_level and level > last_level + 1:
                    findings.append(self.issue(
                        file=path,
                        severity=Severity.LOW,
                        message=f"Heading jumps from level {last_level} to {level}",
                        rule_id="MD-HEADING-JUMP",
                        line=lineno,
                    ))
                last_level = level

            if _EMPTY_LINK_RE.search(_INLINE_CODE_RE.sub("", line)):
                findings.append(self.issue(
                    file=path,
                    severity=Severity.MEDIUM,
                    message="Link with empty text or target",
                    rule_id="MD-EMPTY-LINK",
                    line=lineno,
                ))

        if open_fence is not None:
            findings.append(self.issue(
                file=path,
                severity=Severity.HIGH,
                message=f"Code fence opened at line {open_fence[1]} is never closed",
                rule_id="MD-UNCLOSED-FENCE",
                line=open_fence[1],
            ))

        for lineno in h1_lines[1:]:
            findings.append(self.issue(
                file=path,
                severity=Severity.LOW,
                message=f"Additional top-level heading (first at line {h1_lines[0]})",
                rule_id="MD-MULTIPLE-H1",
                line=lineno,
            ))

        return findings
