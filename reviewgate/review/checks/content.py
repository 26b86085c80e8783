"""Stage 4: content quality checks using text/regex analysis.

Rules:
- CNT-DEAD-MARKER   : unresolved TODO / FIXME / HACK / XXX marker
- SEC-*             : hardcoded secrets (tokens, keys, passwords)
- CNT-DUPLICATE     : passage repeated within a markdown file
- CNT-BROKEN-LINK   : relative markdown link to a path that does not exist
"""

import posixpath
import re
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from reviewgate.review.checks.base import CheckStage, StageContext, is_markdown, outside_fences
from reviewgate.review.models import ChangedFile, Issue, Severity

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------
DUPLICATE_MIN_WORDS = 5
DUPLICATE_MEDIUM_REPEATS = 3  # occurrences at which a repeat becomes medium

_MARKER_RE = re.compile(r"\b(TODO|FIXME|HACK|XXX)\b[:\s]*(.*)")

# (rule_id, pattern, severity, message). Provider tokens come first so a line
# holding both a token and an assignment reports the stronger rule.
SECRET_RULES: List[Tuple[str, "re.Pattern", Severity, str]] = [
    (
        "SEC-PRIVATE-KEY",
        re.compile(r"-----BEGIN (?:RSA |EC |DSA |OPENSSH |PGP )?PRIVATE KEY(?: BLOCK)?-----"),
        Severity.CRITICAL,
        "Private key committed",
    ),
    (
        "SEC-AWS-KEY",
        re.compile(r"\b(AKIA[0-9A-Z]{16})\b"),
        Severity.CRITICAL,
        "AWS access key ID",
    ),
    (
        "SEC-GITHUB-TOKEN",
        re.compile(r"\b(gh[pousr]_[A-Za-z0-9]{36,})\b"),
        Severity.CRITICAL,
        "GitHub token",
    ),
    (
        "SEC-PROVIDER-KEY",
        re.compile(r"\b(sk-(?:ant-)?[A-Za-z0-9_\-]{20,})"),
        Severity.CRITICAL,
        "API provider secret key",
    ),
    (
        "SEC-SLACK-TOKEN",
        re.compile(r"\b(xox[baprs]-[A-Za-z0-9\-]{10,})"),
        Severity.CRITICAL,
        "Slack token",
    ),
    (
        "SEC-PASSWORD",
        re.compile(
            r"\b(?:password|passwd|pwd)\s*[:=]\s*[\"']([^\"'\s]{6,})[\"']",
            re.IGNORECASE,
        ),
        Severity.HIGH,
        "Hardcoded password",
    ),
    (
        "SEC-API-KEY",
        re.compile(
            r"\b(?:api[_\-]?key|secret[_\-]?key|access[_\-]?token|auth[_\-]?token)"
            r"\s*[:=]\s*[\"']([^\"'\s]{8,})[\"']",
            re.IGNORECASE,
        ),
        Severity.HIGH,
        "Hardcoded API key or token",
    ),
]

_PLACEHOLDER_HINTS = ("your", "example", "placeholder", "changeme", "dummy", "redacted")

_LINK_RE = re.compile(r"!?\[([^\]]*)\]\(\s*<?([^)\s>]+)>?(?:\s+[\"'][^\"']*[\"'])?\s*\)")
_INLINE_CODE_RE = re.compile(r"`[^`]*`")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def is_placeholder(value: Optional[str]) -> bool:
    """Values that are clearly not real secrets."""
    if not value:
        return False
    lowered = value.lower()
    if value[0] in "<${%" or set(lowered) <= set("x*.-_"):
        return True
    return any(hint in lowered for hint in _PLACEHOLDER_HINTS)


def prose_lines(content: str) -> List[Tuple[int, str]]:
    """(line number, text) for lines outside fenced code blocks."""
    return list(outside_fences(content.splitlines()))


def paragraphs(content: str) -> List[Tuple[int, str]]:
    """(first line number, text) of blank-line separated prose blocks."""
    blocks: List[Tuple[int, str]] = []
    current: List[str] = []
    start = 0
    last_lineno = 0
    for lineno, line in prose_lines(content):
        contiguous = lineno == last_lineno + 1
        last_lineno = lineno
        if not line.strip() or not contiguous:
            if current:
                blocks.append((start, "\n".join(current)))
                current = []
            if not line.strip():
                continue
        if not current:
            start = lineno
        current.append(line)
    if current:
        blocks.append((start, "\n".join(current)))
    return blocks


def normalize_passage(text: str) -> str:
    return " ".join(text.lower().split())


class ContentQualityStage(CheckStage):
    """Dead-code markers, secrets, duplicate text and broken links."""

    stage_id = "content"

    def check_file(
        self, changed: ChangedFile, content: str, context: StageContext
    ) -> List[Issue]:
        lines = content.splitlines()
        findings: List[Issue] = []

        findings.extend(self._check_markers(changed.path, lines))
        findings.extend(self._check_secrets(changed.path, lines))
        if is_markdown(changed.path):
            findings.extend(self._check_duplicates(changed.path, content))
            findings.extend(self._check_links(changed.path, content, context))

        return findings

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def _check_markers(self, path: str, lines: List[str]) -> List[Issue]:
        findings: List[Issue] = []
        for lineno, line in enumerate(lines, 1):
            m = _MARKER_RE.search(line)
            if not m:
                continue
            marker = m.group(1)
            note = m.group(2).strip()
            findings.append(self.issue(
                file=path,
                severity=Severity.MEDIUM if marker == "FIXME" else Severity.LOW,
                message=f"{marker}: {note[:100]}" if note else f"Unresolved {marker} marker",
                rule_id="CNT-DEAD-MARKER",
                line=lineno,
            ))
        return findings

    def _check_secrets(self, path: str, lines: List[str]) -> List[Issue]:
        findings: List[Issue] = []
        for lineno, line in enumerate(lines, 1):
            for rule_id, pattern, severity, message in SECRET_RULES:
                m = pattern.search(line)
                if not m:
                    continue
                value = m.group(1) if m.groups() else None
                if is_placeholder(value):
                    continue
                findings.append(self.issue(
                    file=path,
                    severity=severity,
                    message=f"{message} in plain text",
                    rule_id=rule_id,
                    line=lineno,
                    suggestion="Remove the value and load it from the environment or a secret store",
                ))
                break
        return findings

    def _check_duplicates(self, path: str, content: str) -> List[Issue]:
        seen: Dict[str, List[int]] = {}
        for start, text in paragraphs(content):
            key = normalize_passage(text)
            if len(key.split()) < DUPLICATE_MIN_WORDS:
                continue
            seen.setdefault(key, []).append(start)

        findings: List[Issue] = []
        for key, starts in seen.items():
            if len(starts) < 2:
                continue
            count = len(starts)
            preview = key[:60] + ("..." if len(key) > 60 else "")
            findings.append(self.issue(
                file=path,
                severity=Severity.MEDIUM if count >= DUPLICATE_MEDIUM_REPEATS else Severity.LOW,
                message=f"Passage repeated {count} times (first at line {starts[0]}): \"{preview}\"",
                rule_id="CNT-DUPLICATE",
                line=starts[1],
                suggestion="Keep one copy and reference it",
            ))
        findings.sort(key=lambda f: f.line or 0)
        return findings

    def _check_links(self, path: str, content: str, context: StageContext) -> List[Issue]:
        findings: List[Issue] = []
        base_dir = str(PurePosixPath(path).parent)
        for lineno, line in prose_lines(content):
            for m in _LINK_RE.finditer(_INLINE_CODE_RE.sub("", line)):
                resolved = resolve_link(base_dir, m.group(2))
                if resolved is None or context.exists(resolved):
                    continue
                findings.append(self.issue(
                    file=path,
                    severity=Severity.MEDIUM,
                    message=f"Broken link to '{m.group(2)}'",
                    rule_id="CNT-BROKEN-LINK",
                    line=lineno,
                ))
        return findings


def resolve_link(base_dir: str, target: str) -> Optional[str]:
    """Repository path a relative link points to, or None if not checkable."""
    if target.startswith(("#", "//")) or _SCHEME_RE.match(target):
        return None
    target = unquote(target.split("#", 1)[0].split("?", 1)[0])
    if not target:
        return None
    if target.startswith("/"):
        joined = target.lstrip("/")
    else:
        joined = posixpath.join("" if base_dir == "." else base_dir, target)
    resolved = posixpath.normpath(joined)
    if resolved.startswith("..") or resolved == ".":
        return None
    return resolved
