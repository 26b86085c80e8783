"""Stage 3: per-category structural checks.

Rules:
- STR-FRONT-MATTER      : front matter missing or not valid YAML
- STR-MISSING-FIELD     : required front matter field absent or empty
- STR-NAME-MISMATCH     : skill ``name`` differs from its directory
- STR-NO-HEADING        : skill body has no heading
- STR-EMPTY-BODY        : command body is empty
- STR-MISSING-SECTION   : MCP server README lacks a required section
"""

import re
from pathlib import PurePosixPath
from typing import Dict, List, Tuple

import yaml

from reviewgate.review.checks.base import (
    CheckStage,
    StageContext,
    outside_fences,
    split_front_matter,
)
from reviewgate.review.models import (
    COMPONENT_CATEGORIES,
    ChangedFile,
    FileCategory,
    Issue,
    Severity,
)

REQUIRED_FIELDS: Dict[FileCategory, Tuple[str, ...]] = {
    FileCategory.SKILL: ("name", "description"),
    FileCategory.COMMAND: ("description",),
}

# Each entry is a group of accepted heading names; one of each must exist
MCP_REQUIRED_SECTIONS: Tuple[Tuple[str, ...], ...] = (
    ("installation", "setup"),
    ("usage",),
)

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")


def headings(body: str) -> List[str]:
    """Heading titles outside fenced code blocks, lowercased."""
    found: List[str] = []
    for _, line in outside_fences(body.splitlines()):
        m = _HEADING_RE.match(line)
        if m:
            found.append(m.group(2).strip().lower())
    return found


class StructureStage(CheckStage):
    """Required front matter and sections for skills, commands and MCP servers."""

    stage_id = "structure"
    applicable_categories = COMPONENT_CATEGORIES

    def check_file(
        self, changed: ChangedFile, content: str, context: StageContext
    ) -> List[Issue]:
        if changed.category == FileCategory.MCP_SERVER:
            return self._check_mcp_server(changed, content)
        return self._check_front_matter_doc(changed, content)

    def _check_front_matter_doc(self, changed: ChangedFile, content: str) -> List[Issue]:
        findings: List[Issue] = []
        raw, body, _ = split_front_matter(content)
        label = changed.category.value

        if raw is None:
            findings.append(self.issue(
                file=changed.path,
                severity=Severity.HIGH if changed.category == FileCategory.SKILL else Severity.MEDIUM,
                message=f"{label.capitalize()} file has no YAML front matter",
                rule_id="STR-FRONT-MATTER",
                line=1,
                suggestion="Start the file with '---', the metadata fields, and '---'",
            ))
            meta = {}
        else:
            try:
                meta = yaml.safe_load(raw) or {}
            except yaml.YAMLError as e:
                findings.append(self.issue(
                    file=changed.path,
                    severity=Severity.HIGH,
                    message=f"Front matter is not valid YAML: {str(e).splitlines()[0]}",
                    rule_id="STR-FRONT-MATTER",
                    line=1,
                ))
                meta = {}
            if not isinstance(meta, dict):
                findings.append(self.issue(
                    file=changed.path,
                    severity=Severity.HIGH,
                    message="Front matter must be a mapping of fields",
                    rule_id="STR-FRONT-MATTER",
                    line=1,
                ))
                meta = {}

        for field_name in REQUIRED_FIELDS.get(changed.category, ()):
            value = meta.get(field_name)
            if value is None or (isinstance(value, str) and not value.strip()):
                findings.append(self.issue(
                    file=changed.path,
                    severity=Severity.MEDIUM,
                    message=f"Front matter is missing '{field_name}'",
                    rule_id="STR-MISSING-FIELD",
                    line=1,
                ))

        if changed.category == FileCategory.SKILL:
            findings.extend(self._check_skill_body(changed, meta, body))
        elif changed.category == FileCategory.COMMAND and not body.strip():
            findings.append(self.issue(
                file=changed.path,
                severity=Severity.HIGH,
                message="Command file has no instructions after the front matter",
                rule_id="STR-EMPTY-BODY",
            ))

        return findings

    def _check_skill_body(self, changed: ChangedFile, meta: dict, body: str) -> List[Issue]:
        findings: List[Issue] = []
        directory = PurePosixPath(changed.path).parent.name
        name = meta.get("name")
        if isinstance(name, str) and name.strip() and name.strip() != directory:
            findings.append(self.issue(
                file=changed.path,
                severity=Severity.LOW,
                message=f"Skill name '{name.strip()}' does not match directory '{directory}'",
                rule_id="STR-NAME-MISMATCH",
                line=1,
            ))
        if not headings(body):
            findings.append(self.issue(
                file=changed.path,
                severity=Severity.MEDIUM,
                message="Skill body has no heading",
                rule_id="STR-NO-HEADING",
                suggestion="Add a '# <Skill name>' heading before the instructions",
            ))
        return findings

    def _check_mcp_server(self, changed: ChangedFile, content: str) -> List[Issue]:
        found = headings(content)
        findings: List[Issue] = []
        for accepted in MCP_REQUIRED_SECTIONS:
            if not any(any(title.startswith(name) for name in accepted) for title in found):
                findings.append(self.issue(
                    file=changed.path,
                    severity=Severity.MEDIUM,
                    message=f"MCP server README has no '{accepted[0].capitalize()}' section",
                    rule_id="STR-MISSING-SECTION",
                ))
        return findings
