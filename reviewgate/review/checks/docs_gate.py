"""Stage 2: documentation gates.

Both gates block the verdict when a required documentation update is
missing; they never stop later stages from running.

Rules:
- DOC-CHANGELOG-MISSING   : CHANGELOG.md not updated for a non-doc change
- DOC-CHANGELOG-SECTION   : no ``## [Unreleased]`` section
- DOC-CHANGELOG-FORMAT    : Unreleased section has no typed ``- `` entry
- DOC-CHANGELOG-DELETED   : CHANGELOG.md removed
- DOC-README-MISSING      : README.md not updated for new components
- DOC-README-UNLISTED     : README.md does not mention a new component
- DOC-README-DELETED      : README.md removed
"""

import re
from pathlib import PurePosixPath
from typing import List, Optional, Tuple

from reviewgate.review.checks.base import CheckStage, StageContext
from reviewgate.review.errors import ToolUnavailable
from reviewgate.review.models import (
    COMPONENT_CATEGORIES,
    ChangedFile,
    ChangeSet,
    DocGateStatus,
    FileCategory,
    Issue,
    Severity,
    StageKind,
    StageResult,
)

CHANGE_TYPES = ("Added", "Changed", "Deprecated", "Removed", "Fixed", "Security")

_UNRELEASED_RE = re.compile(r"^##\s+\[?unreleased\]?\s*$", re.IGNORECASE)
_RELEASE_HEADING_RE = re.compile(r"^##\s+\S")
_CHANGE_TYPE_RE = re.compile(
    r"^###\s+(" + "|".join(CHANGE_TYPES) + r")\s*$", re.IGNORECASE
)
_ENTRY_RE = re.compile(r"^\s*[-*]\s+\S")


def unreleased_section(content: str) -> Optional[List[str]]:
    """Lines of the ``## [Unreleased]`` section, or None if absent."""
    lines = content.splitlines()
    for idx, line in enumerate(lines):
        if _UNRELEASED_RE.match(line.strip()):
            section: List[str] = []
            for follow in lines[idx + 1:]:
                if _RELEASE_HEADING_RE.match(follow):
                    break
                section.append(follow)
            return section
    return None


def has_typed_entry(section: List[str]) -> bool:
    """True if a ``### <type>`` subsection holds at least one bullet."""
    in_typed = False
    for line in section:
        stripped = line.strip()
        if stripped.startswith("###"):
            in_typed = bool(_CHANGE_TYPE_RE.match(stripped))
            continue
        if in_typed and _ENTRY_RE.match(line):
            return True
    return False


def mentions(content: str, name: str) -> bool:
    """True if ``name`` appears in ``content`` as a whole word, ignoring case."""
    pattern = r"(?<![\w-])" + re.escape(name) + r"(?![\w-])"
    return re.search(pattern, content, re.IGNORECASE) is not None


def component_name(changed: ChangedFile) -> str:
    """Name a README is expected to mention for a new component."""
    path = PurePosixPath(changed.path)
    if changed.category == FileCategory.COMMAND:
        return path.stem
    return path.parent.name


class _DocumentationGate(CheckStage):
    kind = StageKind.GATING

    def _result(self, issues: List[Issue], status: DocGateStatus) -> StageResult:
        return StageResult(
            stage_id=self.stage_id,
            kind=self.kind,
            issues=tuple(issues),
            blocked=bool(issues),
            doc_status=(status,),
        )


class ChangelogGate(_DocumentationGate):
    """Requires an Unreleased CHANGELOG entry for any non-documentation change."""

    stage_id = "changelog"

    def run(self, changeset: ChangeSet, context: StageContext) -> StageResult:
        path = context.changelog_path
        needs_entry = [
            f for f in changeset
            if f.category != FileCategory.DOCUMENTATION and f.path != path
        ]

        if not needs_entry:
            return self._result([], DocGateStatus(path, "not_required", "no component changes"))

        changed = changeset.get(path)
        if changed is None:
            issue = self.issue(
                file=path,
                severity=Severity.HIGH,
                message=f"{path} has no entry for this change ({len(needs_entry)} file(s) changed)",
                rule_id="DOC-CHANGELOG-MISSING",
                suggestion="Add a bullet under '## [Unreleased]' describing the change",
            )
            return self._result([issue], DocGateStatus(path, "missing"))

        if changed.is_deleted:
            issue = self.issue(
                file=path,
                severity=Severity.CRITICAL,
                message=f"{path} was deleted",
                rule_id="DOC-CHANGELOG-DELETED",
            )
            return self._result([issue], DocGateStatus(path, "deleted"))

        content = context.read(path)
        if content is None:
            raise ToolUnavailable("repository", f"cannot read {path} to verify its entry")

        section = unreleased_section(content)
        if section is None:
            issue = self.issue(
                file=path,
                severity=Severity.HIGH,
                message=f"{path} has no '## [Unreleased]' section",
                rule_id="DOC-CHANGELOG-SECTION",
                suggestion="Add '## [Unreleased]' above the latest release heading",
            )
            return self._result([issue], DocGateStatus(path, "malformed", "no Unreleased section"))

        if not has_typed_entry(section):
            issue = self.issue(
                file=path,
                severity=Severity.HIGH,
                message=(
                    f"{path} Unreleased section has no entry under "
                    f"'### {'|'.join(CHANGE_TYPES)}'"
                ),
                rule_id="DOC-CHANGELOG-FORMAT",
                suggestion="Use '### Added' (or another change type) followed by '- description'",
            )
            return self._result([issue], DocGateStatus(path, "malformed", "entry format"))

        return self._result([], DocGateStatus(path, "updated"))


class ReadmeGate(_DocumentationGate):
    """Requires README.md to list every newly added skill, command or MCP server."""

    stage_id = "readme"
    applicable_categories = COMPONENT_CATEGORIES

    def run(self, changeset: ChangeSet, context: StageContext) -> StageResult:
        path = context.readme_path
        new_components: List[Tuple[ChangedFile, str]] = [
            (f, component_name(f))
            for f in self.applicable(changeset)
            if f.stats.is_added
        ]

        if not new_components:
            return self._result([], DocGateStatus(path, "not_required", "no new components"))

        names = ", ".join(f"{c.category.value} '{name}'" for c, name in new_components)
        changed = changeset.get(path)

        if changed is None:
            issue = self.issue(
                file=path,
                severity=Severity.HIGH,
                message=f"{path} not updated for new {names}",
                rule_id="DOC-README-MISSING",
                suggestion="List each new component in the README index",
            )
            return self._result([issue], DocGateStatus(path, "missing"))

        if changed.is_deleted:
            issue = self.issue(
                file=path,
                severity=Severity.CRITICAL,
                message=f"{path} was deleted",
                rule_id="DOC-README-DELETED",
            )
            return self._result([issue], DocGateStatus(path, "deleted"))

        content = context.read(path)
        if content is None:
            raise ToolUnavailable("repository", f"cannot read {path} to verify its entries")

        issues = [
            self.issue(
                file=path,
                severity=Severity.HIGH,
                message=f"{path} does not mention new {component.category.value} '{name}'",
                rule_id="DOC-README-UNLISTED",
                suggestion=f"Add an entry for '{name}' ({component.path})",
            )
            for component, name in new_components
            if not mentions(content, name)
        ]
        status = (
            DocGateStatus(path, "malformed", f"{len(issues)} component(s) not listed")
            if issues
            else DocGateStatus(path, "updated")
        )
        return self._result(issues, status)
