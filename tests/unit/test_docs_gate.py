"""Tests for the CHANGELOG and README documentation gates."""

import textwrap

import pytest

from reviewgate.review.categorizer import Categorizer
from reviewgate.review.checks.base import StageContext
from reviewgate.review.checks.docs_gate import (
    ChangelogGate,
    ReadmeGate,
    component_name,
    has_typed_entry,
    mentions,
    unreleased_section,
)
from reviewgate.review.collector import StaticDiffSource
from reviewgate.review.errors import ToolUnavailable
from reviewgate.review.models import ChangedFile, ChangeSet, DiffStats, FileCategory, Severity

GOOD_CHANGELOG = textwrap.dedent("""\
    # Changelog

    ## [Unreleased]

    ### Added

    - New `foo` skill.

    ## [1.0.0] - 2025-01-01

    ### Added

    - Initial release.
""")


def _changeset(changes):
    categorizer = Categorizer()
    return ChangeSet(files=tuple(
        ChangedFile(path, categorizer.categorize(path), DiffStats(status))
        for path, status in sorted(changes.items())
    ))


def _context(files):
    return StageContext(repo=StaticDiffSource({}, files=files))


# ---------------------------------------------------------------------------
# CHANGELOG parsing helpers
# ---------------------------------------------------------------------------


class TestChangelogParsing:
    def test_unreleased_section_stops_at_next_release(self):
        section = unreleased_section(GOOD_CHANGELOG)
        assert "- New `foo` skill." in section
        assert "- Initial release." not in section

    def test_unreleased_section_without_brackets(self):
        assert unreleased_section("## Unreleased\n### Fixed\n- x\n") is not None

    def test_missing_unreleased_section(self):
        assert unreleased_section("# Changelog\n\n## [1.0.0]\n- x\n") is None

    def test_typed_entry_required(self):
        assert has_typed_entry(["### Added", "- thing"])
        assert not has_typed_entry(["- untyped thing"])
        assert not has_typed_entry(["### Notes", "- thing"])
        assert not has_typed_entry(["### Fixed", ""])


# ---------------------------------------------------------------------------
# ChangelogGate
# ---------------------------------------------------------------------------


class TestChangelogGate:
    def setup_method(self):
        self.stage = ChangelogGate()

    def test_missing_entry_blocks(self):
        changeset = _changeset({"skills/foo/SKILL.md": "A"})
        result = self.stage.run(changeset, _context({}))
        assert result.blocked
        assert result.is_gating
        assert [i.rule_id for i in result.issues] == ["DOC-CHANGELOG-MISSING"]
        assert result.issues[0].severity == Severity.HIGH
        assert result.doc_status[0].status == "missing"

    def test_updated_changelog_passes(self):
        changeset = _changeset({"skills/foo/SKILL.md": "A", "CHANGELOG.md": "M"})
        result = self.stage.run(changeset, _context({"CHANGELOG.md": GOOD_CHANGELOG}))
        assert not result.blocked
        assert result.issues == ()
        assert result.doc_status[0].status == "updated"

    def test_documentation_only_change_not_required(self):
        changeset = _changeset({"README.md": "M"})
        result = self.stage.run(changeset, _context({}))
        assert not result.blocked
        assert result.doc_status[0].status == "not_required"

    def test_deleted_changelog_is_critical(self):
        changeset = _changeset({"commands/bar.md": "M", "CHANGELOG.md": "D"})
        result = self.stage.run(changeset, _context({}))
        assert result.blocked
        assert result.issues[0].severity == Severity.CRITICAL

    def test_no_unreleased_section(self):
        changeset = _changeset({"commands/bar.md": "M", "CHANGELOG.md": "M"})
        content = "# Changelog\n\n## [1.0.0]\n\n### Added\n\n- x\n"
        result = self.stage.run(changeset, _context({"CHANGELOG.md": content}))
        assert result.blocked
        assert result.issues[0].rule_id == "DOC-CHANGELOG-SECTION"
        assert result.issues[0].severity == Severity.HIGH

    def test_malformed_entry(self):
        changeset = _changeset({"commands/bar.md": "M", "CHANGELOG.md": "M"})
        content = "# Changelog\n\n## [Unreleased]\n\n- untyped\n"
        result = self.stage.run(changeset, _context({"CHANGELOG.md": content}))
        assert result.blocked
        assert result.issues[0].rule_id == "DOC-CHANGELOG-FORMAT"
        assert result.doc_status[0].status == "malformed"

    def test_unreadable_changelog_raises_tool_unavailable(self):
        changeset = _changeset({"commands/bar.md": "M", "CHANGELOG.md": "M"})
        with pytest.raises(ToolUnavailable):
            self.stage.run(changeset, _context({}))


# ---------------------------------------------------------------------------
# ReadmeGate
# ---------------------------------------------------------------------------


class TestReadmeGate:
    def setup_method(self):
        self.stage = ReadmeGate()

    def test_new_skill_without_readme_blocks(self):
        changeset = _changeset({"skills/foo/SKILL.md": "A"})
        result = self.stage.run(changeset, _context({}))
        assert result.blocked
        assert result.issues[0].rule_id == "DOC-README-MISSING"
        assert result.issues[0].severity == Severity.HIGH
        assert "foo" in result.issues[0].message

    def test_modified_component_does_not_need_readme(self):
        changeset = _changeset({"skills/foo/SKILL.md": "M"})
        result = self.stage.run(changeset, _context({}))
        assert not result.blocked
        assert result.doc_status[0].status == "not_required"

    def test_readme_mentions_component(self):
        changeset = _changeset({"commands/bar.md": "A", "README.md": "M"})
        result = self.stage.run(changeset, _context({"README.md": "## Commands\n\n- `Bar`: lists PRs\n"}))
        assert not result.blocked
        assert result.doc_status[0].status == "updated"

    def test_unlisted_component_flagged_individually(self):
        changeset = _changeset({
            "commands/bar.md": "A",
            "mcp-servers/github/README.md": "A",
            "README.md": "M",
        })
        result = self.stage.run(changeset, _context({"README.md": "- bar\n"}))
        assert result.blocked
        assert [i.rule_id for i in result.issues] == ["DOC-README-UNLISTED"]
        assert "github" in result.issues[0].message

    def test_deleted_readme_is_critical(self):
        changeset = _changeset({"commands/bar.md": "A", "README.md": "D"})
        result = self.stage.run(changeset, _context({}))
        assert result.issues[0].severity == Severity.CRITICAL

    def test_name_inside_longer_word_is_not_a_mention(self):
        changeset = _changeset({"commands/re.md": "A", "README.md": "M"})
        result = self.stage.run(changeset, _context({"README.md": "This repository is great.\n"}))
        assert result.blocked
        assert [i.rule_id for i in result.issues] == ["DOC-README-UNLISTED"]
        assert result.doc_status[0].status == "malformed"


class TestMentions:
    @pytest.mark.parametrize(
        "content,name,expected",
        [
            ("- `re`: rebase helper", "re", True),
            ("See /re for details.", "re", True),
            ("This repository is great.", "re", False),
            ("- code-review: reviews PRs", "review", False),
            ("- code-review: reviews PRs", "code-review", True),
            ("- [Git](commands/git.md)", "git", True),
            ("- github tools", "git", False),
        ],
    )
    def test_whole_word(self, content, name, expected):
        assert mentions(content, name) is expected


class TestComponentName:
    def test_names(self):
        assert component_name(ChangedFile("skills/foo/SKILL.md", FileCategory.SKILL)) == "foo"
        assert component_name(ChangedFile("commands/bar.md", FileCategory.COMMAND)) == "bar"
        assert component_name(
            ChangedFile("mcp-servers/github/README.md", FileCategory.MCP_SERVER)
        ) == "github"
