"""Tests for the gate controller."""

import time

from reviewgate.review.checks import default_stages
from reviewgate.review.checks.base import CheckStage, StageContext
from reviewgate.review.collector import StaticDiffSource
from reviewgate.review.errors import ToolUnavailable
from reviewgate.review.gate import GateController
from reviewgate.review.models import (
    ChangedFile,
    ChangeSet,
    DiffStats,
    FileCategory,
    Severity,
    StageKind,
    StageResult,
)
from reviewgate.review.tools import StaticToolProbe


class _RecordingStage(CheckStage):
    def __init__(self, stage_id, delay=0.0, kind=StageKind.ADVISORY, tools=()):
        self.stage_id = stage_id
        self.kind = kind
        self.delay = delay
        self.required_tools = tuple(tools)
        self.calls = 0

    def run(self, changeset, context):
        self.calls += 1
        time.sleep(self.delay)
        return StageResult(
            self.stage_id,
            self.kind,
            issues=(self.issue("a.md", Severity.LOW, f"from {self.stage_id}"),),
        )


class _RaisingStage(CheckStage):
    stage_id = "boom"

    def __init__(self, error):
        self.error = error

    def run(self, changeset, context):
        raise self.error


def _inputs():
    changeset = ChangeSet(files=(ChangedFile("a.md", FileCategory.DOCUMENTATION, DiffStats("M")),))
    context = StageContext(repo=StaticDiffSource({}, files={"a.md": "# A\n"}))
    return changeset, context


class TestGateController:
    def test_prerequisites_run_first(self):
        controller = GateController([_RecordingStage("one")], probe=StaticToolProbe({}))
        run = controller.run(*_inputs())
        assert [r.stage_id for r in run.results] == ["prerequisites", "one"]

    def test_results_keep_stage_order_despite_timing(self):
        stages = [
            _RecordingStage("slow", delay=0.2),
            _RecordingStage("fast"),
            _RecordingStage("medium", delay=0.05),
        ]
        run = GateController(stages, probe=StaticToolProbe({})).run(*_inputs())
        assert [r.stage_id for r in run.results] == ["prerequisites", "slow", "fast", "medium"]

    def test_missing_tool_skips_stage_without_running_it(self):
        stage = _RecordingStage("changelog", kind=StageKind.GATING, tools=["gh"])
        run = GateController([stage], probe=StaticToolProbe({"gh": False})).run(*_inputs())

        result = run.results[1]
        assert result.skipped
        assert result.issues == ()
        assert "gh" in result.skip_reason
        assert stage.calls == 0

    def test_missing_tool_reported_by_prerequisites(self):
        stage = _RecordingStage("changelog", tools=["gh"])
        run = GateController([stage], probe=StaticToolProbe({})).run(*_inputs())
        prerequisites = run.results[0]
        assert [i.rule_id for i in prerequisites.issues] == ["PRE-TOOL-MISSING"]
        assert [(t.name, t.available) for t in run.tools] == [("gh", False)]

    def test_available_tool_runs_stage(self):
        stage = _RecordingStage("changelog", tools=["gh"])
        run = GateController([stage], probe=StaticToolProbe({"gh": True})).run(*_inputs())
        assert not run.results[1].skipped
        assert stage.calls == 1

    def test_tool_unavailable_during_run_is_skip(self):
        stage = _RaisingStage(ToolUnavailable("gh", "gh api rate limited"))
        run = GateController([stage], probe=StaticToolProbe({})).run(*_inputs())
        assert run.results[1].skipped
        assert run.results[1].skip_reason == "gh api rate limited"

    def test_unexpected_error_is_skip_and_later_stages_run(self):
        later = _RecordingStage("later")
        stages = [_RaisingStage(RuntimeError("kaboom")), later]
        run = GateController(stages, probe=StaticToolProbe({})).run(*_inputs())

        assert run.results[1].skipped
        assert run.results[1].skip_reason == "stage error: kaboom"
        assert later.calls == 1
        assert not run.results[2].skipped

    def test_extra_tools_probed(self):
        controller = GateController([], probe=StaticToolProbe({}), extra_tools=["gemini"])
        assert controller.tools_to_probe() == ["gemini"]

    def test_failing_probe_counts_as_missing(self):
        class _BrokenProbe:
            def is_available(self, tool):
                raise OSError("no PATH")

        stage = _RecordingStage("changelog", tools=["gh"])
        run = GateController([stage], probe=_BrokenProbe()).run(*_inputs())
        assert run.results[1].skipped


class TestDefaultStages:
    def test_order_and_kinds(self):
        stages = default_stages()
        assert [s.stage_id for s in stages] == [
            "changelog", "readme", "structure", "content", "token-savings", "markdown",
        ]
        assert [s.kind for s in stages[:2]] == [StageKind.GATING, StageKind.GATING]
        assert all(s.kind == StageKind.ADVISORY for s in stages[2:])

    def test_default_gate_tools(self):
        stages = {s.stage_id: s for s in default_stages()}
        assert stages["changelog"].required_tools == ("gh",)
        assert stages["markdown"].required_tools == ()

    def test_tools_overridable(self):
        stages = {s.stage_id: s for s in default_stages({"markdown": ["markdownlint"]})}
        assert stages["changelog"].required_tools == ()
        assert stages["markdown"].required_tools == ("markdownlint",)

    def test_threshold_passed_through(self):
        stages = {s.stage_id: s for s in default_stages(savings_threshold=42.0)}
        assert stages["token-savings"].threshold == 42.0
