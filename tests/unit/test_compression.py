"""Tests for the compression confirmation gate."""

import sys
from unittest.mock import MagicMock

import pytest
import yaml

from reviewgate.review.compression import (
    CommandActuator,
    ConfirmationStore,
    apply_confirmed,
)
from reviewgate.review.errors import ReviewGateError, ToolUnavailable
from reviewgate.review.models import ConfirmationRequest

REQUEST = ConfirmationRequest(file="README.md", estimated_percent=35.0, level="moderate")


# ---------------------------------------------------------------------------
# ConfirmationStore
# ---------------------------------------------------------------------------


class TestConfirmationStore:
    def test_empty_when_missing(self, tmp_path):
        store = ConfirmationStore.for_project(tmp_path)
        assert store.decision("README.md") is None
        assert not store.is_confirmed("README.md")

    def test_record_persists(self, tmp_path):
        ConfirmationStore.for_project(tmp_path).record("README.md", True)
        ConfirmationStore.for_project(tmp_path).record("docs/guide.md", False)

        reloaded = ConfirmationStore.for_project(tmp_path)
        assert reloaded.is_confirmed("README.md")
        assert reloaded.decision("docs/guide.md") is False

        with open(tmp_path / ".reviewgate" / "confirmations.yaml") as f:
            data = yaml.safe_load(f)
        assert data == {"decisions": {"README.md": "yes", "docs/guide.md": "no"}}

    def test_decline_overrides_yes(self, tmp_path):
        store = ConfirmationStore.for_project(tmp_path)
        store.record("README.md", True)
        store.record("README.md", False)
        assert not ConfirmationStore.for_project(tmp_path).is_confirmed("README.md")

    def test_invalid_file_raises(self, tmp_path):
        path = tmp_path / "confirmations.yaml"
        path.write_text("decisions:\n  - README.md\n")
        with pytest.raises(ValueError):
            ConfirmationStore(path).decision("README.md")


# ---------------------------------------------------------------------------
# apply_confirmed
# ---------------------------------------------------------------------------


class TestApplyConfirmed:
    def test_never_applies_without_yes(self, tmp_path):
        actuator = MagicMock()
        store = ConfirmationStore.for_project(tmp_path)

        assert apply_confirmed([REQUEST], store, actuator) == {}
        actuator.apply.assert_not_called()

    def test_declined_not_applied(self, tmp_path):
        actuator = MagicMock()
        store = ConfirmationStore.for_project(tmp_path)
        store.record("README.md", False)

        assert apply_confirmed([REQUEST], store, actuator) == {}
        actuator.apply.assert_not_called()

    def test_applies_after_yes(self, tmp_path):
        actuator = MagicMock()
        actuator.apply.return_value = "# Short\n"
        store = ConfirmationStore.for_project(tmp_path)
        store.record("README.md", True)

        assert apply_confirmed([REQUEST], store, actuator) == {"README.md": "# Short\n"}
        actuator.apply.assert_called_once_with("README.md", "moderate")

    def test_actuator_failure_skips_file(self, tmp_path):
        other = ConfirmationRequest(file="docs/a.md", estimated_percent=60.0, level="aggressive")
        actuator = MagicMock()
        actuator.apply.side_effect = [ReviewGateError("failed"), "compressed"]
        store = ConfirmationStore.for_project(tmp_path)
        store.record("README.md", True)
        store.record("docs/a.md", True)

        assert apply_confirmed([REQUEST, other], store, actuator) == {"docs/a.md": "compressed"}


# ---------------------------------------------------------------------------
# CommandActuator
# ---------------------------------------------------------------------------


class TestCommandActuator:
    def test_build_args_substitutes(self):
        actuator = CommandActuator(["compress", "--level", "{level}", "{file}"])
        assert actuator.build_args("README.md", "light") == [
            "compress", "--level", "light", "README.md",
        ]

    def test_build_args_appends_file(self):
        actuator = CommandActuator(["compress", "--level={level}"])
        assert actuator.build_args("a.md", "moderate") == ["compress", "--level=moderate", "a.md"]

    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            CommandActuator([])

    def test_missing_binary(self, tmp_path):
        actuator = CommandActuator(["reviewgate-no-such-compressor"], repo_path=tmp_path)
        with pytest.raises(ToolUnavailable):
            actuator.apply("a.md", "light")

    def test_returns_stdout(self, tmp_path):
        (tmp_path / "a.md").write_text("Hello world\n")
        script = "import sys; print(open(sys.argv[1]).read().upper(), end='')"
        actuator = CommandActuator([sys.executable, "-c", script], repo_path=tmp_path)
        assert actuator.apply("a.md", "light") == "HELLO WORLD\n"

    def test_nonzero_exit_raises(self, tmp_path):
        actuator = CommandActuator([sys.executable, "-c", "import sys; sys.exit(1)"], repo_path=tmp_path)
        with pytest.raises(ReviewGateError):
            actuator.apply("a.md", "light")

    def test_empty_output_raises(self, tmp_path):
        actuator = CommandActuator([sys.executable, "-c", "pass"], repo_path=tmp_path)
        with pytest.raises(ReviewGateError):
            actuator.apply("a.md", "light")
