"""Human confirmation gate for compression.

The token-savings stage only *requests* compression. A decision is recorded
explicitly (``reviewgate confirm``) and a later run hands confirmed files to
a ``CompressionActuator``. Nothing here writes reviewed files; callers decide
what to do with the returned contents.
"""

import subprocess
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Sequence

import yaml

from reviewgate.review.errors import ReviewGateError, ToolUnavailable
from reviewgate.review.models import ConfirmationRequest
from reviewgate.utils.logging import get_logger

logger = get_logger("review.compression")

DECISIONS_FILE = Path(".reviewgate") / "confirmations.yaml"
ACTUATOR_TIMEOUT = 120


class CompressionActuator(Protocol):
    def apply(self, file: str, level: str) -> str:
        """Return the compressed contents of ``file``."""
        ...


class ConfirmationStore:
    """Explicit yes/no compression decisions, one per file.

    Stored as YAML::

        decisions:
          skills/foo/SKILL.md: "yes"
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._decisions: Optional[Dict[str, bool]] = None

    @classmethod
    def for_project(cls, project_path: Path) -> "ConfirmationStore":
        return cls(Path(project_path) / DECISIONS_FILE)

    @property
    def decisions(self) -> Dict[str, bool]:
        if self._decisions is None:
            self._decisions = self._load()
        return self._decisions

    def _load(self) -> Dict[str, bool]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            data = yaml.safe_load(f) or {}
        raw = data.get("decisions") or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid decisions in {self.path}")
        return {str(k): str(v).lower() in ("yes", "true") for k, v in raw.items()}

    def decision(self, file: str) -> Optional[bool]:
        """True for yes, False for no, None when never decided."""
        return self.decisions.get(file)

    def is_confirmed(self, file: str) -> bool:
        return self.decision(file) is True

    def record(self, file: str, approved: bool) -> None:
        self.decisions[file] = approved
        self.save()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "decisions": {
                name: "yes" if approved else "no"
                for name, approved in sorted(self.decisions.items())
            }
        }
        with open(self.path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def apply_confirmed(
    requests: Iterable[ConfirmationRequest],
    store: ConfirmationStore,
    actuator: CompressionActuator,
) -> Dict[str, str]:
    """Run the actuator for confirmed requests only.

    Returns:
        ``{file: new contents}`` for every request that had a recorded "yes"
        and compressed successfully.
    """
    applied: Dict[str, str] = {}
    for request in requests:
        decision = store.decision(request.file)
        if decision is not True:
            logger.info(
                f"Not compressing {request.file}: "
                + ("declined" if decision is False else "no decision recorded")
            )
            continue
        try:
            applied[request.file] = actuator.apply(request.file, request.level)
        except ReviewGateError as e:
            logger.warning(f"Compression of {request.file} failed: {e}")
    return applied


class CommandActuator:
    """Compresses by running a command and reading its stdout.

    ``{file}`` and ``{level}`` in the arguments are substituted; when no
    argument mentions ``{file}`` the path is appended.
    """

    def __init__(self, command: Sequence[str], repo_path: Path = Path(".")) -> None:
        if not command:
            raise ValueError("Compression command must not be empty")
        self.command = list(command)
        self.repo_path = Path(repo_path)

    def build_args(self, file: str, level: str) -> list:
        args = [a.replace("{file}", file).replace("{level}", level) for a in self.command]
        if not any("{file}" in a for a in self.command):
            args.append(file)
        return args

    def apply(self, file: str, level: str) -> str:
        args = self.build_args(file, level)
        try:
            proc = subprocess.run(
                args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=ACTUATOR_TIMEOUT,
            )
        except FileNotFoundError as e:
            raise ToolUnavailable(self.command[0]) from e
        except subprocess.TimeoutExpired as e:
            raise ReviewGateError(f"Compression command timed out on {file}") from e
        if proc.returncode != 0:
            raise ReviewGateError(
                f"Compression command failed on {file}: {proc.stderr.strip() or proc.returncode}"
            )
        if not proc.stdout.strip():
            raise ReviewGateError(f"Compression command returned nothing for {file}")
        return proc.stdout
