"""Second-opinion reviewer.

The external reviewer sees only what collection produced (changeset summary
and per-file facts), never the pipeline's own issues, and its opinion is
attached to the report without affecting the verdict. Every failure mode
turns into an ``ExternalReviewOutcome`` status; the pipeline never waits
longer than the adapter's timeout and never retries.
"""

import asyncio
import contextlib
import json
from typing import Any, Dict, List, Optional, Protocol, Sequence

from reviewgate.review.errors import ExternalReviewerTimeout, ReviewGateError, ToolUnavailable
from reviewgate.review.models import ExternalOpinion, ExternalReviewOutcome
from reviewgate.review.tools import ToolAvailability
from reviewgate.utils.logging import get_logger

logger = get_logger("review.external")

DEFAULT_TIMEOUT = 30.0
REAP_TIMEOUT = 5.0
DEFAULT_COMMAND = (
    "gemini",
    "-p",
    "Review the repository change described on stdin. Reply with a short opinion.",
)

PROMPT_TEMPLATE = """You are reviewing a change to a repository of agent skills, \
slash commands and MCP servers.

Changeset summary:
{summary}

Changed files:
{findings}

Give an independent opinion: what looks risky, what is missing, and whether
you would merge it as is. Keep it under 200 words."""


class ExternalReviewer(Protocol):
    """An independent reviewer; ``review`` returns free-form text."""

    name: str

    async def review(self, summary: Dict[str, Any], findings: List[Dict[str, Any]]) -> str:
        ...


def build_prompt(summary: Dict[str, Any], findings: List[Dict[str, Any]]) -> str:
    return PROMPT_TEMPLATE.format(
        summary=json.dumps(summary, indent=2, sort_keys=True),
        findings=json.dumps(findings, indent=2, sort_keys=True),
    )


class CommandReviewer:
    """Runs a reviewer command with the prompt on stdin.

    Args:
        command: Program and arguments, e.g. ``["gemini", "-p", "..."]``.
        name: Label shown in the report; defaults to the program name.
    """

    def __init__(self, command: Sequence[str] = DEFAULT_COMMAND, name: Optional[str] = None):
        if not command:
            raise ValueError("Reviewer command must not be empty")
        self.command = list(command)
        self.name = name or self.command[0]

    @property
    def tool(self) -> str:
        return self.command[0]

    async def review(self, summary: Dict[str, Any], findings: List[Dict[str, Any]]) -> str:
        prompt = build_prompt(summary, findings)
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolUnavailable(self.tool) from e

        try:
            stdout, stderr = await proc.communicate(prompt.encode("utf-8"))
        except asyncio.CancelledError:
            # wait_for cancels us on timeout; do not leave the child running
            if proc.returncode is None:
                proc.kill()
                # Reap the child before the loop closes
                with contextlib.suppress(asyncio.TimeoutError, asyncio.CancelledError):
                    await asyncio.wait_for(asyncio.shield(proc.wait()), REAP_TIMEOUT)
            raise

        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise ReviewGateError(
                f"{self.name} exited with status {proc.returncode}"
                + (f": {detail[:200]}" if detail else "")
            )
        return stdout.decode("utf-8", errors="replace")


class ExternalReviewerAdapter:
    """Bounds an ``ExternalReviewer`` call and maps failures to statuses.

    Statuses: ``ok``, ``unavailable`` (no reviewer or its tool is missing),
    ``timeout``, ``error`` and ``disabled``.
    """

    def __init__(
        self,
        reviewer: Optional[ExternalReviewer],
        timeout: float = DEFAULT_TIMEOUT,
        probe: Optional[ToolAvailability] = None,
        enabled: bool = True,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.reviewer = reviewer
        self.timeout = timeout
        self.probe = probe
        self.enabled = enabled

    async def review(
        self, summary: Dict[str, Any], findings: List[Dict[str, Any]]
    ) -> ExternalReviewOutcome:
        if not self.enabled:
            return ExternalReviewOutcome(status="disabled", detail="external review disabled")
        if self.reviewer is None:
            return ExternalReviewOutcome(status="unavailable", detail="no reviewer configured")

        name = getattr(self.reviewer, "name", type(self.reviewer).__name__)
        tool = getattr(self.reviewer, "tool", None)
        if tool and self.probe is not None and not self.probe.is_available(tool):
            logger.info(f"External reviewer '{name}' unavailable: '{tool}' not found")
            return ExternalReviewOutcome(status="unavailable", detail=f"'{tool}' is not installed")

        try:
            text = await asyncio.wait_for(
                self.reviewer.review(summary, findings),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, ExternalReviewerTimeout):
            error = ExternalReviewerTimeout(self.timeout)
            logger.warning(f"External reviewer '{name}': {error}")
            return ExternalReviewOutcome(status="timeout", detail=str(error))
        except ToolUnavailable as e:
            logger.info(f"External reviewer '{name}' unavailable: {e.reason}")
            return ExternalReviewOutcome(status="unavailable", detail=e.reason)
        except Exception as e:
            logger.warning(f"External reviewer '{name}' failed: {e}")
            return ExternalReviewOutcome(status="error", detail=str(e))

        text = (text or "").strip()
        if not text:
            return ExternalReviewOutcome(status="error", detail="empty response")
        return ExternalReviewOutcome(
            status="ok",
            opinion=ExternalOpinion(reviewer=name, text=text),
        )
