"""External tool availability probes.

The pipeline asks once per run whether each tool exists, and stages that
need a missing tool are skipped rather than failed.
"""

import shutil
from typing import Dict, Iterable, Mapping, Optional, Protocol, Tuple

from reviewgate.review.models import ToolStatus
from reviewgate.utils.logging import get_logger

logger = get_logger("review.tools")


class ToolAvailability(Protocol):
    def is_available(self, tool: str) -> bool:
        ...


class WhichToolProbe:
    """Looks tools up on ``PATH``; ``overrides`` force a result per tool."""

    def __init__(self, overrides: Optional[Mapping[str, bool]] = None) -> None:
        self.overrides: Dict[str, bool] = dict(overrides or {})

    def is_available(self, tool: str) -> bool:
        if tool in self.overrides:
            return bool(self.overrides[tool])
        found = shutil.which(tool) is not None
        logger.debug(f"Tool probe: {tool} -> {'found' if found else 'missing'}")
        return found


class StaticToolProbe:
    """Fixed availability table; unknown tools use ``default``."""

    def __init__(self, available: Mapping[str, bool], default: bool = False) -> None:
        self.available = dict(available)
        self.default = default

    def is_available(self, tool: str) -> bool:
        return bool(self.available.get(tool, self.default))


def probe_tools(
    probe: ToolAvailability, tools: Iterable[str]
) -> Tuple[ToolStatus, ...]:
    """Probe each distinct tool once, in sorted order."""
    statuses = []
    for name in sorted(set(tools)):
        try:
            available = bool(probe.is_available(name))
        except Exception as e:
            logger.warning(f"Probe for tool '{name}' failed: {e}")
            available = False
        statuses.append(ToolStatus(name=name, available=available))
    return tuple(statuses)
