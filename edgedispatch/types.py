"""
Edge Dispatcher Types

Value types shared by the registry adapters, the dispatch engine and the
HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

READY_CONDITION = "Ready"


@dataclass(frozen=True)
class NodeCondition:
    """Most recent status condition reported for a node."""
    type: str
    status: str = "True"
    reason: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.type == READY_CONDITION and self.status == "True"


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of one readiness-aware round-robin pass.

    ``node_name`` is ``None`` only when the directory was empty.  When
    ``found`` is false but a name is present, it is the last node visited
    and must be treated as a degraded fallback.
    """
    node_name: Optional[str]
    found: bool
    attempts: int = 0

    @property
    def degraded(self) -> bool:
        return self.node_name is not None and not self.found


@dataclass(frozen=True)
class DispatchResult:
    """A committed device to node assignment."""
    device_id: str
    node_name: str
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "node_name": self.node_name,
            "degraded": self.degraded,
        }
