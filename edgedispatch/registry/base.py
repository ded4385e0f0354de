"""
Edge Dispatcher Node Registry Interface

Abstract base class for the cluster membership source queried by the
dispatch engine.  Both operations are treated as remote, fallible calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from edgedispatch.types import NodeCondition


class RegistryError(Exception):
    """Raised when the node registry cannot be queried."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Registry {operation} failed: {detail}")


class NodeRegistry(ABC):
    """
    Abstract base class for node registries.

    Implementations translate their transport errors into
    :class:`RegistryError`.
    """

    @abstractmethod
    async def list_edge_nodes(self) -> List[str]:
        """Return names of nodes carrying the edge-role marker, in registry order."""
        pass

    @abstractmethod
    async def get_node_readiness(self, name: str) -> Optional[NodeCondition]:
        """Return the node's most recent status condition, ``None`` if it has none."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
