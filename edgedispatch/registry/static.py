"""In-process node registry for development and tests."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import structlog

from edgedispatch.registry.base import NodeRegistry, RegistryError
from edgedispatch.types import READY_CONDITION, NodeCondition

logger = structlog.get_logger(__name__)


class StaticNodeRegistry(NodeRegistry):
    """
    Registry backed by a fixed, mutable list of edge node names.

    Every node starts ready.  Readiness and availability can be flipped at
    runtime to emulate a live cluster.
    """

    def __init__(self, nodes: Iterable[str] = ()) -> None:
        self._nodes: List[str] = []
        self._ready: Dict[str, bool] = {}
        self._available = True
        for name in nodes:
            self.add_node(name)

        logger.info("static_registry.init", nodes=len(self._nodes))

    def add_node(self, name: str, ready: bool = True) -> None:
        if name not in self._ready:
            self._nodes.append(name)
        self._ready[name] = ready

    def remove_node(self, name: str) -> None:
        if name in self._ready:
            self._nodes.remove(name)
            del self._ready[name]

    def set_ready(self, name: str, ready: bool) -> None:
        if name not in self._ready:
            raise KeyError(name)
        self._ready[name] = ready

    def set_available(self, available: bool) -> None:
        """Simulate the registry becoming reachable or unreachable."""
        self._available = available

    async def list_edge_nodes(self) -> List[str]:
        if not self._available:
            raise RegistryError("list", "static registry marked unavailable")
        return list(self._nodes)

    async def get_node_readiness(self, name: str) -> Optional[NodeCondition]:
        if not self._available:
            raise RegistryError("get", "static registry marked unavailable")
        if name not in self._ready:
            raise RegistryError("get", f"node {name!r} not found")
        return NodeCondition(
            type=READY_CONDITION,
            status="True" if self._ready[name] else "False",
        )
