"""
Edge Dispatcher Round-Robin Selector

Readiness-aware round-robin over a node directory snapshot.  A single
rotation pointer is shared by every concurrent selection; it is read and
advanced under a lock, while the per-candidate readiness query runs
outside the lock so registry calls are never serialized.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import structlog

from edgedispatch.registry.base import NodeRegistry
from edgedispatch.types import SelectionResult

logger = structlog.get_logger(__name__)


class RoundRobinSelector:
    """Round-robin node selection that skips nodes which are not ready.

    At most one full rotation is walked per call.  The pointer survives
    directory changes and is reduced modulo the snapshot length before use,
    so a shrunken directory never causes an out-of-range read.
    """

    def __init__(self, registry: NodeRegistry, start: int = 0) -> None:
        self._registry = registry
        self._index: int = start
        self._lock = asyncio.Lock()

    @property
    def pointer(self) -> int:
        return self._index

    async def _advance(self, total: int) -> int:
        async with self._lock:
            idx = self._index % total
            self._index = (idx + 1) % total
            return idx

    async def is_ready(self, name: str) -> bool:
        """Query readiness; any registry failure counts as not ready."""
        try:
            condition = await self._registry.get_node_readiness(name)
        except Exception as exc:
            logger.warning(
                "round_robin.readiness_query_failed",
                node=name,
                error=str(exc),
            )
            return False
        return condition is not None and condition.is_ready

    async def select_ready(self, nodes: Sequence[str]) -> SelectionResult:
        """Return the next ready node starting at the rotation pointer.

        Args:
            nodes: Directory snapshot to rotate over.

        Returns:
            A :class:`SelectionResult`.  With an empty snapshot the name is
            ``None`` and the pointer is untouched.  When no candidate is
            ready the last visited name is returned with ``found=False``.
        """
        snapshot = tuple(nodes)
        total = len(snapshot)
        if total == 0:
            logger.debug("round_robin.empty_directory")
            return SelectionResult(node_name=None, found=False, attempts=0)

        candidate: Optional[str] = None
        for attempt in range(1, total + 1):
            idx = await self._advance(total)
            candidate = snapshot[idx]
            if await self.is_ready(candidate):
                logger.debug(
                    "round_robin.selected",
                    node=candidate,
                    index=idx,
                    attempts=attempt,
                    total=total,
                )
                return SelectionResult(node_name=candidate, found=True, attempts=attempt)

        logger.warning(
            "round_robin.no_ready_node",
            fallback=candidate,
            total=total,
        )
        return SelectionResult(node_name=candidate, found=False, attempts=total)
