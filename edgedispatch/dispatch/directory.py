"""
Edge Dispatcher Node Directory

Holds the ordered list of edge node names the selector rotates over.
The list is rebuilt from the registry and swapped in as a new tuple, so a
selection pass always works on a complete snapshot.  A failed refresh keeps
the previous directory.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from edgedispatch.registry.base import NodeRegistry, RegistryError

logger = structlog.get_logger(__name__)


class NodeDirectory:
    """
    Snapshot of eligible edge nodes with a configurable refresh policy.

    Args:
        registry: Source of edge node names.
        refresh_interval: Minimum seconds between refreshes triggered by
            :meth:`maybe_refresh`.  ``0`` refreshes on every call.
        background_refresh: Poll the registry every ``refresh_interval``
            seconds once :meth:`start` is called.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        refresh_interval: float = 0.0,
        background_refresh: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._refresh_interval = refresh_interval
        self._background_refresh = background_refresh
        self._clock = clock

        self._nodes: Tuple[str, ...] = ()
        self._last_attempt: Optional[float] = None
        self._last_success: Optional[float] = None
        self._last_error: Optional[str] = None
        self._refresh_count = 0
        self._refresh_lock = asyncio.Lock()

        self._running = False
        self._poll_task: Optional[asyncio.Task[None]] = None

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Tuple[str, ...]:
        return self._nodes

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def __len__(self) -> int:
        return len(self._nodes)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> int:
        """
        Rebuild the directory from the registry.

        Returns the size of the directory in effect afterwards.  When the
        registry query fails the previous directory is retained.
        """
        self._last_attempt = self._clock()
        try:
            names = await self._registry.list_edge_nodes()
        except RegistryError as exc:
            self._last_error = str(exc)
            logger.warning(
                "node_directory.refresh_failed",
                error=str(exc),
                retained=len(self._nodes),
            )
            return len(self._nodes)

        previous = self._nodes
        self._nodes = tuple(names)
        self._last_success = self._last_attempt
        self._last_error = None
        self._refresh_count += 1

        if self._nodes != previous:
            logger.info(
                "node_directory.changed",
                previous=len(previous),
                current=len(self._nodes),
            )
        logger.debug("node_directory.refreshed", nodes=len(self._nodes))
        return len(self._nodes)

    def _is_stale(self) -> bool:
        if self._last_attempt is None or self._refresh_interval <= 0:
            return True
        return self._clock() - self._last_attempt >= self._refresh_interval

    async def maybe_refresh(self) -> bool:
        """Refresh if the refresh interval has elapsed.

        Concurrent callers wait on the same refresh instead of issuing
        their own registry query.  Returns whether a refresh was attempted.
        """
        if self._background_refresh and self._last_attempt is not None:
            return False
        if not self._is_stale():
            return False
        async with self._refresh_lock:
            if self._refresh_interval > 0 and not self._is_stale():
                return False
            await self.refresh()
            return True

    # ------------------------------------------------------------------
    # Background polling
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background refresh loop if enabled."""
        if self._running or not self._background_refresh:
            return
        self._running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(
            "node_directory.polling_started",
            interval=self._refresh_interval,
        )

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        if not self._running:
            return
        self._running = False

        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        logger.info("node_directory.polling_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._refresh_interval)
            try:
                async with self._refresh_lock:
                    await self.refresh()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("node_directory.poll_error")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "nodes": list(self._nodes),
            "size": len(self._nodes),
            "refresh_interval": self._refresh_interval,
            "background_refresh": self._background_refresh,
            "refresh_count": self._refresh_count,
            "last_error": self._last_error,
            "seconds_since_refresh": (
                None if self._last_success is None
                else round(self._clock() - self._last_success, 3)
            ),
        }
