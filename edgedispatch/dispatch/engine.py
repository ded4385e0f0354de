"""
Edge Dispatcher Engine

Composes the node directory, the round-robin selector and the binding
store.  One engine instance owns the directory snapshot and the rotation
pointer for the whole process and is handed to request handlers by
reference.

Per dispatch:
    1. apply the directory refresh policy
    2. walk the directory for the next ready node
    3. durably bind the device to that node
    4. return the node name
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from edgedispatch.config import DirectoryConfig
from edgedispatch.dispatch.directory import NodeDirectory
from edgedispatch.dispatch.selector import RoundRobinSelector
from edgedispatch.persistence.base import BindingStore
from edgedispatch.registry.base import NodeRegistry
from edgedispatch.types import DispatchResult

logger = structlog.get_logger(__name__)


class DispatchError(Exception):
    """Base class for dispatch failures reported to the caller."""


class InvalidDeviceIdError(DispatchError):
    """Raised when a dispatch is requested without a device id."""

    def __init__(self) -> None:
        super().__init__("Device ID can not be empty")


class NoEdgeNodeError(DispatchError):
    """Raised when the node directory is empty and no binding can be made."""

    def __init__(self) -> None:
        super().__init__("No edge node available")


class DispatchEngine:
    """
    Assigns devices to edge nodes and records the assignment.

    Args:
        registry: Cluster node registry.
        store: Initialized or uninitialized binding store; :meth:`start`
            initializes it.
        directory_config: Refresh policy for the node directory.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        store: BindingStore,
        directory_config: Optional[DirectoryConfig] = None,
    ) -> None:
        directory_config = directory_config or DirectoryConfig()
        self.registry = registry
        self.store = store
        self.directory = NodeDirectory(
            registry,
            refresh_interval=directory_config.refresh_interval_seconds,
            background_refresh=directory_config.background_refresh,
        )
        self.selector = RoundRobinSelector(registry)

        self._dispatched = 0
        self._degraded = 0
        self._failed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the store and load the initial directory.

        Store failures propagate: a dispatcher without durable storage must
        not start.
        """
        await self.store.initialize()
        size = await self.directory.refresh()
        await self.directory.start()
        logger.info("dispatch_engine.started", edge_nodes=size)

    async def stop(self) -> None:
        await self.directory.stop()
        await self.store.shutdown()
        await self.registry.close()
        logger.info("dispatch_engine.stopped", dispatched=self._dispatched)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, device_id: str) -> DispatchResult:
        """
        Pick a node for ``device_id`` and persist the binding.

        Raises:
            InvalidDeviceIdError: ``device_id`` is empty.
            NoEdgeNodeError: The directory holds no nodes.
            BindingStoreError: The binding could not be committed.
        """
        if not device_id:
            raise InvalidDeviceIdError()

        await self.directory.maybe_refresh()
        selection = await self.selector.select_ready(self.directory.nodes)
        if selection.node_name is None:
            self._failed += 1
            logger.warning("dispatch_engine.no_edge_nodes", device_id=device_id)
            raise NoEdgeNodeError()

        if selection.degraded:
            self._degraded += 1
            logger.warning(
                "dispatch_engine.degraded",
                device_id=device_id,
                node=selection.node_name,
            )

        try:
            await self.store.put(device_id, selection.node_name)
        except Exception:
            self._failed += 1
            raise

        self._dispatched += 1
        logger.info(
            "dispatch_engine.dispatched",
            device_id=device_id,
            node=selection.node_name,
            attempts=selection.attempts,
            degraded=selection.degraded,
        )
        return DispatchResult(
            device_id=device_id,
            node_name=selection.node_name,
            degraded=selection.degraded,
        )

    async def lookup(self, device_id: str) -> Optional[str]:
        """Return the node currently bound to ``device_id``."""
        if not device_id:
            raise InvalidDeviceIdError()
        return await self.store.get(device_id)

    async def get_status(self) -> Dict[str, Any]:
        store_healthy = await self.store.health_check()
        return {
            "status": "healthy" if store_healthy and len(self.directory) else "degraded",
            "directory": self.directory.get_stats(),
            "pointer": self.selector.pointer,
            "store": {
                "backend": type(self.store).__name__,
                "collection": self.store.collection,
                "healthy": store_healthy,
            },
            "stats": {
                "dispatched": self._dispatched,
                "degraded": self._degraded,
                "failed": self._failed,
            },
        }
