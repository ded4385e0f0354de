"""
Edge Dispatcher Binding Store Interface

Abstract base class for the durable device -> node binding store.
Every ``put`` is a single all-or-nothing transaction; a store raises
:class:`BindingStoreError` instead of returning partial results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class BindingStoreError(Exception):
    """Raised when a binding store operation fails."""

    def __init__(self, operation: str, detail: str, device_id: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        self.device_id = device_id
        message = f"Binding store {operation} failed: {detail}"
        if device_id is not None:
            message = f"{message} (device {device_id!r})"
        super().__init__(message)


@dataclass
class StoreCapabilities:
    """Describes what a binding store guarantees."""
    durable: bool = True
    supports_concurrent_writers: bool = False
    networked: bool = False


class BindingStore(ABC):
    """
    Abstract base class for binding stores.

    Keys are device identifiers and values are node names.  At most one
    binding exists per device; a later ``put`` overwrites an earlier one.
    """

    def __init__(self, collection: str) -> None:
        self.collection = collection

    @property
    @abstractmethod
    def capabilities(self) -> StoreCapabilities:
        """Get store capabilities."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Open the backing storage and ensure the collection exists."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Close the backing storage."""
        pass

    @abstractmethod
    async def put(self, device_id: str, node_name: str) -> None:
        """Durably bind ``device_id`` to ``node_name``."""
        pass

    @abstractmethod
    async def get(self, device_id: str) -> Optional[str]:
        """Return the node bound to ``device_id``, or ``None``."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored bindings."""
        pass

    async def health_check(self) -> bool:
        """Check that the store answers reads."""
        try:
            await self.count()
            return True
        except BindingStoreError:
            return False
