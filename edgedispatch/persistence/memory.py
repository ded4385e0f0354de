"""In-memory binding store for tests and development."""

from __future__ import annotations

import asyncio
from typing import Dict, Optional

from edgedispatch.config import DEFAULT_COLLECTION
from edgedispatch.persistence.base import BindingStore, StoreCapabilities


class InMemoryBindingStore(BindingStore):
    """Dict-backed store.  Bindings do not survive the process."""

    def __init__(self, collection: str = DEFAULT_COLLECTION) -> None:
        super().__init__(collection)
        self._bindings: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    @property
    def capabilities(self) -> StoreCapabilities:
        return StoreCapabilities(durable=False, supports_concurrent_writers=True)

    async def initialize(self) -> None:
        return None

    async def shutdown(self) -> None:
        return None

    async def put(self, device_id: str, node_name: str) -> None:
        async with self._lock:
            self._bindings[device_id] = node_name

    async def get(self, device_id: str) -> Optional[str]:
        return self._bindings.get(device_id)

    async def count(self) -> int:
        return len(self._bindings)
