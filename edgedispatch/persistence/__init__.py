"""
Edge Dispatcher Persistence

Binding store backends:
- SQLite (default, single local file)
- Redis (networked, multi-instance deployments)
- Memory (tests / development)
"""

from __future__ import annotations

from edgedispatch.config import StoreConfig
from edgedispatch.persistence.base import (
    BindingStore,
    BindingStoreError,
    StoreCapabilities,
)
from edgedispatch.persistence.memory import InMemoryBindingStore
from edgedispatch.persistence.sqlite import SQLiteBindingStore


def create_binding_store(config: StoreConfig) -> BindingStore:
    """Create the binding store selected by ``config.backend``."""
    if config.backend == "memory":
        return InMemoryBindingStore(config.collection)
    if config.backend == "redis":
        from edgedispatch.persistence.redis_store import RedisBindingStore
        return RedisBindingStore(config)
    return SQLiteBindingStore(config)


__all__ = [
    "BindingStore",
    "BindingStoreError",
    "StoreCapabilities",
    "InMemoryBindingStore",
    "SQLiteBindingStore",
    "create_binding_store",
]
