"""
Edge Dispatcher Redis Binding Store

Networked binding store for deployments where the dispatcher cannot rely on
a local file.  Each collection is one Redis hash; writes go through a
MULTI/EXEC pipeline.  Durability follows the server's persistence settings
(AOF with ``appendfsync always`` gives per-write durability).
"""

from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from edgedispatch.config import StoreConfig
from edgedispatch.persistence.base import (
    BindingStore,
    BindingStoreError,
    StoreCapabilities,
)

logger = structlog.get_logger(__name__)


class RedisBindingStore(BindingStore):
    """Redis-hash binding store.

    Args:
        config: Store configuration (``redis_url``, ``redis_prefix``).
        client: Pre-built ``redis.asyncio.Redis`` client, mainly for tests.
    """

    def __init__(self, config: StoreConfig, client: Optional[Any] = None) -> None:
        super().__init__(config.collection)
        self._config = config
        self._client = client
        self._key = f"{config.redis_prefix}{config.collection}"

    @property
    def capabilities(self) -> StoreCapabilities:
        return StoreCapabilities(
            durable=True,
            supports_concurrent_writers=True,
            networked=True,
        )

    async def initialize(self) -> None:
        if self._client is None:
            self._client = aioredis.Redis.from_url(self._config.redis_url)
        try:
            await self._client.ping()
        except RedisError as exc:
            raise BindingStoreError("initialize", str(exc)) from exc
        logger.info("redis_store.ready", key=self._key)

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("redis_store.closed")

    def _require_client(self, operation: str) -> Any:
        if self._client is None:
            raise BindingStoreError(operation, "store is not initialized")
        return self._client

    async def put(self, device_id: str, node_name: str) -> None:
        if not device_id:
            raise BindingStoreError("put", "device id must not be empty")
        client = self._require_client("put")
        pipe = client.pipeline(transaction=True)
        pipe.hset(self._key, device_id.encode("utf-8"), node_name.encode("utf-8"))
        try:
            await pipe.execute()
        except RedisError as exc:
            logger.error("redis_store.put_failed", device_id=device_id, error=str(exc))
            raise BindingStoreError("put", str(exc), device_id) from exc

    async def get(self, device_id: str) -> Optional[str]:
        client = self._require_client("get")
        try:
            value = await client.hget(self._key, device_id.encode("utf-8"))
        except RedisError as exc:
            raise BindingStoreError("get", str(exc), device_id) from exc
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def count(self) -> int:
        client = self._require_client("count")
        try:
            return int(await client.hlen(self._key))
        except RedisError as exc:
            raise BindingStoreError("count", str(exc)) from exc
