"""
Edge Dispatcher SQLite Binding Store

Embedded single-file binding store with:
- One table per collection mapping byte-string keys to byte-string values
- Explicit BEGIN IMMEDIATE / COMMIT / ROLLBACK per write
- ``synchronous=FULL`` so a committed binding survives a crash
- One in-process lock serializing every statement on the shared connection;
  concurrent writer processes are unsupported
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Optional, Tuple

import aiosqlite
import structlog

from edgedispatch.config import StoreConfig
from edgedispatch.persistence.base import (
    BindingStore,
    BindingStoreError,
    StoreCapabilities,
)

logger = structlog.get_logger(__name__)


class SQLiteBindingStore(BindingStore):
    """SQLite-backed binding store."""

    def __init__(self, config: StoreConfig) -> None:
        super().__init__(config.collection)
        self._config = config
        self._path: Path = config.path
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def capabilities(self) -> StoreCapabilities:
        return StoreCapabilities(
            durable=True,
            supports_concurrent_writers=False,  # single writer process
            networked=False,
        )

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open (or create) the database file and ensure the collection exists."""
        if self._conn is not None:
            return

        logger.info(
            "sqlite_store.opening",
            path=str(self._path),
            collection=self.collection,
        )
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # isolation_level=None: transactions are managed explicitly
            conn = await aiosqlite.connect(
                str(self._path),
                timeout=self._config.busy_timeout_ms / 1000,
                isolation_level=None,
            )
        except (OSError, sqlite3.Error) as exc:
            raise BindingStoreError("initialize", str(exc)) from exc

        try:
            pragmas = [
                f"PRAGMA journal_mode = {self._config.journal_mode}",
                f"PRAGMA synchronous = {self._config.synchronous}",
                f"PRAGMA busy_timeout = {self._config.busy_timeout_ms}",
            ]
            for pragma in pragmas:
                await self._execute(conn, pragma)

            await self._begin(conn)
            try:
                await self._ensure_collection(conn)
                await self._commit(conn)
            except sqlite3.Error:
                await self._rollback(conn)
                raise
        except sqlite3.Error as exc:
            await conn.close()
            raise BindingStoreError("initialize", str(exc)) from exc

        self._conn = conn
        logger.info("sqlite_store.ready", path=str(self._path))

    async def shutdown(self) -> None:
        if self._conn is None:
            return
        async with self._lock:
            await self._conn.close()
            self._conn = None
        logger.info("sqlite_store.closed", path=str(self._path))

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self._conn is None:
            raise BindingStoreError(operation, "store is not initialized")
        return self._conn

    # ------------------------------------------------------------------
    # Transaction steps
    # ------------------------------------------------------------------

    @staticmethod
    async def _execute(
        conn: aiosqlite.Connection,
        sql: str,
        parameters: Tuple[Any, ...] = (),
    ) -> None:
        cursor = await conn.execute(sql, parameters)
        await cursor.close()

    async def _ensure_collection(self, conn: aiosqlite.Connection) -> None:
        await self._execute(
            conn,
            f'CREATE TABLE IF NOT EXISTS "{self.collection}" ('
            "key BLOB PRIMARY KEY NOT NULL, "
            "value BLOB NOT NULL"
            ")",
        )

    async def _begin(self, conn: aiosqlite.Connection) -> None:
        await self._execute(conn, "BEGIN IMMEDIATE")

    async def _write(self, conn: aiosqlite.Connection, key: bytes, value: bytes) -> None:
        await self._execute(
            conn,
            f'INSERT OR REPLACE INTO "{self.collection}" (key, value) VALUES (?, ?)',
            (key, value),
        )

    async def _commit(self, conn: aiosqlite.Connection) -> None:
        await self._execute(conn, "COMMIT")

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await self._execute(conn, "ROLLBACK")
        except sqlite3.Error as exc:
            # No transaction was open, or SQLite already rolled it back
            logger.warning("sqlite_store.rollback_failed", error=str(exc))

    async def _discard_open_transaction(self, conn: aiosqlite.Connection) -> None:
        # A caller cancelled mid-write may leave its transaction behind
        if conn.in_transaction:
            logger.warning("sqlite_store.discarding_open_transaction")
            await self._rollback(conn)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def put(self, device_id: str, node_name: str) -> None:
        """Upsert a binding in one transaction; roll back on any failure."""
        if not device_id:
            raise BindingStoreError("put", "device id must not be empty")
        conn = self._connection("put")
        key = device_id.encode("utf-8")
        value = node_name.encode("utf-8")

        async with self._lock:
            await self._discard_open_transaction(conn)
            try:
                await self._begin(conn)
                await self._ensure_collection(conn)
                await self._write(conn, key, value)
                await self._commit(conn)
            except asyncio.CancelledError:
                await self._rollback(conn)
                raise
            except Exception as exc:
                await self._rollback(conn)
                logger.error(
                    "sqlite_store.put_failed",
                    device_id=device_id,
                    node=node_name,
                    error=str(exc),
                )
                raise BindingStoreError("put", str(exc), device_id) from exc

        logger.debug("sqlite_store.put", device_id=device_id, node=node_name)

    async def get(self, device_id: str) -> Optional[str]:
        conn = self._connection("get")
        # Reads must not observe an uncommitted write on the shared connection
        async with self._lock:
            try:
                async with conn.execute(
                    f'SELECT value FROM "{self.collection}" WHERE key = ?',
                    (device_id.encode("utf-8"),),
                ) as cursor:
                    row = await cursor.fetchone()
            except sqlite3.Error as exc:
                raise BindingStoreError("get", str(exc), device_id) from exc

        if row is None:
            return None
        value = row[0]
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def count(self) -> int:
        conn = self._connection("count")
        async with self._lock:
            try:
                async with conn.execute(f'SELECT COUNT(*) FROM "{self.collection}"') as cursor:
                    row = await cursor.fetchone()
            except sqlite3.Error as exc:
                raise BindingStoreError("count", str(exc)) from exc
        return int(row[0]) if row else 0
