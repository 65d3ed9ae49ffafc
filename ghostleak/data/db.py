"""Module db: async SQLite persistence for the key-value state."""
#
# PURPOSE:
# Provides the single on-disk home for everything Ghostleak must remember
# across restarts: the three toggles, the finding list and the dedup set.
#
# WHAT GETS STORED:
# - kv_state: one row per logical key, JSON value, id of the writing process
#
# WHY SQLITE:
# - No separate database server needed (just a file)
# - Several processes (proxy, CLI, API) can share one file safely
# - PRAGMA data_version tells a connection when *another* connection committed
#
# KEY CONCEPTS:
# - Async/Await via aiosqlite, one shared connection per process
# - WAL mode so a reader in one process never blocks a writer in another
# - Every write is committed before the awaiting caller resumes
#

import aiosqlite
import asyncio
import json
import logging
import os
import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ghostleak.base.config import get_config
from ghostleak.errors import ErrorCode, StorageError

logger = logging.getLogger(__name__)

StateRow = Tuple[str, Any, Optional[str]]


class Database:
    """Shared aiosqlite connection holding the kv_state table."""
    _instance = None

    @staticmethod
    def instance():
        if Database._instance is None:
            Database._instance = Database()
        return Database._instance

    def __init__(self, db_path: Optional[str] = None):
        if db_path is None:
            db_path = str(get_config().storage.db_path)
        self.db_path = str(db_path)
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)

        self._initialized = False
        # asyncio locks must be created inside a running loop, see init()
        self._init_lock: Optional[asyncio.Lock] = None
        self._db_lock: Optional[asyncio.Lock] = None
        self._db_connection: Optional[aiosqlite.Connection] = None

    async def init(self):
        if self._initialized:
            return

        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        if self._db_lock is None:
            self._db_lock = asyncio.Lock()

        async with self._init_lock:
            if self._initialized:
                return

            try:
                self._db_connection = await aiosqlite.connect(self.db_path, timeout=5.0)
                await self._db_connection.execute("PRAGMA journal_mode=WAL;")
                await self._db_connection.execute("PRAGMA synchronous=NORMAL;")
                await self._db_connection.execute("PRAGMA busy_timeout=5000;")
                await self._create_tables()
                await self._db_connection.commit()
                self._initialized = True
                logger.info(f"[Database] Initialized at {self.db_path} (WAL mode)")
            except (sqlite3.Error, OSError) as e:
                logger.error(f"[Database] Init failed: {e}")
                raise StorageError(
                    ErrorCode.STORAGE_CONNECTION_FAILED,
                    f"Could not open state database: {e}",
                    details={"db_path": self.db_path},
                ) from e

    async def close(self):
        """Close the database connection safely."""
        if self._db_connection:
            try:
                await self._db_connection.close()
                logger.info("[Database] Connection closed.")
            except (sqlite3.Error, ValueError) as e:
                logger.error(f"[Database] Error closing connection: {e}")
            finally:
                self._db_connection = None
                self._initialized = False

    async def _create_tables(self):
        await self._db_connection.execute("""
            CREATE TABLE IF NOT EXISTS kv_state (
                key TEXT PRIMARY KEY,
                value JSON NOT NULL CHECK(json_valid(value)),
                writer TEXT,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)

    async def _ensure_ready(self):
        if not self._initialized:
            await self.init()

    async def read_state(self, keys: Optional[Iterable[str]] = None) -> List[StateRow]:
        """Return (key, decoded value, writer) rows, all of them when keys is None."""
        await self._ensure_ready()

        query = "SELECT key, value, writer FROM kv_state"
        params: tuple = ()
        if keys is not None:
            keys = list(keys)
            if not keys:
                return []
            placeholders = ",".join("?" for _ in keys)
            query += f" WHERE key IN ({placeholders})"
            params = tuple(keys)

        try:
            async with self._db_lock:
                async with self._db_connection.execute(query, params) as cursor:
                    rows = await cursor.fetchall()
        except (sqlite3.Error, ValueError) as e:
            raise StorageError(
                ErrorCode.STORAGE_READ_FAILED,
                f"Could not read state: {e}",
                details={"keys": list(params)},
            ) from e

        decoded: List[StateRow] = []
        for key, raw, writer in rows:
            try:
                decoded.append((key, json.loads(raw), writer))
            except ValueError as e:
                raise StorageError(
                    ErrorCode.STORAGE_DECODE_FAILED,
                    f"Stored value for {key!r} is not valid JSON",
                    details={"key": key},
                ) from e
        return decoded

    async def write_state(self, mapping: Dict[str, Any], writer: Optional[str]) -> None:
        """Upsert all keys of mapping in one transaction."""
        await self._ensure_ready()

        rows = [(key, json.dumps(value), writer) for key, value in mapping.items()]
        try:
            async with self._db_lock:
                await self._db_connection.executemany("""
                    INSERT INTO kv_state (key, value, writer, updated_at)
                    VALUES (?, ?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        writer = excluded.writer,
                        updated_at = excluded.updated_at
                """, rows)
                await self._db_connection.commit()
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"[Database] Write failed for {sorted(mapping)}: {e}")
            raise StorageError(
                ErrorCode.STORAGE_WRITE_FAILED,
                f"Could not persist state: {e}",
                details={"keys": sorted(mapping)},
            ) from e

    async def data_version(self) -> int:
        """
        SQLite's per-connection change counter.

        The value only moves when a *different* connection commits, which is
        exactly the "external change" signal the stores need.
        """
        await self._ensure_ready()
        try:
            async with self._db_lock:
                async with self._db_connection.execute("PRAGMA data_version") as cursor:
                    row = await cursor.fetchone()
        except (sqlite3.Error, ValueError) as e:
            raise StorageError(
                ErrorCode.STORAGE_READ_FAILED,
                f"Could not read data_version: {e}",
            ) from e
        return int(row[0])
