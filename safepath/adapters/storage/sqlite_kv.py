"""
SQLite-based key-value store for SafePath.

This module implements KVStorePort on top of aiosqlite so cached
intelligence survives restarts.
"""

import aiosqlite
import time
from typing import Callable, Optional
from safepath.observability.logging_setup import get_logger

log = get_logger("safepath.kv")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    k TEXT PRIMARY KEY,
    v TEXT NOT NULL,
    exp REAL
);
CREATE INDEX IF NOT EXISTS idx_kv_exp ON kv(exp);
"""

class SQLiteKVStore:
    """SQLite-backed key-value store with expiry column"""
    
    def __init__(self, path: str, clock: Callable[[], float] = time.time):
        """
        Args:
            path: SQLite database file path
            clock: time source (seconds since epoch)
        """
        self.path = path
        self._clock = clock
        log.info(f"SQLiteKVStore initialised: {path}")
    
    async def init(self) -> None:
        """Creates the schema if needed."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteKVStore schema ready")
    
    async def get(self, key: str) -> Optional[str]:
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    "SELECT v FROM kv WHERE k = ? AND (exp IS NULL OR exp >= ?)",
                    (key, self._clock())
                )
                row = await cursor.fetchone()
                return row[0] if row else None
        except aiosqlite.Error as e:
            log.error(f"SQLiteKVStore get failed key:{key} error:{e}")
            return None
    
    async def set(self, key: str, value: str, ttl_sec: Optional[int] = None) -> None:
        exp = self._clock() + ttl_sec if ttl_sec is not None else None
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    "INSERT OR REPLACE INTO kv (k, v, exp) VALUES (?, ?, ?)",
                    (key, value, exp)
                )
                await db.commit()
        except aiosqlite.Error as e:
            log.error(f"SQLiteKVStore set failed key:{key} error:{e}")
    
    async def delete(self, key: str) -> None:
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute("DELETE FROM kv WHERE k = ?", (key,))
                await db.commit()
        except aiosqlite.Error as e:
            log.error(f"SQLiteKVStore delete failed key:{key} error:{e}")
    
    async def gc(self, now: Optional[float] = None) -> int:
        """
        Deletes expired rows.
        
        Args:
            now: reference time, defaults to the store clock
            
        Returns:
            number of deleted rows
        """
        if now is None:
            now = self._clock()
        
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    "DELETE FROM kv WHERE exp IS NOT NULL AND exp < ?",
                    (now,)
                )
                await db.commit()
                deleted = cursor.rowcount
                if deleted > 0:
                    log.info(f"expired cache rows removed: {deleted}")
                return deleted
        except aiosqlite.Error as e:
            log.error(f"SQLiteKVStore gc failed: {e}")
            return 0
