"""Probe result caches.

Two interchangeable backends implement CacheProtocol:

- ``MemoryCache``: a per-process dict. The default.
- ``SqliteCache``: an aiosqlite table shared by every worker pointed at the
  same database file, and surviving restarts.

Both serve an entry only while ``now < expires_at``; an expired entry is a
miss and is never served stale. Concurrent writers for the same key are
last-write-wins.

SqliteCache catches ``aiosqlite.Error`` internally and degrades gracefully:
read failures return ``None`` (a miss, so the caller re-probes), write
failures are logged and ignored (the fresh result is still returned).
Infrastructure errors never cross the cache class boundary.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from updown.models.cache import ProbeCacheEntry
from updown.models.probe import ProbeResult

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryCache:
    """In-process cache implementing CacheProtocol."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, ProbeCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> ProbeCacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry

    async def put(self, key: str, result: ProbeResult, ttl_seconds: int) -> None:
        now = self._clock()
        self._entries[key] = ProbeCacheEntry(
            key=key,
            result=result,
            fetched_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )

    async def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        log.info("cache_cleanup_complete", backend="memory", deleted=len(expired))
        return len(expired)


_CREATE_PROBE_TABLE = """
CREATE TABLE IF NOT EXISTS probe_cache (
    key        TEXT PRIMARY KEY,
    result     TEXT NOT NULL,
    fetched_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
)
"""

_CREATE_PROBE_INDEX = "CREATE INDEX IF NOT EXISTS idx_probe_expires ON probe_cache(expires_at)"


class SqliteCache:
    """SQLite-backed cache implementing CacheProtocol."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db
        self._clock = clock

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_PROBE_TABLE)
        await self._db.execute(_CREATE_PROBE_INDEX)
        await self._db.commit()

    async def get(self, key: str) -> ProbeCacheEntry | None:
        """Read a fresh entry. Returns ``None`` on miss, expiry, or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, result, fetched_at, expires_at FROM probe_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None

        if row is None:
            return None

        entry = ProbeCacheEntry(
            key=row[0],
            result=ProbeResult.model_validate_json(row[1]),
            fetched_at=datetime.fromisoformat(row[2]),
            expires_at=datetime.fromisoformat(row[3]),
        )
        if not entry.is_fresh(self._clock()):
            return None
        return entry

    async def put(self, key: str, result: ProbeResult, ttl_seconds: int) -> None:
        """Write an entry. Non-fatal on failure."""
        try:
            now = self._clock()
            expires_at = now + timedelta(seconds=ttl_seconds)
            await self._db.execute(
                "INSERT OR REPLACE INTO probe_cache (key, result, fetched_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (key, result.model_dump_json(), now.isoformat(), expires_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)

    async def cleanup_expired(self) -> int:
        """Delete every expired entry. Non-fatal on failure."""
        try:
            cursor = await self._db.execute(
                "DELETE FROM probe_cache WHERE expires_at <= ?",
                (self._clock().isoformat(),),
            )
            deleted = cursor.rowcount
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)
            return 0
        log.info("cache_cleanup_complete", backend="sqlite", deleted=deleted)
        return deleted
