"""Protocol interfaces for swappable components.

The checker and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use a fake prober and a fake-clock memory cache
- The memory and SQLite cache backends to be swapped by configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from updown.models.cache import ProbeCacheEntry
    from updown.models.probe import ProbeResult, ProbeTarget


class CacheProtocol(Protocol):
    """Interface for the probe result cache backend."""

    async def get(self, key: str) -> ProbeCacheEntry | None: ...

    async def put(self, key: str, result: ProbeResult, ttl_seconds: int) -> None: ...

    async def cleanup_expired(self) -> int: ...


class ProberProtocol(Protocol):
    """Interface for the outbound reachability prober."""

    async def probe(self, target: ProbeTarget) -> ProbeResult: ...
