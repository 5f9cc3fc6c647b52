"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
or directly by tests, and handed to the checker on every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from updown.config import Settings
    from updown.protocols import CacheProtocol, ProberProtocol


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    cache: CacheProtocol
    prober: ProberProtocol
    http_client: httpx.AsyncClient | None = None
