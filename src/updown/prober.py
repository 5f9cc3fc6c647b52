"""Single-attempt reachability prober.

All outbound probes go through a single Prober instance shared across
requests. The Prober receives an httpx.AsyncClient via constructor
injection; the server lifespan owns the client lifecycle.

Policy: one streamed ``GET`` per target. Only the status line and headers
are read; the body is never downloaded. No retries: a single attempt is the
unit the checker reasons about and caches.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx
import structlog

from updown.models.probe import ProbeResult, ProbeStatus

if TYPE_CHECKING:
    from updown.config import ProberSettings
    from updown.models.probe import ProbeTarget

log = structlog.get_logger()


def build_http_client(settings: ProberSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=settings.follow_redirects,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_connections // 2,
        ),
    )


class Prober:
    """Classifies one outbound request into a ProbeResult. Never raises."""

    def __init__(self, client: httpx.AsyncClient, settings: ProberSettings) -> None:
        self._client = client
        self._success_min = settings.success_status_min
        self._success_max = settings.success_status_max

    def is_success(self, status_code: int) -> bool:
        return self._success_min <= status_code <= self._success_max

    async def probe(self, target: ProbeTarget) -> ProbeResult:
        started = time.monotonic()
        try:
            async with self._client.stream("GET", target.url) as response:
                status_code = response.status_code
        # httpx.InvalidURL is not an HTTPError; hosts the normalizer accepted
        # structurally can still be rejected by httpx's own URL parser.
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            detail = str(exc) or type(exc).__name__
            log.info(
                "probe_failed",
                url=target.url,
                kind=target.kind,
                error=detail,
                error_type=type(exc).__name__,
                duration_ms=_elapsed_ms(started),
            )
            return ProbeResult(
                type=target.kind,
                url=target.url,
                status=ProbeStatus.DOWN,
                status_code=0,
                status_text=f"Network Error: {detail}",
            )

        status = ProbeStatus.UP if self.is_success(status_code) else ProbeStatus.DOWN
        log.info(
            "probe_complete",
            url=target.url,
            kind=target.kind,
            status=status,
            status_code=status_code,
            duration_ms=_elapsed_ms(started),
        )
        return ProbeResult(
            type=target.kind,
            url=target.url,
            status=status,
            status_code=status_code,
            status_text="",
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
