"""Probe orchestration for a single check request.

Receives AppState, runs normalize → host cache-or-probe → (only if the host
is DOWN) domain cache-or-probe, and returns the ordered results together with
the aggregate cache verdict. No Starlette imports; server.py handles the HTTP
wiring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from updown.models.probe import ProbeResponse, ProbeResult
from updown.normalizer import normalize

if TYPE_CHECKING:
    from updown.models.probe import ProbeTarget
    from updown.state import AppState


@dataclass(frozen=True)
class CheckOutcome:
    response: ProbeResponse
    cache_hit: bool  # True only if every lookup in the flow was a hit

    @property
    def cache_status(self) -> str:
        return "HIT" if self.cache_hit else "MISS"


async def handle(raw_url: str, state: AppState) -> CheckOutcome:
    """Handle a check request. Raises UpDownError(INVALID_URL) on bad input."""
    log = structlog.get_logger().bind(handler="check", raw_url=raw_url)
    log.info("check_requested")

    targets = normalize(raw_url)

    host_result, host_hit = await _check_target(targets.host, state)
    results = [host_result]
    hits = [host_hit]

    if not host_result.is_up:
        if targets.has_distinct_domain:
            domain_result, domain_hit = await _check_target(targets.domain, state)
            results.append(domain_result)
            hits.append(domain_hit)
        else:
            log.info("domain_fallback_skipped", url=targets.host.url, reason="host_is_domain")

    outcome = CheckOutcome(
        response=ProbeResponse(requested_url=targets.host.url, results=results),
        cache_hit=all(hits),
    )
    log.info(
        "check_complete",
        requested_url=targets.host.url,
        verdicts=[r.status for r in results],
        cache=outcome.cache_status,
    )
    return outcome


async def _check_target(target: ProbeTarget, state: AppState) -> tuple[ProbeResult, bool]:
    """Serve *target* from cache, or probe it and cache the fresh result.

    Returns the result and whether it was a cache hit.
    """
    cached = await state.cache.get(target.url)
    if cached is not None:
        structlog.get_logger().info("cache_hit", url=target.url, kind=target.kind)
        result = cached.result
        # The same URL may have been cached as the other tier by an earlier request.
        if result.type != target.kind:
            result = result.model_copy(update={"type": target.kind})
        return result, True

    structlog.get_logger().info("cache_miss_probing", url=target.url, kind=target.kind)
    result = await state.prober.probe(target)
    await state.cache.put(target.url, result, state.settings.cache_ttl_seconds)
    return result, False
