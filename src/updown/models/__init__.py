from __future__ import annotations

from updown.models.cache import ProbeCacheEntry
from updown.models.probe import (
    CheckInput,
    ProbeKind,
    ProbeResponse,
    ProbeResult,
    ProbeStatus,
    ProbeTarget,
)

__all__ = [
    # probe
    "ProbeKind",
    "ProbeStatus",
    "ProbeTarget",
    "ProbeResult",
    "ProbeResponse",
    "CheckInput",
    # cache
    "ProbeCacheEntry",
]
