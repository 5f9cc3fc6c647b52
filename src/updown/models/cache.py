from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from updown.models.probe import ProbeResult


class ProbeCacheEntry(BaseModel):
    """Cached verdict for one checked URL."""

    key: str  # Normalized host or domain URL
    result: ProbeResult
    fetched_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at
