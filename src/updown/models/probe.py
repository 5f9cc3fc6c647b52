from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator


class ProbeKind(StrEnum):
    HOST = "host"
    DOMAIN = "domain"


class ProbeStatus(StrEnum):
    UP = "UP"
    DOWN = "DOWN"


class ProbeTarget(BaseModel):
    """A normalized URL and the tier it is probed as."""

    model_config = ConfigDict(frozen=True)

    url: str
    kind: ProbeKind


class ProbeResult(BaseModel):
    """Verdict for a single probed URL. Serialised verbatim to API clients."""

    model_config = ConfigDict(frozen=True)

    type: ProbeKind
    url: str
    status: ProbeStatus
    status_code: int = 0  # 0 when no HTTP response was received
    status_text: str = ""

    @property
    def is_up(self) -> bool:
        return self.status is ProbeStatus.UP


class ProbeResponse(BaseModel):
    """Response body for a check: host result first, then the domain fallback if any."""

    requested_url: str
    results: list[ProbeResult]


class CheckInput(BaseModel):
    """JSON body accepted by ``POST /``."""

    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        return v
