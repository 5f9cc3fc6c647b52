"""URL normalization policy.

Turns a raw, user-supplied string into the two probe targets for a check:
the exact host URL and its bare registered-domain URL. All URL repair
heuristics (default scheme, default path, default-port stripping) live here
so the checker only ever compares canonical strings.

Both URLs always carry a path, at minimum ``/``, so ``https://example.com``
and ``https://example.com/`` are the same target.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

import tldextract

from updown.errors import ErrorCode, UpDownError
from updown.models.probe import ProbeKind, ProbeTarget

DEFAULT_SCHEME = "https"
ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https"})
_DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

# Bundled public-suffix snapshot only: normalization must never touch the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())


@dataclass(frozen=True)
class NormalizedTargets:
    host: ProbeTarget
    domain: ProbeTarget

    @property
    def has_distinct_domain(self) -> bool:
        """False when the requested host already is the bare domain."""
        return self.domain.url != self.host.url


def _invalid(message: str) -> UpDownError:
    return UpDownError(code=ErrorCode.INVALID_URL, message=message)


def _format_host(hostname: str) -> str:
    # urlsplit strips IPv6 brackets from .hostname; put them back.
    return f"[{hostname}]" if ":" in hostname else hostname


def registered_domain(hostname: str) -> str:
    """Return the registrable domain of *hostname*.

    ``'a.b.example.co.nz'`` → ``'example.co.nz'``. IP literals and hosts
    without a known public suffix (``localhost``, ``*.invalid``) are returned
    unchanged.
    """
    try:
        ipaddress.ip_address(hostname)
        return hostname
    except ValueError:
        pass  # not an IP literal, fall through to the suffix list

    ext = _extract(hostname)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return hostname


def normalize(raw: str) -> NormalizedTargets:
    """Normalize *raw* into host and domain probe targets.

    Raises UpDownError(INVALID_URL) for syntactically malformed input only.
    Whether the host actually resolves is left to the prober.
    """
    candidate = (raw or "").strip()
    if not candidate:
        raise _invalid("URL must not be empty")

    if not _SCHEME_RE.match(candidate):
        candidate = f"{DEFAULT_SCHEME}://{candidate.lstrip('/')}"

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise _invalid(f"Malformed URL {raw!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise _invalid(f"Unsupported URL scheme {scheme!r}; use http or https")

    hostname = parts.hostname
    if not hostname:
        raise _invalid(f"URL has no host: {raw!r}")
    if any(ch.isspace() for ch in parts.netloc):
        raise _invalid(f"URL host contains whitespace: {raw!r}")

    netloc = _format_host(hostname)
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    host_url = urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))
    domain_url = urlunsplit((scheme, _format_host(registered_domain(hostname)), "/", "", ""))

    return NormalizedTargets(
        host=ProbeTarget(url=host_url, kind=ProbeKind.HOST),
        domain=ProbeTarget(url=domain_url, kind=ProbeKind.DOMAIN),
    )
