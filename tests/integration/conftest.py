"""Integration test fixtures.

Provides the ASGI app wired to the shared fake-clock AppState (see
tests/conftest.py) and httpx clients bound to it through ASGITransport, so
no socket is opened and outbound probes never leave the FakeProber.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from updown.server import create_app

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from updown.config import Settings
    from updown.state import AppState


@pytest.fixture()
def app(app_state: AppState) -> Starlette:
    return create_app(state=app_state)


@pytest.fixture()
async def client(app: Starlette, settings: Settings) -> httpx.AsyncClient:
    """Client that sends the configured x-api-key on every request."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://updown.test",
        headers={"x-api-key": settings.api_key.get_secret_value()},
    ) as c:
        yield c


@pytest.fixture()
async def anon_client(app: Starlette) -> httpx.AsyncClient:
    """Client without credentials."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://updown.test",
    ) as c:
        yield c
