"""API-key middleware for the HTTP surface."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

from updown.errors import ErrorCode, UpDownError

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

log = structlog.get_logger()

API_KEY_HEADER = "x-api-key"


class ApiKeyMiddleware:
    """Pure ASGI middleware enforcing the ``x-api-key`` header.

    Runs before routing, so an unauthenticated request is rejected with 401
    regardless of path or method. Non-HTTP scopes (lifespan) pass through.
    """

    def __init__(self, app: ASGIApp, *, api_key: str) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        self.app = app
        self.api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            supplied = headers.get(API_KEY_HEADER, "")
            if not secrets.compare_digest(supplied.encode(), self.api_key.encode()):
                log.warning(
                    "request_rejected",
                    reason="bad_api_key" if supplied else "missing_api_key",
                    method=scope.get("method"),
                    path=scope.get("path"),
                )
                error = UpDownError(code=ErrorCode.UNAUTHORIZED, message="Unauthorized")
                await JSONResponse(error.to_dict(), status_code=error.status_code)(
                    scope, receive, send
                )
                return

        await self.app(scope, receive, send)
