"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan
- Route ``GET /?url=`` and ``POST /`` to the checker
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route

import updown.checker as checker
from updown import __version__
from updown.cache import MemoryCache, SqliteCache
from updown.config import Settings
from updown.errors import ErrorCode, UpDownError
from updown.models.probe import CheckInput
from updown.prober import Prober, build_http_client
from updown.schedulers import run_cache_cleanup_scheduler
from updown.state import AppState
from updown.transport import ApiKeyMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.responses import Response

    from updown.protocols import CacheProtocol

log = structlog.get_logger()

CACHE_STATUS_HEADER = "X-Worker-Cache"
ALLOWED_METHODS = ("GET", "POST")
# Starlette adds HEAD on its own whenever GET is listed.
ROUTED_METHODS = [*ALLOWED_METHODS, "PUT", "PATCH", "DELETE", "OPTIONS"]


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _app_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    http_client = build_http_client(settings.prober)

    db: aiosqlite.Connection | None = None
    cache: CacheProtocol
    if settings.cache.backend == "sqlite":
        db_path = Path(settings.cache.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(db_path))
        sqlite_cache = SqliteCache(db)
        await sqlite_cache.init_db()
        cache = sqlite_cache
    else:
        cache = MemoryCache()

    state = AppState(
        settings=settings,
        cache=cache,
        prober=Prober(http_client, settings.prober),
        http_client=http_client,
    )
    cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        cache_backend=settings.cache.backend,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        probe_timeout_seconds=settings.prober.timeout_seconds,
    )

    try:
        yield state
    finally:
        cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup_task
        await http_client.aclose()
        if db is not None:
            await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


def _error_response(error: UpDownError) -> JSONResponse:
    headers = None
    if error.code == ErrorCode.METHOD_NOT_ALLOWED:
        headers = {"Allow": ", ".join(ALLOWED_METHODS)}
    return JSONResponse(error.to_dict(), status_code=error.status_code, headers=headers)


async def _read_check_input(request: Request) -> CheckInput:
    """Pull ``url`` from the query string (GET) or JSON body (POST)."""
    if request.method == "GET":
        payload: object = dict(request.query_params)
    elif request.method == "POST":
        try:
            payload = await request.json()
        except ValueError as exc:
            raise UpDownError(
                code=ErrorCode.BAD_REQUEST,
                message=f"Request body is not valid JSON: {exc}",
            ) from exc
    else:
        raise UpDownError(
            code=ErrorCode.METHOD_NOT_ALLOWED,
            message=f"Method {request.method} not allowed. Use GET or POST.",
        )

    try:
        return CheckInput.model_validate(payload)
    except ValidationError as exc:
        raise UpDownError(
            code=ErrorCode.BAD_REQUEST,
            message="A non-empty 'url' is required.",
        ) from exc


async def check(request: Request) -> Response:
    """Report whether the requested URL (or, failing that, its domain) is up."""
    state: AppState = request.app.state.updown
    try:
        check_input = await _read_check_input(request)
        outcome = await checker.handle(check_input.url, state)
    except UpDownError as exc:
        log.warning(
            "request_error",
            code=exc.code,
            message=exc.message,
            method=request.method,
        )
        return _error_response(exc)
    except Exception:
        log.error("check_unexpected_error", method=request.method, exc_info=True)
        raise

    return JSONResponse(
        outcome.response.model_dump(mode="json"),
        headers={
            CACHE_STATUS_HEADER: outcome.cache_status,
            "Cache-Control": f"max-age={state.settings.cache_ttl_seconds}",
        },
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the ASGI app.

    With *state* given (tests), that state is used as-is and the lifespan
    creates nothing. Otherwise the lifespan builds it from *settings*.
    """
    if state is not None:
        settings = state.settings
    elif settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if state is not None:
            yield
            return
        async with _app_state(settings) as built:
            app.state.updown = built
            yield

    app = Starlette(
        # Non-GET/POST methods are routed too so the endpoint answers 405 itself.
        routes=[Route("/", check, methods=ROUTED_METHODS)],
        middleware=[Middleware(ApiKeyMiddleware, api_key=settings.api_key.get_secret_value())],
        lifespan=lifespan,
    )
    if state is not None:
        app.state.updown = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        host=settings.server.host,
        port=settings.server.port,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
