"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (schema, seed data, Redis,
the token purge worker, open sockets). Middleware, CORS, exception
handlers and routers are all registered here.

Process-scoped state lives on app.state and is created in create_app,
not in the lifespan, so it exists even when a test transport never
runs startup:
- app.state.realtime: the RealtimeRegistry (chat + notification sockets)
- app.state.roster_locks: the per-event KeyedLock used by joins/leaves
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from sportshub import __version__
from sportshub.api import api_router, health_router
from sportshub.config import settings
from sportshub.errors import AppError, InternalError
from sportshub.realtime.registry import RealtimeRegistry
from sportshub.services.locks import KeyedLock

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    logger.info(
        "sportshub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from sportshub.db.engine import async_session_factory, engine, init_db
    from sportshub.db.redis import close_redis, init_redis
    from sportshub.db.seed import seed_database

    await init_db()
    if settings.seed_on_startup:
        async with async_session_factory() as db:
            await seed_database(db)

    # Redis only backs rate limiting; the app runs without it
    if settings.redis_url:
        try:
            await init_redis()
            logger.info("sportshub.redis_connected")
        except (RedisError, OSError) as e:
            logger.warning("sportshub.redis_unavailable", error=str(e))

    from sportshub.services.token_purge_worker import TokenPurgeWorker
    purge_worker = TokenPurgeWorker()
    purge_task = asyncio.create_task(purge_worker.run_loop())

    yield

    logger.info("sportshub.shutdown")

    purge_worker.stop()
    purge_task.cancel()
    try:
        await purge_task
    except asyncio.CancelledError:
        pass

    await app.state.realtime.close_all()
    await close_redis()
    await engine.dispose()


# ─── Error rendering ────────────────────────────────────


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message, "code": code})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("http.internal_error", path=request.url.path, error=exc.message)
    return _error_response(exc.status_code, exc.message, exc.code)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are a 400 with the first problem spelled out."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", message)
    return _error_response(400, message, "validation_error")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled_error", path=request.url.path)
    return _error_response(500, "Internal server error", "internal_error")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="SportsHub",
        description="College sports events, team rosters, notifications and team chat",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.realtime = RealtimeRegistry()
    app.state.roster_locks = KeyedLock()

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from sportshub.middleware.rate_limit import RateLimitMiddleware
    from sportshub.middleware.request_id import RequestIdMiddleware
    from sportshub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router)

    from sportshub.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: sportshub.main:app)
app = create_app()
