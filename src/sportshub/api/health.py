"""Service banner and health check.

Learn: /health answers 200 as long as the process is up; the body says
whether the database and Redis are reachable. Redis counts as healthy
when it is simply not configured, because nothing depends on it.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sportshub import __version__
from sportshub.db.engine import engine
from sportshub.db.redis import get_redis

router = APIRouter()


@router.get("/")
async def root():
    return {
        "message": "SportsHub Backend API",
        "status": "Running",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "events": "/api/events",
            "auth": {
                "register": "POST /api/register",
                "login": "POST /api/login",
                "refresh": "POST /api/auth/refresh",
                "logout": "POST /api/logout",
            },
            "admin": "/api/admin/*",
            "health": "/health",
        },
    }


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e.__class__.__name__}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "disabled"
    except (RedisError, OSError) as e:
        checks["redis"] = f"error: {e.__class__.__name__}"

    healthy = checks["database"] == "ok" and checks["redis"] in ("ok", "disabled")
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **checks,
    }
