"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each client IP gets one counter per bucket per minute, stored in
Redis as "sportshub:rl:{ip}:{bucket}:{minute}". The credential
endpoints (student login/register, admin login) share a stricter
bucket so password guessing is throttled separately from normal API
traffic.

Rate limiting is skipped entirely when Redis is not configured or not
reachable (local runs, tests). A limiter outage never blocks requests.
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from sportshub.db.redis import get_redis

logger = structlog.get_logger()

AUTH_PATHS = ("/api/login", "/api/register", "/api/admin/login")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.rstrip("/") in AUTH_PATHS
        rpm = self.auth_rpm if is_auth else self.default_rpm
        bucket = "auth" if is_auth else "api"
        key = f"sportshub:rl:{client_ip}:{bucket}:{int(time.time() // 60)}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except RedisError as e:
            logger.warning("rate_limit.redis_unavailable", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests. Try again later.",
                    "code": "RATE_LIMITED",
                },
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
