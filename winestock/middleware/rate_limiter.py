"""
Wine Stock — Sliding window rate limiter middleware (Redis-backed)

Limits login attempts per username: RATE_LIMIT_MAX_ATTEMPTS per
RATE_LIMIT_WINDOW_SECONDS. Uses sorted sets (ZADD/ZREMRANGEBYSCORE/ZCARD)
for a true sliding window.
"""
import json
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

from winestock.core.config import get_settings
from winestock.core.redis_client import get_redis

settings = get_settings()

RATE_LIMIT_PREFIX = "ratelimit:login:"
LOGIN_PATH = f"{settings.API_PREFIX}/auth/login"


def _tracking_key(body: bytes, request: Request) -> str:
    """Username from the JSON body; client IP when it cannot be parsed."""
    fallback = request.client.host if request.client else "unknown"
    try:
        data = json.loads(body)
        return str(data.get("username") or fallback)
    except (ValueError, AttributeError):
        return fallback


class SlidingWindowRateLimiter(BaseHTTPMiddleware):
    """
    Applies sliding-window rate limiting ONLY to POST {API_PREFIX}/auth/login.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path.rstrip("/") != LOGIN_PATH:
            return await call_next(request)

        # Read body without consuming the stream
        body = await request.body()
        key = f"{RATE_LIMIT_PREFIX}{_tracking_key(body, request)}"

        redis = get_redis()
        now = time.time()
        window_start = now - settings.RATE_LIMIT_WINDOW_SECONDS

        pipe = redis.pipeline()
        # Remove entries outside the window
        pipe.zremrangebyscore(key, "-inf", window_start)
        # Count current attempts in window
        pipe.zcard(key)
        # Add this attempt
        pipe.zadd(key, {str(now): now})
        # Set TTL
        pipe.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS + 1)
        results = await pipe.execute()

        attempt_count = results[1]  # count before this attempt

        if attempt_count >= settings.RATE_LIMIT_MAX_ATTEMPTS:
            return JSONResponse(
                status_code=429,
                content={
                    "message": (
                        f"Too many login attempts. Maximum {settings.RATE_LIMIT_MAX_ATTEMPTS} "
                        f"attempts per {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
                    ),
                    "retryAfterSeconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        # Re-attach consumed body so downstream can read it
        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return await call_next(StarletteRequest(request.scope, receive))
