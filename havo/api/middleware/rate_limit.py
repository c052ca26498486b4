"""
Redis-backed sliding window rate limiter.

One tier: settings.rate_limit_per_min requests per minute per client.
Clients are identified by their API key (the ``key`` query parameter) when
present, otherwise by IP.
"""

import hashlib
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from havo.api.config import settings

EXEMPT_PATHS = ("/health",)


def _get_client_key(request: Request) -> str:
    """Extract the client identifier used for the rate-limit window."""
    api_key = request.query_params.get("key", "").strip()
    if api_key:
        # Keys are never written to Redis in clear
        digest = hashlib.sha256(api_key.encode()).hexdigest()[:16]
        return f"key:{digest}"
    client_ip = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    return f"ip:{client_ip}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding window rate limiter backed by Redis sorted sets."""

    def __init__(self, app, redis_client=None, limit_per_min: int | None = None):
        super().__init__(app)
        self.redis = redis_client
        self.limit = limit_per_min or settings.rate_limit_per_min

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        if self.redis is None:
            return await call_next(request)

        window_key = f"ratelimit:{_get_client_key(request)}"

        now = time.time()
        window_start = now - 60.0  # 1-minute sliding window

        try:
            pipe = self.redis.pipeline()
            # Remove expired entries
            pipe.zremrangebyscore(window_key, 0, window_start)
            # Count current entries
            pipe.zcard(window_key)
            # Add current request
            pipe.zadd(window_key, {f"{now}:{id(request)}": now})
            # Set TTL on the key
            pipe.expire(window_key, 120)
            results = await pipe.execute()
        except Exception:
            # Limiter degrades to pass-through when Redis is unreachable
            return await call_next(request)

        current_count = results[1]
        limit = self.limit

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(max(0, limit - current_count - 1)),
            "X-RateLimit-Reset": str(int(now + 60)),
        }

        if current_count >= limit:
            headers["Retry-After"] = "60"
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": {
                        "code": "RATE_LIMITED",
                        "message": f"Rate limit exceeded. Max {limit} requests per minute.",
                    },
                    "requestId": request.state.__dict__.get("request_id", ""),
                },
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
