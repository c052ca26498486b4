"""
Havo weather API — FastAPI service.

Entrypoint: uvicorn havo.api.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import asyncpg
import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from havo.api.accounts.authorization import ApiKeyGate
from havo.api.accounts.store import AccountStore
from havo.api.config import settings
from havo.api.jobs.cache_refresh import CacheRefreshScheduler
from havo.api.middleware.cors import setup_cors
from havo.api.middleware.rate_limit import RateLimitMiddleware
from havo.api.middleware.sentry import setup_sentry
from havo.api.routers import health, weather
from havo.api.weather.cache import WeatherCache
from havo.api.weather.engine import WeatherEngine
from havo.api.weather.errors import AuthorizationDenied, LocationNotFound, WeatherServiceError
from havo.api.weather.provider import WeatherApiClient

logger = logging.getLogger(__name__)

# Shared redis reference: set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}


async def _connect_redis(url: str, keep_on_failure: bool = False):
    """Connect and ping. With keep_on_failure the client is returned even when
    the ping fails; redis.asyncio reconnects on the next command."""
    host = url.rsplit("@", 1)[-1]
    try:
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=settings.redis_timeout_s,
        )
    except Exception as e:
        logger.warning(f"Redis URL for {host} rejected: {e}")
        return None
    try:
        await client.ping()
    except Exception as e:
        if keep_on_failure:
            logger.warning(f"Redis at {host} unreachable at startup, retrying per request: {e}")
            return client
        logger.warning(f"Redis at {host} unavailable: {e}")
        await client.aclose()
        return None
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    logging.basicConfig(level=settings.log_level)
    setup_sentry()

    # Redis for rate limiting (degrades to pass-through)
    redis_client = await _connect_redis(settings.redis_url) if settings.redis_url else None
    _redis_holder["client"] = redis_client
    app.state.redis = redis_client
    app.state.settings = settings

    # Redis for the weather cache; kept even if unreachable at startup
    cache_redis = None
    if settings.weather_cache_redis_url:
        cache_redis = await _connect_redis(settings.weather_cache_redis_url, keep_on_failure=True)
    app.state.cache_redis = cache_redis

    # Account store (api_keys lookups)
    db_pool = None
    if settings.database_url:
        try:
            db_pool = await asyncpg.create_pool(
                settings.database_url,
                min_size=1,
                max_size=10,
                command_timeout=10,
            )
        except Exception as e:
            logger.warning(f"DB pool failed to connect: {e}")
    app.state.db = db_pool
    app.state.api_key_gate = ApiKeyGate(AccountStore(db_pool)) if db_pool else None

    # Weather engine: shared HTTP client, cache-aside over Redis
    http_client = httpx.AsyncClient(timeout=settings.weather_api_timeout_s)
    provider = WeatherApiClient(
        api_key=settings.weatherapi_api_key,
        base_url=settings.weatherapi_base_url,
        timeout_s=settings.weather_api_timeout_s,
        client=http_client,
    )
    engine = None
    scheduler = None
    if cache_redis is not None:
        engine = WeatherEngine(
            cache=WeatherCache(
                cache_redis,
                ttl_s=settings.weather_cache_ttl_s,
                timeout_s=settings.redis_timeout_s,
            ),
            provider=provider,
            refresh_delay_s=settings.cache_refresh_delay_s,
            write_failure_alert_threshold=settings.cache_write_failure_alert_threshold,
        )
        if settings.cache_refresh_enabled:
            scheduler = CacheRefreshScheduler(engine, interval_s=settings.cache_refresh_interval_s)
            scheduler.start()
    app.state.weather_engine = engine
    app.state.refresh_scheduler = scheduler

    yield

    if scheduler:
        await scheduler.stop()
    if engine:
        await engine.aclose()
    await provider.aclose()
    if db_pool:
        await db_pool.close()
    if cache_redis:
        await cache_redis.aclose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Havo Weather API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(weather.router)

setup_cors(app)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


# Request ID injection + response headers
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    for name, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


# Rate limiting: uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMITED",
    503: "SERVICE_UNAVAILABLE",
}


def _error_response(request: Request, status_code: int, code: str, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = "Resource not found." if exc.status_code == 404 else str(exc.detail)
    return _error_response(request, exc.status_code, code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [
        f"'{'.'.join(str(p) for p in err['loc'] if p != 'body')}' is {err['type']}"
        for err in exc.errors()
    ]
    return _error_response(request, 422, "VALIDATION_ERROR", messages or "Validation error.")


@app.exception_handler(WeatherServiceError)
async def weather_error_handler(request: Request, exc: WeatherServiceError) -> JSONResponse:
    if isinstance(exc, LocationNotFound):
        return _error_response(request, 404, "LOCATION_NOT_FOUND", str(exc))
    if isinstance(exc, AuthorizationDenied):
        return _error_response(request, 401, "UNAUTHORIZED", "API key has been disabled.")
    # Upstream, payload and store failures: detail goes to logs only
    logger.error(
        "Weather request failed: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
