"""
City Crew FastAPI service: crew onboarding, invite lookup, and mood check.

Entrypoint: uvicorn services.crew.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.responses import JSONResponse

from services.crew.config import settings
from services.crew.db.engine import create_engine as create_sa_engine
from services.crew.errors import CrewError
from services.crew.middleware.cors import setup_cors
from services.crew.middleware.rate_limit import RateLimitMiddleware
from services.crew.middleware.sentry import setup_sentry
from services.crew.routers import crews, groups, health, mood

logger = logging.getLogger(__name__)

# Shared redis reference -- set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # Redis for rate limiting and the mood question cache
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception:
            logger.warning("redis unavailable, caching and rate limiting disabled", exc_info=True)
            redis_client = None

    _redis_holder["client"] = redis_client
    app.state.redis = redis_client
    app.state.settings = settings

    sa_engine = None
    if settings.database_url:
        try:
            sa_engine = create_sa_engine()
            app.state.db_engine = sa_engine
            # expire_on_commit=False: NullPool returns connection after commit,
            # lazy load on closed connection would fail without this.
            app.state.db_session_factory = async_sessionmaker(
                sa_engine, expire_on_commit=False
            )
        except Exception as e:
            logger.warning("SA engine failed to init: %s", e)

    yield

    if sa_engine:
        await sa_engine.dispose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="City Crew API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

# Routers first (innermost)
app.include_router(health.router)
app.include_router(crews.router)
app.include_router(groups.router)
app.include_router(mood.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Rate limiting -- uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(CrewError)
async def crew_error_handler(request: Request, exc: CrewError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("crew_error code=%s path=%s", exc.code, request.url.path)
    return _error_response(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Validation error.") if errors else "Validation error."
    return _error_response(request, 422, "VALIDATION_ERROR", message)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 404, "NOT_FOUND", "Resource not found.")


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
