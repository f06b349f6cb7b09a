"""
api/main.py -- FastAPI application for Profile Portal.

Run with:      python main.py
               uvicorn asgi:app --reload

Middleware stack, in the order a request meets it:
  1. SessionMiddleware  -- signed cookie <-> scope["session"]; 24h max age,
                           httponly always, secure only in production
  2. session_compat     -- installs the regenerate/destroy/save adapter
  3. auth_initialize    -- binds the Authenticator to the request
  4. auth_session       -- restores the logged-in identity from the session
  5. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  6. log_requests       -- one log line per request with latency

The stack is passed to FastAPI(middleware=[...]) where list order is
outermost-first, so the order above is exactly the order in the list.

Lifespan handles startup (database connection, user store, authenticator,
OAuth registry) and shutdown (dispose the engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.oauth import oauth as oauth_client
from auth.passport import Authenticator, auth_initialize, auth_session
from auth.session import session_compat
from auth.store import UserStore
from core.config import SESSION_MAX_AGE, Settings, get_settings
from core.db import connect_db

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("profileapp.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Database first -- connect_db() raises if the store is unreachable,
         aborting startup before any request is accepted.
      2. User store and authenticator -- auth_initialize reads
         app.state.authenticator on every request.
      3. OAuth registry -- used by the /auth routes.
    """
    settings = get_settings()
    logger.info("Profile Portal starting up (environment=%s)", settings.environment)
    engine = connect_db(settings.database_url)
    app.state.user_store = UserStore(engine)
    app.state.authenticator = Authenticator(app.state.user_store)
    app.state.oauth = oauth_client
    logger.info("Auth initialized (%d known users)", app.state.user_store.count())

    yield

    app.state.user_store.close()
    logger.info("Profile Portal shutdown complete")


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


def build_middleware(settings: Settings) -> list[Middleware]:
    """Return the middleware stack, outermost first.

    session_compat must sit between SessionMiddleware and the two auth
    middlewares: it needs scope["session"] to exist, and the authenticator
    needs the adapter it installs.
    """
    return [
        Middleware(
            SessionMiddleware,
            secret_key=settings.session_cookie_key,
            session_cookie=settings.session_cookie_name,
            max_age=SESSION_MAX_AGE,
            same_site="lax",
            https_only=settings.is_production,
        ),
        Middleware(BaseHTTPMiddleware, dispatch=session_compat),
        Middleware(BaseHTTPMiddleware, dispatch=auth_initialize),
        Middleware(BaseHTTPMiddleware, dispatch=auth_session),
        Middleware(SlowAPIMiddleware),
        Middleware(BaseHTTPMiddleware, dispatch=log_requests),
    ]


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Profile Portal",
    description="OAuth login with a signed-cookie session and a profile page.",
    version=VERSION,
    lifespan=lifespan,
    middleware=build_middleware(get_settings()),
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web routers are mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version, and database reachability."""
    database = "ok"
    try:
        request.app.state.user_store.count()
    except (AttributeError, SQLAlchemyError):
        logger.exception("Health check: database unreachable")
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
