"""
api/main.py -- FastAPI application entry point for the BlogWEB backend.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for the browser client (FRONTEND_URL)
  2. log_requests   -- one access-log line per request with latency

Lifespan opens the user and comment stores on startup and disposes them on
shutdown. Route handlers reach them through request.app.state; nothing holds
a module-level database handle.

Error envelopes:
  400 validation   -> {"errors": [{"field": ..., "msg": ...}, ...]}
  everything else  -> {"message": ...}
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import FieldError, HealthResponse, MessageResponse, ValidationErrorResponse
from api.routes.auth import router as auth_router
from api.routes.comments import router as comments_router
from api.routes.maintenance import router as maintenance_router
from auth.store import UserStore
from comments.store import CommentStore
from core.config import get_settings

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("blogweb.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open storage handles on startup and dispose them on shutdown.

    Both stores point at the same DATABASE_URL but own separate engines, so
    either can be swapped for a different backend independently.
    """
    logger.info("BlogWEB API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.comment_store = CommentStore(_settings.database_url)
    logger.info("Stores initialized (debug=%s)", _settings.debug)

    yield

    app.state.comment_store.close()
    app.state.user_store.close()
    logger.info("BlogWEB API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="BlogWEB API",
    description="User accounts and a public comment feed.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

_origins = _settings.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    # Browsers refuse credentialed responses with a wildcard origin.
    allow_credentials="*" not in _origins,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
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


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(comments_router, prefix="/api", tags=["Comments"])
app.include_router(maintenance_router, prefix="/api", tags=["Maintenance"])

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _field_name(loc: tuple) -> str:
    """Reduce a pydantic error location to the client-facing field name.

    ("body", "email") -> "email"; ("path", "comment_id") -> "comment_id";
    ("body",) -> "body" (the whole body was missing or not an object);
    ("body", 19) -> "body" (JSON decode error at a character offset).
    """
    if len(loc) == 2 and loc[0] == "body" and isinstance(loc[1], int):
        return "body"
    parts = [str(p) for p in loc if p not in ("body", "path", "query", "header")]
    return parts[-1] if parts else str(loc[0]) if loc else "body"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with every violated rule at once."""
    errors = [FieldError(field=_field_name(tuple(err.get("loc", ()))), msg=err["msg"]) for err in exc.errors()]
    return JSONResponse(status_code=400, content=ValidationErrorResponse(errors=errors).model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return {"message": detail} for every HTTPException, including router 404s."""
    message = str(exc.detail)
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=message).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback always goes to the log. The exception text is echoed to
    the client only in DEBUG mode.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    body = MessageResponse(message="Internal server error")
    if get_settings().debug:
        body.error = str(exc)
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    user_store: UserStore = request.app.state.user_store
    database = "ok" if user_store.ping() else "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
