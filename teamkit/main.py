"""
Main FastAPI Application

Entry point for the teamkit API: permission matrix, middleware, error
handlers and routers.

STARTUP ORDER MATTERS: the permission matrix is built when this module
is imported. An incomplete table raises ConfigurationGapError and the
process never starts serving.
"""
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from teamkit import __version__
from teamkit.config import get_settings
from teamkit.database import engine, init_db
from teamkit.utils.logging import setup_logging, get_logger
from teamkit.core.audit import AuditTrail, LoggingAuditSink
from teamkit.core.exceptions import AuthenticationError, TeamIsolationError
from teamkit.core.permissions import build_default_matrix
from teamkit.api.endpoints import auth, baselines, invitations, members, patients, teams

settings = get_settings()

setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)

# Fails fast on an incomplete table
permission_matrix = build_default_matrix()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting teamkit {__version__} ({settings.ENVIRONMENT})")

    # Migrations own the schema everywhere but local development
    if settings.ENVIRONMENT == "development":
        logger.warning("Creating database tables (dev mode)")
        init_db()

    logger.info(f"Permission matrix loaded: {permission_matrix!r}")
    if not settings.AUDIT_ENABLED:
        logger.warning("Audit trail is disabled")

    yield

    logger.info("Shutting down; disposing database engine")
    engine.dispose()


app = FastAPI(
    title="teamkit",
    description="Multi-tenant team management with role-based access control and team isolation",
    version=__version__,
    lifespan=lifespan
)

# Injected into handlers through teamkit.api.deps
app.state.permission_matrix = permission_matrix
app.state.audit_trail = AuditTrail(LoggingAuditSink(), enabled=settings.AUDIT_ENABLED)


# ============================================================================
# MIDDLEWARE
# ============================================================================

# SECURITY: Outside development only the listed front-ends may call the API
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "development" else allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """
    Tag each request with an id and time it.

    The id is taken from X-Request-ID when the caller sends one so logs can
    be joined with the caller's own.
    """
    request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
    return response


def _request_extra(request: Request) -> dict:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "path": request.url.path,
        "method": request.method,
    }


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(TeamIsolationError)
async def team_isolation_error_handler(request: Request, exc: TeamIsolationError):
    """
    A code path used an unverified team id or tried to move a record
    between teams. Always a bug, so it is logged at error level.
    """
    logger.error(f"TEAM ISOLATION VIOLATION: {exc.detail}", extra=_request_extra(request))

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "team_isolation_error"}
    )


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": "authentication_error"},
        headers=exc.headers or {}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last resort. Full details go to the log; the client only sees them
    in DEBUG.
    """
    logger.error(
        f"Unhandled {type(exc).__name__}: {exc}",
        exc_info=True,
        extra=_request_extra(request)
    )

    content = {"detail": "Internal server error", "type": "internal_error"}
    if settings.DEBUG:
        content = {"detail": str(exc), "type": type(exc).__name__}
    return JSONResponse(status_code=500, content=content)


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Liveness plus a database round trip, for load balancers."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "unavailable"

    return JSONResponse(
        status_code=200 if database == "ok" else 503,
        content={
            "status": "healthy" if database == "ok" else "degraded",
            "database": database,
            "version": __version__,
        }
    )


app.include_router(auth.router, prefix="/api/v1")
app.include_router(teams.router, prefix="/api/v1")
app.include_router(members.router, prefix="/api/v1")
app.include_router(invitations.router, prefix="/api/v1")
app.include_router(invitations.accept_router, prefix="/api/v1")
app.include_router(patients.router, prefix="/api/v1")
app.include_router(baselines.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "teamkit.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
