"""Main FastAPI application for the Giveroom API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from giveroom import __version__
from giveroom.api.join import router as join_router
from giveroom.api.v1.auth import router as auth_router
from giveroom.api.v1.dashboard import router as dashboard_router
from giveroom.api.v1.giveaways import router as giveaways_router
from giveroom.auth.identity import IdentityStrategy, build_identity_strategy
from giveroom.auth.service import AuthService
from giveroom.errors import (
    Forbidden,
    GiveroomError,
    InvalidCredentials,
    NotFound,
    StorageError,
    StorageFatal,
    StorageTransient,
    Unauthorized,
    ValidationError,
)
from giveroom.giveaways.service import GiveawayService
from giveroom.logging_config import configure_logging, get_logger
from giveroom.settings import settings
from giveroom.storage.db import Database, db

# Configure logging
configure_logging()
logger = get_logger(__name__)

_STATUS_CODES: dict[type[GiveroomError], int] = {
    ValidationError: 400,
    InvalidCredentials: 401,
    Unauthorized: 401,
    Forbidden: 403,
    NotFound: 404,
    StorageFatal: 500,
    StorageTransient: 503,
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # Prevent clickjacking - don't allow embedding in iframes
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Referrer Policy - don't leak giveaway codes to the channel site
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # JSON and redirects only, nothing to load
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response


def _status_for(exc: GiveroomError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return 500


async def giveroom_error_handler(request: Request, exc: GiveroomError) -> JSONResponse:
    """Turn domain errors into JSON responses."""
    status_code = _status_for(exc)

    if isinstance(exc, StorageError):
        # Backend details stay in the logs
        logger.error("request_storage_failure", path=request.url.path, error=exc.message)
        detail = exc.default_message
    else:
        detail = exc.message

    return JSONResponse(status_code=status_code, content={"detail": detail})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("app_starting", env=settings.env, identity_strategy=app.state.auth_service.strategy.name)

    # Initialize database tables
    app.state.database.create_tables()

    yield

    # Shutdown
    logger.info("app_shutting_down")


def create_app(
    database: Database | None = None,
    strategy: IdentityStrategy | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        database: Database to use (defaults to the global instance)
        strategy: Identity strategy (defaults to settings.identity_strategy)

    Returns:
        Configured FastAPI app
    """
    database = database or db
    strategy = strategy or build_identity_strategy(database=database)

    # Hide API docs in production
    is_production = settings.env == "production"

    app = FastAPI(
        title="Giveroom API",
        description="Giveaway rooms with referral attribution",
        version=__version__,
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    app.state.database = database
    app.state.auth_service = AuthService(database=database, strategy=strategy)
    app.state.giveaway_service = GiveawayService(database=database)

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware - never allow wildcard in production
    allowed_origins = [
        origin.strip()
        for origin in settings.allowed_origins.split(",")
        if origin.strip()
    ]
    if is_production and "*" in allowed_origins:
        logger.error("cors_wildcard_blocked", message="Wildcard CORS not allowed in production")
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
        max_age=3600,
    )

    app.add_exception_handler(GiveroomError, giveroom_error_handler)

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(giveaways_router, prefix="/api/v1")
    app.include_router(dashboard_router, prefix="/api/v1")
    app.include_router(join_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "env": settings.env,
        }

    return app


# Create app instance
app = create_app()
