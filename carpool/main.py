"""
FastAPI Application Entry Point

This module initializes the FastAPI application with:
- Database and mail gateway lifecycle
- CORS configuration
- Middleware setup
- Route registration
- Health check endpoints
- Uniform error responses
"""
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from carpool.core.config import settings
from carpool.core.exceptions import AppError
from carpool.db.database import Database
from carpool.middleware.logging import LoggingMiddleware
from carpool.api.v1.router import api_router
from carpool.utils.email import EmailService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# ============================================================
# Application Lifespan Events
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Startup:
    - Build the database engine and verify connectivity (fatal on failure)
    - Build the mail gateway

    Shutdown:
    - Dispose the engine
    """
    # ========== STARTUP ==========
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    logger.info(f"Debug mode: {settings.DEBUG}")

    database = Database(
        settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )
    try:
        await database.connect(timeout=settings.DB_CONNECT_TIMEOUT)
    except RuntimeError:
        logger.critical("Database unreachable on startup, aborting")
        await database.dispose()
        raise

    app.state.database = database
    app.state.email_service = EmailService(settings)

    if not settings.SMTP_CONFIGURED:
        logger.warning("SMTP is not configured; emails will not be delivered")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await database.dispose()
    logger.info("Shutdown complete")


# ----------------------------------------------------
# Error envelope
# ----------------------------------------------------
def error_response(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None
) -> JSONResponse:
    content = {"success": False, "message": message}
    if settings.DEBUG and exc is not None:
        content["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status_code, content=content)


def first_validation_message(exc: RequestValidationError) -> str:
    """Human-readable message for the first failing field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request data"

    error = errors[0]
    msg = error.get("msg", "Invalid value")
    # Messages raised by our own validators are already user-facing
    if error.get("type") == "value_error":
        return msg.removeprefix("Value error, ")

    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {msg}" if field else msg


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return error_response(exc.status_code, exc.message, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(400, first_validation_message(exc), exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, message, exc)

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.exception(f"Internal server error on {request.method} {request.url.path}: {exc}")
        return error_response(500, "Internal server error", exc)


# ============================================================
# Create FastAPI Application
# ============================================================
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
        University Carpooling API

        Features:
        - Email-verified sign-up with one-time codes
        - Username/password login (JWT)
        - Password reset by emailed code
        - Ride offers with route, schedule and vehicle details
        - Ride search by route, campus, days and vehicle
        - Admin moderation
        """,
        version="1.0.0",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # ----------------------------------------------------
    # Middleware Configuration
    # ----------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    if settings.DEBUG:
        app.add_middleware(LoggingMiddleware)

    # ----------------------------------------------------
    # Health Check Endpoints
    # ----------------------------------------------------
    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.PROJECT_NAME,
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs" if settings.DEBUG else "disabled"
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for monitoring.

        Checks:
        - Database connectivity
        """
        database: Database = request.app.state.database
        db_healthy = await database.check_connection()

        if not db_healthy:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "disconnected"}
            )
        return {"status": "healthy", "database": "connected"}

    # ============================================================
    # Include API Router
    # ============================================================
    app.include_router(
        api_router,
        prefix=settings.API_PREFIX
    )

    register_exception_handlers(app)
    return app


app = create_app()
