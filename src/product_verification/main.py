"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.v1.router import v1_router
from .config.database import Database
from .config.settings import Settings, get_settings
from .core.exceptions import ProductVerificationError
from .core.logging import configure_logging
from .services.qr_service import QRCodeService

logger = structlog.get_logger(module=__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Args:
        app: FastAPI application instance
    """
    settings: Settings = app.state.settings

    logger.info(
        "Starting Product Verification Service",
        version=__version__,
        environment=settings.app_env,
        debug_mode=settings.debug
    )

    owns_database = getattr(app.state, "database", None) is None
    if owns_database:
        app.state.database = Database(settings)
    await app.state.database.create_all()

    yield

    if owns_database:
        await app.state.database.dispose()
    logger.info("Shutting down Product Verification Service")


async def handle_domain_error(request: Request, exc: ProductVerificationError) -> JSONResponse:
    """Translate domain errors into JSON responses."""
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(
        "Request rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        detail=exc.message
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application from an explicit settings object.

    Args:
        settings: Configuration; read from the environment when omitted
        database: Pre-built database, otherwise created during startup

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Product Verification API",
        description="QR-based product verification with bounded scan budgets",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = database
    app.state.qr_service = QRCodeService(settings.public_base_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProductVerificationError, handle_domain_error)
    app.include_router(v1_router, prefix=settings.api_v1_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Product Verification API",
            "version": __version__,
            "status": "operational",
            "docs": "/docs"
        }

    return app


app = create_app()
