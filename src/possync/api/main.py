"""
FastAPI application factory for the reference POS backend.

Serves the REST contract the client's remote store speaks, backed by an
in-memory store. Used for development and end-to-end tests.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from possync import __version__
from possync.api.backend import InMemoryBackend
from possync.api.middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    setup_exception_handlers,
)
from possync.api.routes import (
    customers_router,
    health_router,
    products_router,
    sales_router,
)
from possync.config import get_logger, get_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "application_starting",
        host=settings.api.host,
        port=settings.api.port,
        debug=settings.api.debug,
    )
    yield
    logger.info("application_stopped")


def create_app(backend: InMemoryBackend | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        backend: Store to serve; a fresh empty one by default

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title="POS Reference Backend",
        description="Products, customers and sales for offline-first POS clients",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )
    app.state.backend = backend or InMemoryBackend()

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(products_router)
    app.include_router(customers_router)
    app.include_router(sales_router)

    return app


def run() -> None:
    """Serve the reference backend with uvicorn."""
    import uvicorn

    from possync.config import configure_logging

    settings = get_settings()
    configure_logging()
    uvicorn.run(
        create_app(),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )
