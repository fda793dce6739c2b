"""Order service main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderflow.api.admin import router as admin_router
from orderflow.api.errors import setup_exception_handlers
from orderflow.api.health import router as health_router
from orderflow.api.middleware import setup_middleware
from orderflow.api.orders import router as orders_router
from orderflow.application.order_service import get_price_catalog
from orderflow.application.repository import set_order_repository
from orderflow.infrastructure.catalog_client import HttpPriceCatalog
from orderflow.infrastructure.config import settings
from orderflow.infrastructure.database import (
    build_engine,
    build_session_factory,
    create_tables,
)
from orderflow.infrastructure.logging import configure_logging
from orderflow.infrastructure.sql_repository import SqlOrderRepository

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging(settings.log_level)
    logger.info(
        "Starting order service",
        version=settings.api_version,
        debug=settings.debug,
    )

    engine = None
    if settings.database_url:
        engine = build_engine(settings.database_url)
        await create_tables(engine)
        set_order_repository(SqlOrderRepository(build_session_factory(engine)))
        logger.info("Using SQL order store", dialect=engine.dialect.name)
    else:
        logger.info("Using in-memory order store")

    app.state.engine = engine
    if settings.auto_close_enabled:
        logger.info(
            "Auto-close sweep scheduled on Celery beat",
            interval_seconds=settings.auto_close_interval_seconds,
            sla_hours=settings.auto_close_sla_hours,
        )

    yield

    # Shutdown
    logger.info("Shutting down order service")
    catalog = get_price_catalog()
    if isinstance(catalog, HttpPriceCatalog):
        await catalog.close()
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="Orderflow API",
    description="Branch replenishment order lifecycle",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, log context)
setup_middleware(app)
setup_exception_handlers(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(orders_router)
app.include_router(admin_router)
