from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from retailops.config import Settings, get_settings
from retailops.database import Database
from retailops.utils.cache import CacheService
from retailops.utils.logging import configure_logging
from retailops.api import products, suppliers, sales, dashboard, health
from retailops.api.errors import register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    The database and cache handles live on ``app.state`` for exactly the
    lifetime of the application.
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("Starting up application...")

    database = Database.from_settings(settings)
    logger.info("Creating database tables...")
    database.create_all()
    logger.info("Database tables created successfully")

    app.state.database = database
    app.state.cache = CacheService.from_settings(settings)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.cache.close()
    database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
    Backend API for a small retail shop:

    - **Inventory**: Products with stock quantity, cost price and category
    - **Suppliers**: Supplier records, optionally linked from products
    - **Sales**: Multi-line sales that take stock atomically, and deletion that restores it
    - **Reports**: Monthly sales summaries and dashboard statistics

    ## Stock Consistency
    Each sale line decrements stock with a conditional update
    (`quantity >= requested`) inside one transaction. If any line cannot be
    applied the whole sale is rolled back, so stock never goes negative and a
    rejected sale changes nothing.
    """,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routers
    app.include_router(health.router, prefix=settings.API_PREFIX)
    app.include_router(products.router, prefix=settings.API_PREFIX)
    app.include_router(suppliers.router, prefix=settings.API_PREFIX)
    app.include_router(sales.router, prefix=settings.API_PREFIX)
    app.include_router(dashboard.router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "redoc": "/redoc",
            "health": f"{settings.API_PREFIX}/health"
        }

    return app


app = create_app()
