"""Main FastAPI application for the Live Location Tracker."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import tracking
from .api.middleware import ErrorEnvelopeMiddleware, RequestSizeLimitMiddleware
from .api.schemas import HealthResponse
from .config import LocationTrackerConfig, get_config
from .registry.store import LocationRegistry
from .registry.sweeper import EvictionSweeper
from .utils.logging_config import get_logger

logger = get_logger('main')


def build_registry(config: LocationTrackerConfig) -> LocationRegistry:
    """Create a registry from the registry section of the configuration."""
    return LocationRegistry(
        inactivity_timeout_ms=int(config.registry.inactivity_timeout_secs * 1000),
        abandonment_multiplier=config.registry.abandonment_multiplier,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the eviction sweep for as long as the application is serving."""
    sweeper: EvictionSweeper = app.state.sweeper
    sweeper.start()
    logger.info("Live Location Tracker started")
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("Live Location Tracker stopped")


def create_app(
    config: Optional[LocationTrackerConfig] = None,
    registry: Optional[LocationRegistry] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Each application owns exactly one registry and one eviction sweeper; the
    registry reaches the routes through the ``get_registry`` dependency.
    """
    if config is None:
        config = get_config()
    if registry is None:
        registry = build_registry(config)

    app = FastAPI(
        title=config.app.app_name,
        description=config.app.description,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.sweeper = EvictionSweeper(registry, interval_secs=config.registry.sweep_interval_secs)

    # Added innermost first
    app.add_middleware(ErrorEnvelopeMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=config.server.max_request_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    )

    app.include_router(tracking.router)
    # Path used by older web clients
    app.include_router(tracking.router, prefix=tracking.API_PREFIX, include_in_schema=False)
    app.add_exception_handler(StarletteHTTPException, tracking.http_error_handler)

    @app.get("/", include_in_schema=False)
    async def root():
        """Redirect to the API docs."""
        return RedirectResponse(url="/docs")

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint with registry counters."""
        return {
            "status": "healthy",
            "service": "location-tracker",
            "version": __version__,
            "trackers": request.app.state.registry.stats(),
        }

    return app


app = create_app()
