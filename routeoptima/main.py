"""
RouteOptima Dispatch - FastAPI Application
Main entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.api import drivers_router, orders_router, fleet_router
from routeoptima.config import get_settings
from routeoptima.core.logging import setup_logging
from routeoptima.database import get_db, init_db
from routeoptima.schemas.health import HealthResponse

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    setup_logging(settings.log_level, settings.log_file)
    logger.info(f"Starting {settings.app_title} v{settings.app_version} ({settings.app_env})")

    await init_db()
    logger.info("Database tables initialized")

    yield
    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description="""
    ## RouteOptima Dispatch API

    Dispatch and live tracking for a dispatcher's fleet of delivery drivers.

    ### Features
    - **Proximity ranking**: nearest-first candidate drivers for an order
    - **Atomic assignment**: assign / reassign / complete without double-booking
    - **Live tracking**: driver location reports with out-of-order protection
    - **Polling sync**: driver current-order and dispatcher fleet snapshots

    ### Main Endpoints
    - `GET /api/v1/orders/{id}/available-drivers` - Ranked candidates
    - `PUT /api/v1/orders/{id}/assign/{driver_id}` - Assign
    - `PUT /api/v1/orders/{id}/reassign/{driver_id}` - Reassign
    - `PUT /api/v1/orders/{id}/complete` - Complete
    - `PUT /api/v1/drivers/{id}/location` - Location report
    - `GET /api/v1/drivers/{id}/current-order` - Driver poll
    - `GET /api/v1/fleet?owner_id=` - Dispatcher poll
    """,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(drivers_router, prefix=settings.api_prefix)
app.include_router(orders_router, prefix=settings.api_prefix)
app.include_router(fleet_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - liveness."""
    return {
        "status": "healthy",
        "service": settings.app_title,
        "version": settings.app_version,
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Health check endpoint, including a database round trip."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        database = "disconnected"

    return HealthResponse(
        status="healthy" if database == "connected" else "unhealthy",
        service=settings.app_title,
        version=settings.app_version,
        database=database,
    )
