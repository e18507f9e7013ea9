"""API routers package initialization."""

from routeoptima.api.drivers import router as drivers_router
from routeoptima.api.orders import router as orders_router
from routeoptima.api.fleet import router as fleet_router

__all__ = [
    "drivers_router",
    "orders_router",
    "fleet_router",
]
