"""Models package initialization - imports all models for easy access."""

from routeoptima.models.driver import Driver
from routeoptima.models.order import Order, OrderStatus

__all__ = [
    "Driver",
    "Order",
    "OrderStatus",
]
