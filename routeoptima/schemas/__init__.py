"""Schemas package initialization."""

from routeoptima.schemas.driver import (
    DriverCreate,
    DriverUpdate,
    DutyUpdate,
    LocationReport,
    LocationReceiptResponse,
    DriverResponse,
    DriversListResponse,
)
from routeoptima.schemas.order import (
    CoordinateIn,
    OrderCreate,
    DropLocationUpdate,
    OrderResponse,
    OrdersListResponse,
    CurrentOrderResponse,
    AvailableDriversResponse,
    AssignmentResponse,
    CompletionResponse,
)
from routeoptima.schemas.fleet import FleetSnapshotResponse, FleetSummaryResponse
from routeoptima.schemas.health import HealthResponse

__all__ = [
    "DriverCreate",
    "DriverUpdate",
    "DutyUpdate",
    "LocationReport",
    "LocationReceiptResponse",
    "DriverResponse",
    "DriversListResponse",
    "CoordinateIn",
    "OrderCreate",
    "DropLocationUpdate",
    "OrderResponse",
    "OrdersListResponse",
    "CurrentOrderResponse",
    "AvailableDriversResponse",
    "AssignmentResponse",
    "CompletionResponse",
    "FleetSnapshotResponse",
    "FleetSummaryResponse",
    "HealthResponse",
]
