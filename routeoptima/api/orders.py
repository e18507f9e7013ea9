"""
Order and dispatch endpoints.
Handles order creation (with geocoding), candidate ranking, assignment,
reassignment, completion and cancellation.
"""

import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.api.errors import http_error
from routeoptima.config import Settings, get_settings
from routeoptima.core.errors import DispatchError
from routeoptima.database import get_db
from routeoptima.schemas.order import (
    OrderCreate,
    DropLocationUpdate,
    OrderResponse,
    OrdersListResponse,
    AvailableDriversResponse,
    CandidateDriver,
    CoordinateOut,
    AssignmentResponse,
    CompletionResponse,
)
from routeoptima.services.dispatch_engine import (
    AssignmentMode,
    DispatchEngine,
    get_dispatch_engine,
    reference_point,
)
from routeoptima.services.geo import Coordinate
from routeoptima.services.geocoding import GeocodingClient, get_geocoder, resolve_drop_location
from routeoptima.services.order_store import OrderStore
from routeoptima.services.sync_gateway import is_location_stale

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

_TEN_DIGITS = re.compile(r"^\d{10}$")


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description=(
        "Create a PENDING order. The drop location is geocoded from the address; "
        "if geocoding fails the order is still created with an unresolved drop."
    ),
)
async def create_order(
    request: OrderCreate,
    db: AsyncSession = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
    settings: Settings = Depends(get_settings),
) -> OrderResponse:
    """Create a new order."""
    if settings.strict_phone_validation and request.customer_phone is not None:
        if not _TEN_DIGITS.match(request.customer_phone):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="customer_phone must be a 10-digit number",
            )

    pickup = (
        request.pickup.to_coordinate()
        if request.pickup
        else Coordinate(settings.default_pickup_latitude, settings.default_pickup_longitude)
    )

    if request.drop is not None and not request.drop.is_legacy_sentinel:
        drop = request.drop.to_coordinate()
    else:
        drop = await resolve_drop_location(geocoder, request.address)

    order = await OrderStore(db).create(
        owner_id=request.owner_id,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        address=request.address,
        pickup=pickup,
        drop=drop,
        price=request.price,
        items=request.items,
    )
    await db.commit()
    logger.info(
        f"Created order {order.id} for {request.owner_id} "
        f"(drop {'resolved' if drop else 'unresolved'})"
    )
    return OrderResponse.from_order(order)


@router.get(
    "",
    response_model=OrdersListResponse,
    summary="List orders",
    description="All orders in a dispatcher's scope.",
)
async def list_orders(
    owner_id: str = Query(..., min_length=1, description="Dispatcher scope"),
    db: AsyncSession = Depends(get_db),
) -> OrdersListResponse:
    """List orders for an owner."""
    orders = await OrderStore(db).list_for_owner(owner_id)
    return OrdersListResponse(
        owner_id=owner_id,
        orders=[OrderResponse.from_order(o) for o in orders],
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get order by ID."""
    try:
        order = await OrderStore(db).get(order_id)
    except DispatchError as e:
        raise http_error(e)
    return OrderResponse.from_order(order)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel order",
    description="Delete an order. An ASSIGNED order releases its driver first.",
)
async def cancel_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> None:
    """Cancel (delete) an order."""
    try:
        await engine.cancel_order(db, order_id)
    except DispatchError as e:
        raise http_error(e)


@router.put(
    "/{order_id}/drop-location",
    response_model=OrderResponse,
    summary="Override drop location",
    description="Set the drop coordinate manually, or clear it with drop=null.",
)
async def update_drop_location(
    order_id: int,
    request: DropLocationUpdate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Manually resolve an order's drop location."""
    try:
        order = await OrderStore(db).set_drop_location(
            order_id,
            request.drop.to_coordinate() if request.drop else None,
        )
        await db.commit()
    except DispatchError as e:
        raise http_error(e)
    return OrderResponse.from_order(order)


@router.get(
    "/{order_id}/available-drivers",
    response_model=AvailableDriversResponse,
    summary="Rank candidate drivers",
    description=(
        "Available drivers in the order's fleet, nearest first by straight-line "
        "distance to the drop location (pickup when the drop is unresolved)."
    ),
)
async def get_available_drivers(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
    settings: Settings = Depends(get_settings),
) -> AvailableDriversResponse:
    """Open an assignment: list ranked candidates."""
    try:
        ranked = await engine.open_assignment(db, order_id)
        order = await OrderStore(db).get(order_id)
    except DispatchError as e:
        raise http_error(e)

    point = reference_point(order)
    now = datetime.utcnow()
    return AvailableDriversResponse(
        order_id=order_id,
        reference_point=CoordinateOut(
            latitude=point.coordinate.latitude,
            longitude=point.coordinate.longitude,
        ),
        degraded=point.degraded,
        candidates=[
            CandidateDriver(
                driver_id=r.driver.id,
                name=r.driver.name,
                phone=r.driver.phone,
                distance_km=round(r.distance_km, 2) if r.distance_km is not None else None,
                location_stale=is_location_stale(r.driver, now, settings.location_stale_after_seconds),
            )
            for r in ranked
        ],
    )


async def _assign(
    db: AsyncSession,
    engine: DispatchEngine,
    order_id: int,
    driver_id: int,
    mode: AssignmentMode,
) -> AssignmentResponse:
    try:
        result = await engine.assign(db, order_id, driver_id, mode)
    except DispatchError as e:
        raise http_error(e)
    return AssignmentResponse(
        order=OrderResponse.from_order(result.order),
        driver_id=result.driver.id,
        mode=result.mode.value,
        previous_driver_id=result.previous_driver_id,
    )


@router.put(
    "/{order_id}/assign/{driver_id}",
    response_model=AssignmentResponse,
    summary="Assign driver",
    description="Assign a PENDING order to an available driver.",
)
async def assign_driver(
    order_id: int,
    driver_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> AssignmentResponse:
    """Initial assignment."""
    return await _assign(db, engine, order_id, driver_id, AssignmentMode.INITIAL)


@router.put(
    "/{order_id}/reassign/{driver_id}",
    response_model=AssignmentResponse,
    summary="Reassign driver",
    description="Move an ASSIGNED order to another available driver, freeing the previous one.",
)
async def reassign_driver(
    order_id: int,
    driver_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> AssignmentResponse:
    """Reassignment."""
    return await _assign(db, engine, order_id, driver_id, AssignmentMode.REASSIGN)


@router.put(
    "/{order_id}/complete",
    response_model=CompletionResponse,
    summary="Complete order",
    description="Mark an ASSIGNED order DELIVERED and make its driver available again.",
)
async def complete_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> CompletionResponse:
    """Complete delivery."""
    try:
        result = await engine.complete(db, order_id)
    except DispatchError as e:
        raise http_error(e)
    return CompletionResponse(
        order=OrderResponse.from_order(result.order),
        released_driver_id=result.driver.id,
    )
