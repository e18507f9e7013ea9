"""
Driver endpoints.
Registration, contact edits and fleet listing, duty toggle, location
ingestion and the driver's current-order poll.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.api.errors import http_error
from routeoptima.config import Settings, get_settings
from routeoptima.core.errors import DispatchError
from routeoptima.database import get_db
from routeoptima.schemas.driver import (
    DriverCreate,
    DriverUpdate,
    DutyUpdate,
    LocationReport,
    LocationReceiptResponse,
    DriverResponse,
    DriversListResponse,
)
from routeoptima.schemas.order import CurrentOrderResponse, OrderResponse
from routeoptima.services import location_ingestion, sync_gateway
from routeoptima.services.dispatch_engine import DispatchEngine, get_dispatch_engine
from routeoptima.services.driver_registry import DriverRegistry
from routeoptima.services.geo import Coordinate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.post(
    "",
    response_model=DriverResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register driver",
    description="Add a driver to a dispatcher's fleet. The driver starts on duty with no location.",
)
async def register_driver(
    request: DriverCreate,
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    """Register a new driver."""
    driver = await DriverRegistry(db).register(
        owner_id=request.owner_id,
        name=request.name,
        phone=request.phone,
        email=request.email,
    )
    await db.commit()
    logger.info(f"Registered driver {driver.id} for {request.owner_id}")
    return DriverResponse.from_driver(driver, location_stale=True)


@router.get(
    "",
    response_model=DriversListResponse,
    summary="List drivers",
    description="All drivers in a dispatcher's fleet.",
)
async def list_drivers(
    owner_id: str = Query(..., min_length=1, description="Dispatcher scope"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DriversListResponse:
    """List drivers for an owner."""
    now = datetime.utcnow()
    drivers = await DriverRegistry(db).list_for_owner(owner_id)
    return DriversListResponse(
        owner_id=owner_id,
        drivers=[
            DriverResponse.from_driver(
                d,
                location_stale=sync_gateway.is_location_stale(
                    d, now, settings.location_stale_after_seconds
                ),
            )
            for d in drivers
        ],
    )


@router.get(
    "/{driver_id}",
    response_model=DriverResponse,
    summary="Get driver",
)
async def get_driver(
    driver_id: int,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DriverResponse:
    """Get driver details by ID."""
    try:
        driver = await DriverRegistry(db).get(driver_id)
    except DispatchError as e:
        raise http_error(e)
    stale = sync_gateway.is_location_stale(
        driver, datetime.utcnow(), settings.location_stale_after_seconds
    )
    return DriverResponse.from_driver(driver, location_stale=stale)


@router.patch(
    "/{driver_id}",
    response_model=DriverResponse,
    summary="Edit driver",
    description="Update a driver's name, phone or email. Availability and location are untouched.",
)
async def update_driver(
    driver_id: int,
    request: DriverUpdate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DriverResponse:
    """Edit driver contact details."""
    try:
        driver = await DriverRegistry(db).update_contact(
            driver_id,
            name=request.name,
            phone=request.phone,
            email=request.email,
        )
        await db.commit()
    except DispatchError as e:
        raise http_error(e)

    logger.info(f"Updated contact details of driver {driver_id}")
    stale = sync_gateway.is_location_stale(
        driver, datetime.utcnow(), settings.location_stale_after_seconds
    )
    return DriverResponse.from_driver(driver, location_stale=stale)


@router.delete(
    "/{driver_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove driver",
    description="Remove a driver from the fleet. Refused while the driver holds an order.",
)
async def remove_driver(
    driver_id: int,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> None:
    """Delete a driver."""
    try:
        await engine.remove_driver(db, driver_id)
    except DispatchError as e:
        raise http_error(e)


@router.put(
    "/{driver_id}/duty",
    response_model=DriverResponse,
    summary="Go on/off duty",
    description="Off-duty drivers are skipped by assignment. Refused while holding an order.",
)
async def set_duty(
    driver_id: int,
    request: DutyUpdate,
    db: AsyncSession = Depends(get_db),
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> DriverResponse:
    """Toggle driver duty."""
    try:
        driver = await engine.set_duty(db, driver_id, request.on_duty)
    except DispatchError as e:
        raise http_error(e)
    return DriverResponse.from_driver(driver)


@router.put(
    "/{driver_id}/location",
    response_model=LocationReceiptResponse,
    summary="Report location",
    description=(
        "Overwrite the driver's position. Reports older than the stored one are "
        "ignored (accepted=false). The response carries the current order id."
    ),
)
async def report_location(
    driver_id: int,
    request: LocationReport,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> LocationReceiptResponse:
    """Ingest a driver position report."""
    try:
        receipt = await location_ingestion.ingest(
            db,
            driver_id,
            Coordinate(request.latitude, request.longitude),
            reported_at=request.reported_at,
        )
    except DispatchError as e:
        raise http_error(e)

    return LocationReceiptResponse(
        driver_id=receipt.driver_id,
        accepted=receipt.accepted,
        current_order_id=receipt.current_order_id,
        stored_reported_at=receipt.stored_reported_at,
        poll_interval_seconds=settings.driver_poll_interval_seconds,
    )


@router.get(
    "/{driver_id}/current-order",
    response_model=CurrentOrderResponse,
    summary="Poll current order",
    description="The driver's ASSIGNED order, or order=null when there is none.",
)
async def get_current_order(
    driver_id: int,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CurrentOrderResponse:
    """Driver poll endpoint."""
    try:
        order = await sync_gateway.current_order_for_driver(db, driver_id)
    except DispatchError as e:
        raise http_error(e)

    return CurrentOrderResponse(
        driver_id=driver_id,
        order=OrderResponse.from_order(order) if order else None,
        poll_interval_seconds=settings.driver_poll_interval_seconds,
    )
