"""
Dispatcher fleet snapshot endpoint.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.config import Settings, get_settings
from routeoptima.database import get_db
from routeoptima.schemas.driver import DriverResponse
from routeoptima.schemas.fleet import FleetSnapshotResponse, FleetSummaryResponse
from routeoptima.schemas.order import OrderResponse
from routeoptima.services.sync_gateway import fleet_snapshot

router = APIRouter(prefix="/fleet", tags=["Fleet"])


@router.get(
    "",
    response_model=FleetSnapshotResponse,
    summary="Fleet snapshot",
    description=(
        "Orders and drivers in a dispatcher's scope with dashboard counters. "
        "Poll at poll_interval_seconds."
    ),
)
async def get_fleet_snapshot(
    owner_id: str = Query(..., min_length=1, description="Dispatcher scope"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> FleetSnapshotResponse:
    """Dispatcher dashboard poll."""
    snapshot = await fleet_snapshot(db, owner_id, settings.location_stale_after_seconds)
    return FleetSnapshotResponse(
        owner_id=snapshot.owner_id,
        generated_at=snapshot.generated_at,
        poll_interval_seconds=settings.fleet_poll_interval_seconds,
        summary=FleetSummaryResponse(
            orders_by_status=snapshot.summary.orders_by_status,
            available_drivers=snapshot.summary.available_drivers,
            busy_drivers=snapshot.summary.busy_drivers,
            off_duty_drivers=snapshot.summary.off_duty_drivers,
            stale_drivers=snapshot.summary.stale_drivers,
        ),
        orders=[OrderResponse.from_order(o) for o in snapshot.orders],
        drivers=[
            DriverResponse.from_driver(d, location_stale=d.id in snapshot.stale_driver_ids)
            for d in snapshot.drivers
        ],
    )
