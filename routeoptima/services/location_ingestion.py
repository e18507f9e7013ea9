"""
Location Ingestion Service.

Drivers push their position at whatever cadence their device chooses (or not
at all). Each report is a full overwrite of the stored position, except that a
report older than the one already stored is ignored, so a delayed packet can
never move a driver backwards in time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.services.driver_registry import DriverRegistry
from routeoptima.services.geo import Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationReceipt:
    driver_id: int
    accepted: bool
    # Lets the driver client pick up a fresh assignment on the same round trip
    current_order_id: Optional[int]
    stored_reported_at: Optional[datetime]


def to_naive_utc(moment: datetime) -> datetime:
    """Normalize client timestamps to the naive-UTC form stored in the database."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


async def ingest(
    db: AsyncSession,
    driver_id: int,
    coordinate: Coordinate,
    reported_at: Optional[datetime] = None,
) -> LocationReceipt:
    """
    Apply one position report and commit it.

    A device timestamp ahead of the server clock is clamped to the arrival
    time; a stored future timestamp would otherwise reject every later report.
    """
    registry = DriverRegistry(db)
    received_at = datetime.utcnow()
    if reported_at is None:
        reported_at = received_at
    else:
        reported_at = to_naive_utc(reported_at)
        if reported_at > received_at:
            logger.debug(
                f"Driver {driver_id} clock ahead by "
                f"{(reported_at - received_at).total_seconds():.1f}s; using arrival time"
            )
            reported_at = received_at

    accepted = await registry.update_location(
        driver_id,
        coordinate,
        reported_at=reported_at,
        received_at=received_at,
    )
    await db.commit()

    driver = await registry.get(driver_id)
    if accepted:
        logger.debug(f"Driver {driver_id} at ({coordinate.latitude:.5f}, {coordinate.longitude:.5f})")
    else:
        logger.warning(
            f"Ignored out-of-order location for driver {driver_id}: "
            f"report {reported_at.isoformat()} is older than stored {driver.location_reported_at}"
        )

    return LocationReceipt(
        driver_id=driver_id,
        accepted=accepted,
        current_order_id=driver.current_order_id,
        stored_reported_at=driver.location_reported_at,
    )
