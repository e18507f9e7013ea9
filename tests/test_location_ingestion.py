"""
Tests for driver location ingestion.
"""

from datetime import datetime, timedelta, timezone

import pytest

from routeoptima.core.errors import NotFound
from routeoptima.services.dispatch_engine import DispatchEngine
from routeoptima.services.driver_registry import DriverRegistry
from routeoptima.services.location_ingestion import ingest, to_naive_utc
from tests.fixtures.test_data import DEPOT, point_north_of


class TestToNaiveUtc:

    def test_naive_passthrough(self):
        moment = datetime(2024, 5, 1, 10, 30)
        assert to_naive_utc(moment) == moment

    def test_aware_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        moment = datetime(2024, 5, 1, 16, 0, tzinfo=ist)
        assert to_naive_utc(moment) == datetime(2024, 5, 1, 10, 30)


class TestIngest:

    @pytest.mark.asyncio
    async def test_first_report_sets_location(self, db_session, sample_fleet):
        driver_id = sample_fleet["unlocated"]
        target = point_north_of(DEPOT, 1.0)

        receipt = await ingest(db_session, driver_id, target)

        assert receipt.accepted is True
        assert receipt.current_order_id is None
        assert receipt.stored_reported_at is not None
        driver = await DriverRegistry(db_session).get(driver_id)
        assert driver.location == target
        assert driver.location_received_at is not None

    @pytest.mark.asyncio
    async def test_reports_overwrite_in_order(self, db_session, sample_fleet):
        driver_id = sample_fleet["unlocated"]
        start = datetime.utcnow()

        for step in range(3):
            await ingest(
                db_session,
                driver_id,
                point_north_of(DEPOT, float(step)),
                reported_at=start + timedelta(seconds=step),
            )

        driver = await DriverRegistry(db_session).get(driver_id)
        assert driver.location == point_north_of(DEPOT, 2.0)

    @pytest.mark.asyncio
    async def test_out_of_order_report_is_ignored(self, db_session, sample_fleet):
        driver_id = sample_fleet["unlocated"]
        newer = datetime.utcnow()
        older = newer - timedelta(seconds=30)

        await ingest(db_session, driver_id, point_north_of(DEPOT, 1.0), reported_at=newer)
        receipt = await ingest(db_session, driver_id, point_north_of(DEPOT, 8.0), reported_at=older)

        assert receipt.accepted is False
        assert receipt.stored_reported_at == newer
        driver = await DriverRegistry(db_session).get(driver_id)
        assert driver.location == point_north_of(DEPOT, 1.0)

    @pytest.mark.asyncio
    async def test_future_timestamp_does_not_freeze_location(self, db_session, sample_fleet):
        """A device clock far ahead must not block later reports."""
        driver_id = sample_fleet["unlocated"]

        first = await ingest(
            db_session, driver_id, point_north_of(DEPOT, 1.0),
            reported_at=datetime.utcnow() + timedelta(days=365),
        )
        assert first.accepted is True
        assert first.stored_reported_at <= datetime.utcnow()

        untimed = await ingest(db_session, driver_id, point_north_of(DEPOT, 2.0))
        assert untimed.accepted is True

        timed = await ingest(
            db_session, driver_id, point_north_of(DEPOT, 3.0), reported_at=datetime.utcnow()
        )
        assert timed.accepted is True

        driver = await DriverRegistry(db_session).get(driver_id)
        assert driver.location == point_north_of(DEPOT, 3.0)

    @pytest.mark.asyncio
    async def test_slightly_fast_clock_then_untimed_report(self, db_session, sample_fleet):
        driver_id = sample_fleet["unlocated"]

        await ingest(
            db_session, driver_id, point_north_of(DEPOT, 1.0),
            reported_at=datetime.utcnow() + timedelta(seconds=5),
        )
        receipt = await ingest(db_session, driver_id, point_north_of(DEPOT, 4.0))

        assert receipt.accepted is True
        driver = await DriverRegistry(db_session).get(driver_id)
        assert driver.location == point_north_of(DEPOT, 4.0)

    @pytest.mark.asyncio
    async def test_receipt_carries_current_order(self, db_session, sample_fleet, pending_order_id):
        await DispatchEngine().assign(db_session, pending_order_id, sample_fleet["near"])

        receipt = await ingest(db_session, sample_fleet["near"], point_north_of(DEPOT, 1.5))

        assert receipt.current_order_id == pending_order_id

    @pytest.mark.asyncio
    async def test_unknown_driver(self, db_session):
        with pytest.raises(NotFound):
            await ingest(db_session, 404, DEPOT)
