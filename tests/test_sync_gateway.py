"""
Tests for the polling queries used by driver and dispatcher clients.
"""

from datetime import datetime, timedelta

import pytest

from routeoptima.core.errors import NotFound
from routeoptima.models import Driver
from routeoptima.services.dispatch_engine import AssignmentMode, DispatchEngine
from routeoptima.services.sync_gateway import (
    current_order_for_driver,
    fleet_snapshot,
    is_location_stale,
)
from tests.fixtures.test_data import OTHER_OWNER_ID, OWNER_ID


class TestIsLocationStale:

    def test_never_reported(self):
        assert is_location_stale(Driver(location_received_at=None), datetime.utcnow(), 120) is True

    def test_fresh_and_old(self):
        now = datetime.utcnow()
        assert is_location_stale(Driver(location_received_at=now - timedelta(seconds=30)), now, 120) is False
        assert is_location_stale(Driver(location_received_at=now - timedelta(seconds=300)), now, 120) is True


class TestCurrentOrder:

    @pytest.mark.asyncio
    async def test_none_when_idle(self, db_session, sample_fleet):
        assert await current_order_for_driver(db_session, sample_fleet["near"]) is None

    @pytest.mark.asyncio
    async def test_follows_assignment_lifecycle(self, db_session, sample_fleet, pending_order_id):
        engine = DispatchEngine()
        await engine.assign(db_session, pending_order_id, sample_fleet["near"])

        order = await current_order_for_driver(db_session, sample_fleet["near"])
        assert order.id == pending_order_id

        await engine.assign(db_session, pending_order_id, sample_fleet["far"], AssignmentMode.REASSIGN)
        assert await current_order_for_driver(db_session, sample_fleet["near"]) is None
        assert (await current_order_for_driver(db_session, sample_fleet["far"])).id == pending_order_id

        await engine.complete(db_session, pending_order_id)
        assert await current_order_for_driver(db_session, sample_fleet["far"]) is None

    @pytest.mark.asyncio
    async def test_unknown_driver(self, db_session):
        with pytest.raises(NotFound):
            await current_order_for_driver(db_session, 404)


class TestFleetSnapshot:

    @pytest.mark.asyncio
    async def test_counts(self, db_session, sample_fleet, pending_order_id):
        engine = DispatchEngine()
        await engine.assign(db_session, pending_order_id, sample_fleet["near"])
        await engine.set_duty(db_session, sample_fleet["far"], on_duty=False)

        snapshot = await fleet_snapshot(db_session, OWNER_ID, stale_after_seconds=120)

        assert snapshot.owner_id == OWNER_ID
        assert [o.id for o in snapshot.orders] == [pending_order_id]
        assert len(snapshot.drivers) == 3
        assert snapshot.summary.orders_by_status == {"PENDING": 0, "ASSIGNED": 1, "DELIVERED": 0}
        assert snapshot.summary.available_drivers == 1
        assert snapshot.summary.busy_drivers == 1
        assert snapshot.summary.off_duty_drivers == 1
        assert snapshot.stale_driver_ids == frozenset({sample_fleet["unlocated"]})
        assert snapshot.summary.stale_drivers == 1

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, db_session, sample_fleet, pending_order_id):
        snapshot = await fleet_snapshot(db_session, OTHER_OWNER_ID, stale_after_seconds=120)
        assert snapshot.orders == []
        assert [d.id for d in snapshot.drivers] == [sample_fleet["outsider"]]
