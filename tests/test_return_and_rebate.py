"""Staff-side transactions: returns, rebates, and lost/damaged reports."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from aqro.models import Activity, Container, Rebate
from aqro.schemas.container import MarkStatusCommand
from aqro.services import activity_service
from aqro.services.container_service import mark_container_status, process_rebate, process_return
from aqro.services.errors import AuthorizationError, InvalidStateError, NotFoundError


def activities(db, container, type):
    return db.query(Activity).filter(Activity.container_id == container.id, Activity.type == type).all()


class TestProcessReturn:
    @pytest.mark.asyncio
    async def test_return_sets_status_and_writes_activity(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)

        result = await process_return(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

        assert result["container"].status == "returned"
        assert result["container"].last_used is not None
        assert result["container"].customer_id == world.alice.id
        rows = activities(db, container, "return")
        assert len(rows) == 1
        assert rows[0].user_id == world.alice.id
        assert rows[0].restaurant_id == world.restaurant.id
        assert rows[0].location == "Green Bowl Kitchen"
        assert notifier.notify.call_args[0][0]["event"] == "return"

    @pytest.mark.asyncio
    async def test_second_return_is_rejected(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)
        staff = factory.actor(world.staff)

        await process_return(db, container.id, staff, notifier=notifier, users=users)
        with pytest.raises(InvalidStateError) as exc:
            await process_return(db, container.id, staff, notifier=notifier, users=users)

        assert "already been returned" in exc.value.message
        assert len(activities(db, container, "return")) == 1

    @pytest.mark.asyncio
    async def test_unregistered_container_cannot_be_returned(self, db, world, factory, notifier, users):
        container = factory.container(world.cup)

        with pytest.raises(InvalidStateError):
            await process_return(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)
        assert db.get(Container, container.id).status == "available"

    @pytest.mark.asyncio
    async def test_staff_without_restaurant_is_rejected(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)

        with pytest.raises(InvalidStateError) as exc:
            await process_return(db, container.id, factory.actor(world.admin), notifier=notifier, users=users)
        assert exc.value.message == "Staff not associated with any restaurant"

    @pytest.mark.asyncio
    async def test_expired_container_can_still_be_returned(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice, uses_count=3)
        assert container.is_expired

        result = await process_return(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)
        assert result["container"].status == "returned"


class TestProcessRebate:
    @pytest.mark.asyncio
    async def test_rebate_uses_restaurant_rate(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)

        result = await process_rebate(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

        assert result["amount"] == 1.50
        rebate = db.query(Rebate).one()
        assert rebate.amount == Decimal("1.50")
        assert rebate.customer_id == world.alice.id
        assert rebate.staff_id == world.staff.id
        assert rebate.location == "Green Bowl Kitchen"
        activity = activities(db, container, "rebate")[0]
        assert activity.amount == Decimal("1.50")
        assert db.get(Container, container.id).uses_count == 1
        assert notifier.notify.call_args[0][0]["amount"] == 1.50

    @pytest.mark.asyncio
    async def test_legacy_type_rebate_value_is_ignored(self, db, world, factory, notifier, users):
        # world.cup carries a legacy rebate_value of 5.00; the rate table says 1.50
        container = factory.container(world.cup, status="active", customer=world.alice)

        await process_rebate(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

        assert db.query(Rebate).one().amount == Decimal("1.50")

    @pytest.mark.asyncio
    async def test_usage_ceiling(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)
        staff = factory.actor(world.staff)

        for _ in range(3):
            await process_rebate(db, container.id, staff, notifier=notifier, users=users)

        with pytest.raises(InvalidStateError) as exc:
            await process_rebate(db, container.id, staff, notifier=notifier, users=users)

        assert exc.value.context["currentUses"] == 3
        assert exc.value.context["maxUses"] == 3
        assert exc.value.context["remainingUses"] == 0
        assert db.get(Container, container.id).uses_count == 3
        assert db.query(Rebate).count() == 3
        assert len(activities(db, container, "rebate")) == 3

    @pytest.mark.asyncio
    async def test_missing_rate_is_not_found_and_writes_nothing(self, db, world, factory, notifier, users):
        other_restaurant = factory.restaurant("Daily Grind Cafe")
        other_staff = factory.user("staff", restaurant=other_restaurant)
        container = factory.container(world.cup, status="active", customer=world.alice)

        with pytest.raises(NotFoundError):
            await process_rebate(db, container.id, factory.actor(other_staff), notifier=notifier, users=users)

        assert db.query(Rebate).count() == 0
        assert len(activities(db, container, "rebate")) == 0
        assert db.get(Container, container.id).uses_count == 0
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_unregistered_container_is_rejected(self, db, world, factory, notifier, users):
        container = factory.container(world.cup)

        with pytest.raises(InvalidStateError):
            await process_rebate(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

    @pytest.mark.asyncio
    async def test_lost_container_is_rejected(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="lost", customer=world.alice)

        with pytest.raises(InvalidStateError):
            await process_rebate(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

    @pytest.mark.asyncio
    async def test_failed_ledger_write_rolls_back_container(self, db, world, factory, notifier, users, monkeypatch):
        container = factory.container(world.cup, status="active", customer=world.alice)

        def broken_record(*args, **kwargs):
            raise OperationalError("INSERT INTO activities", {}, Exception("disk I/O error"))

        monkeypatch.setattr("aqro.services.container_service.record_activity", broken_record)

        with pytest.raises(OperationalError):
            await process_rebate(db, container.id, factory.actor(world.staff), notifier=notifier, users=users)

        assert db.get(Container, container.id).uses_count == 0
        assert db.query(Rebate).count() == 0
        notifier.notify.assert_not_called()


class TestMarkStatus:
    @pytest.mark.asyncio
    async def test_available_container_cannot_be_marked(self, db, world, factory, notifier, users):
        container = factory.container(world.cup)

        with pytest.raises(InvalidStateError):
            await mark_container_status(db, container.id, MarkStatusCommand(status="damaged"),
                                        factory.actor(world.admin), notifier=notifier, users=users)

    @pytest.mark.asyncio
    async def test_owner_marks_active_container_damaged(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)

        updated = await mark_container_status(db, container.id, MarkStatusCommand(status="damaged"),
                                              factory.actor(world.alice), notifier=notifier, users=users)

        assert updated.status == "damaged"
        rows = activities(db, container, "status_change")
        assert len(rows) == 1
        assert rows[0].notes == "From active to damaged"

    @pytest.mark.asyncio
    async def test_customer_cannot_mark_someone_elses_container(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice)

        with pytest.raises(AuthorizationError):
            await mark_container_status(db, container.id, MarkStatusCommand(status="lost"),
                                        factory.actor(world.bob), notifier=notifier, users=users)
        assert db.get(Container, container.id).status == "active"

    @pytest.mark.asyncio
    async def test_staff_marks_expired_container_lost(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="active", customer=world.alice, uses_count=3)

        updated = await mark_container_status(db, container.id, MarkStatusCommand(status="lost"),
                                              factory.actor(world.staff), notifier=notifier, users=users)

        assert updated.status == "lost"
        assert activities(db, container, "status_change")[0].user_id == world.alice.id

    @pytest.mark.asyncio
    async def test_returned_container_cannot_be_marked(self, db, world, factory, notifier, users):
        container = factory.container(world.cup, status="returned", customer=world.alice)

        with pytest.raises(InvalidStateError):
            await mark_container_status(db, container.id, MarkStatusCommand(status="lost"),
                                        factory.actor(world.alice), notifier=notifier, users=users)


def test_record_activity_rejects_unknown_type(db, world, factory):
    container = factory.container(world.cup)
    with pytest.raises(ValueError):
        activity_service.record_activity(db, type="refund", user_id=world.alice.id, container=container)
