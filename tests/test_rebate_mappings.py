"""Rebate rate table: lookup without fallback and batch upserts."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from decimal import Decimal

import pytest

from aqro.models import RestaurantContainerRebate
from aqro.schemas.rebate import RebateMappingBatch
from aqro.services.errors import AuthorizationError, NotFoundError
from aqro.services.rebate_service import (
    manage_restaurant_rebate_mappings, mappings_for_container_type, resolve_rebate_rate,
)


def batch(restaurant_id, *pairs):
    return RebateMappingBatch(
        restaurant_id=restaurant_id,
        mappings=[{"container_type_id": t, "rebate_value": v} for t, v in pairs],
    )


class TestResolveRebateRate:
    def test_returns_the_pair_rate(self, db, world):
        assert resolve_rebate_rate(db, world.restaurant.id, world.cup.id).rebate_value == Decimal("1.50")

    def test_missing_pair_is_not_found(self, db, world, factory):
        box = factory.container_type("Meal Box")
        with pytest.raises(NotFoundError) as exc:
            resolve_rebate_rate(db, world.restaurant.id, box.id)
        assert exc.value.status_code == 404
        assert exc.value.context["containerTypeId"] == box.id


class TestManageRestaurantRebateMappings:
    def test_upsert_updates_existing_and_inserts_new(self, db, world, factory):
        box = factory.container_type("Meal Box")

        saved = manage_restaurant_rebate_mappings(
            db, batch(world.restaurant.id, (world.cup.id, 2.25), (box.id, 10)), factory.actor(world.admin),
        )

        assert len(saved) == 2
        rows = db.query(RestaurantContainerRebate).filter_by(restaurant_id=world.restaurant.id).all()
        assert len(rows) == 2
        assert {r.container_type_id: r.rebate_value for r in rows} == {
            world.cup.id: Decimal("2.25"), box.id: Decimal("10.00"),
        }

    def test_unknown_container_type_saves_nothing(self, db, world, factory):
        box = factory.container_type("Meal Box")

        with pytest.raises(NotFoundError) as exc:
            manage_restaurant_rebate_mappings(
                db, batch(world.restaurant.id, (box.id, 3), (9999, 1), (world.cup.id, 9)), factory.actor(world.admin),
            )

        assert exc.value.context["containerTypeIds"] == [9999]
        assert db.query(RestaurantContainerRebate).count() == 1
        assert resolve_rebate_rate(db, world.restaurant.id, world.cup.id).rebate_value == Decimal("1.50")

    def test_unknown_restaurant(self, db, world, factory):
        with pytest.raises(NotFoundError):
            manage_restaurant_rebate_mappings(db, batch(9999, (world.cup.id, 1)), factory.actor(world.admin))

    def test_staff_limited_to_own_restaurant(self, db, world, factory):
        other = factory.restaurant("Daily Grind Cafe")

        with pytest.raises(AuthorizationError):
            manage_restaurant_rebate_mappings(db, batch(other.id, (world.cup.id, 1)), factory.actor(world.staff))

        saved = manage_restaurant_rebate_mappings(
            db, batch(world.restaurant.id, (world.cup.id, 0.75)), factory.actor(world.staff),
        )
        assert saved[0].rebate_value == Decimal("0.75")

    def test_list_by_container_type(self, db, world, factory):
        other = factory.restaurant("Daily Grind Cafe")
        factory.rate(other, world.cup, "6.50")

        values = [m.rebate_value for m in mappings_for_container_type(db, world.cup.id)]
        assert values == [Decimal("1.50"), Decimal("6.50")]

    def test_negative_value_rejected_by_schema(self, world):
        with pytest.raises(ValueError):
            batch(world.restaurant.id, (world.cup.id, -1))
