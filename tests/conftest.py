"""Shared fixtures: in-memory SQLite session, row factories, a recording notifier."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_WEBHOOK_URL", "")

import secrets
from datetime import datetime
from types import SimpleNamespace
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aqro.database import create_tables
from aqro.models import Container, ContainerType, Restaurant, RestaurantContainerRebate, User
from aqro.services.notification_service import BestEffortNotifier
from aqro.services.user_lookup import Actor, SqlUserLookup


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return MagicMock(spec=BestEffortNotifier)


@pytest.fixture
def users(db):
    return SqlUserLookup(db)


class Factory:
    """Creates committed rows with sensible defaults."""

    def __init__(self, db):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def restaurant(self, name="Green Bowl Kitchen"):
        return self._save(Restaurant(name=name, address="12 Rizal Ave", city="Manila",
                                     is_active=True, created_at=datetime.utcnow()))

    def user(self, user_type="customer", restaurant=None, email=None, is_active=True):
        return self._save(User(
            email=email or f"{user_type}-{secrets.token_hex(4)}@aqro.app",
            user_type=user_type,
            restaurant_id=restaurant.id if restaurant else None,
            auth_token=secrets.token_urlsafe(16),
            is_active=is_active,
            created_at=datetime.utcnow(),
        ))

    def container_type(self, name="Coffee Cup", max_uses=10, rebate_value="5.00"):
        return self._save(ContainerType(name=name, description="", price=Decimal("100.00"),
                                        rebate_value=Decimal(rebate_value), max_uses=max_uses,
                                        is_active=True, created_at=datetime.utcnow()))

    def container(self, container_type, qr_code=None, status="available", customer=None,
                  restaurant=None, uses_count=0):
        now = datetime.utcnow()
        return self._save(Container(
            qr_code=qr_code or f"AQRO-{secrets.token_hex(3).upper()}-{now.microsecond:06d}",
            container_type_id=container_type.id,
            customer_id=customer.id if customer else None,
            restaurant_id=restaurant.id if restaurant else None,
            status=status,
            uses_count=uses_count,
            registration_date=now if customer else None,
            purchase_date=now,
            created_at=now,
            updated_at=now,
        ))

    @staticmethod
    def actor(user) -> Actor:
        return Actor(id=user.id, user_type=user.user_type, restaurant_id=user.restaurant_id)

    def rate(self, restaurant, container_type, value="1.50"):
        return self._save(RestaurantContainerRebate(
            restaurant_id=restaurant.id, container_type_id=container_type.id,
            rebate_value=Decimal(value), created_at=datetime.utcnow(),
        ))


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def world(factory):
    """One restaurant with a staff member, two customers, a type with max_uses=3 and a 1.50 rate."""
    restaurant = factory.restaurant()
    cup = factory.container_type(max_uses=3)
    w = SimpleNamespace()
    w.restaurant = restaurant
    w.cup = cup
    w.staff = factory.user("staff", restaurant=restaurant)
    w.admin = factory.user("admin")
    w.alice = factory.user("customer", email="alice@aqro.app")
    w.bob = factory.user("customer", email="bob@aqro.app")
    w.rate = factory.rate(restaurant, cup, "1.50")
    return w
