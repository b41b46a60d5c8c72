"""
Seed demo data: restaurants, container types, the rebate rate table,
one admin / staff / customer user each, and a batch of available containers.
Idempotent: existing rows (matched by name, email or QR code) are left alone.
Usage: python scripts/setup/seed_data.py [--containers 10]
"""

import argparse
import secrets
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from datetime import datetime
from decimal import Decimal

from aqro.database import SessionLocal, create_tables
from aqro.models import Container, ContainerType, Restaurant, RestaurantContainerRebate, User
from aqro.services.container_service import generate_qr_code

RESTAURANTS = [
    {"name": "Green Bowl Kitchen", "address": "12 Rizal Ave", "city": "Manila", "contact_number": "+63 2 8123 4567"},
    {"name": "Daily Grind Cafe", "address": "88 Ayala Ave", "city": "Makati", "contact_number": "+63 2 8765 4321"},
]

CONTAINER_TYPES = [
    {"name": "Coffee Cup", "description": "12oz reusable cup with lid", "price": Decimal("120.00"),
     "rebate_value": Decimal("5.00"), "max_uses": 50},
    {"name": "Meal Box", "description": "Two-compartment takeaway box", "price": Decimal("180.00"),
     "rebate_value": Decimal("8.00"), "max_uses": 30},
]

# (restaurant name, container type name) → rebate value
RATE_TABLE = {
    ("Green Bowl Kitchen", "Meal Box"): Decimal("10.00"),
    ("Green Bowl Kitchen", "Coffee Cup"): Decimal("4.00"),
    ("Daily Grind Cafe", "Coffee Cup"): Decimal("6.50"),
}


def _get_or_create(db, model, lookup: dict, defaults: dict):
    row = db.query(model).filter_by(**lookup).first()
    if row:
        return row, False
    row = model(**lookup, **defaults)
    db.add(row)
    db.flush()
    return row, True


def main(container_count: int):
    create_tables()
    db = SessionLocal()
    now = datetime.utcnow()
    try:
        restaurants = {}
        for r in RESTAURANTS:
            restaurants[r["name"]], created = _get_or_create(
                db, Restaurant, {"name": r["name"]},
                {k: v for k, v in r.items() if k != "name"} | {"is_active": True, "created_at": now},
            )
            print(f"{'➕' if created else '✓ '} Restaurant {r['name']}")

        types = {}
        for t in CONTAINER_TYPES:
            types[t["name"]], created = _get_or_create(
                db, ContainerType, {"name": t["name"]},
                {k: v for k, v in t.items() if k != "name"} | {"is_active": True, "created_at": now, "updated_at": now},
            )
            print(f"{'➕' if created else '✓ '} Container type {t['name']} (max {t['max_uses']} uses)")

        for (restaurant_name, type_name), value in RATE_TABLE.items():
            _get_or_create(
                db, RestaurantContainerRebate,
                {"restaurant_id": restaurants[restaurant_name].id, "container_type_id": types[type_name].id},
                {"rebate_value": value, "created_at": now, "updated_at": now},
            )
            print(f"   💰 {restaurant_name} × {type_name} = {value}")

        first_restaurant = restaurants[RESTAURANTS[0]["name"]]
        users = [
            ("admin@aqro.app", "admin", None),
            ("staff@aqro.app", "staff", first_restaurant.id),
            ("customer@aqro.app", "customer", None),
        ]
        for email, user_type, restaurant_id in users:
            user, created = _get_or_create(
                db, User, {"email": email},
                {"user_type": user_type, "restaurant_id": restaurant_id, "is_active": True,
                 "auth_token": secrets.token_urlsafe(24), "created_at": now},
            )
            print(f"{'➕' if created else '✓ '} {user_type:<8} {email}  token={user.auth_token}")

        type_list = list(types.values())
        for i in range(container_count):
            qr_code = generate_qr_code(db)
            db.add(Container(
                qr_code=qr_code,
                container_type_id=type_list[i % len(type_list)].id,
                restaurant_id=first_restaurant.id,
                status="available",
                uses_count=0,
                purchase_date=now,
                created_at=now,
                updated_at=now,
            ))
            db.flush()
            print(f"   📦 {qr_code}")

        db.commit()
        print("\n🎉 Seed complete")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed aQRo demo data")
    parser.add_argument("--containers", type=int, default=10)
    args = parser.parse_args()
    main(args.containers)
