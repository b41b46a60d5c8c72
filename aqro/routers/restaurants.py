# aqro/routers/restaurants.py
"""Partner restaurants. Read for any user, create for admins."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aqro.auth import get_current_user, require_user_types
from aqro.database import get_db
from aqro.models.restaurant import Restaurant
from aqro.schemas.restaurant import RestaurantCreate, RestaurantOut
from aqro.services.user_lookup import Actor

router = APIRouter()


@router.get("/restaurants", response_model=list[RestaurantOut], summary="List restaurants")
def list_restaurants(include_inactive: bool = False, actor: Actor = Depends(get_current_user),
                     db: Session = Depends(get_db)):
    q = db.query(Restaurant)
    if not include_inactive:
        q = q.filter(Restaurant.is_active.is_(True))
    return q.order_by(Restaurant.name).all()


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantOut, summary="Restaurant details")
def get_restaurant(restaurant_id: int, actor: Actor = Depends(get_current_user), db: Session = Depends(get_db)):
    restaurant = db.get(Restaurant, restaurant_id)
    if not restaurant:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


@router.post("/restaurants", response_model=RestaurantOut, status_code=201, summary="Create a restaurant")
def create_restaurant(body: RestaurantCreate, actor: Actor = Depends(require_user_types("admin")),
                      db: Session = Depends(get_db)):
    restaurant = Restaurant(**body.model_dump(), created_at=datetime.utcnow())
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant
