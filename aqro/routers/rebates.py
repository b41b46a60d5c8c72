# aqro/routers/rebates.py
"""Rebate rate table (per restaurant × container type) and payout totals."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aqro.auth import get_current_user, require_user_types
from aqro.database import get_db
from aqro.schemas.rebate import RebateMappingBatch, RebateMappingOut, RebateTotalsOut
from aqro.services import rebate_service
from aqro.services.errors import AuthorizationError
from aqro.services.user_lookup import Actor

router = APIRouter()

staff_or_admin = require_user_types("staff", "admin")


@router.post("/rebates", response_model=list[RebateMappingOut], summary="Upsert a restaurant's rebate values")
def manage_restaurant_rebate_mappings(body: RebateMappingBatch, actor: Actor = Depends(staff_or_admin),
                                      db: Session = Depends(get_db)):
    """Every container type in the batch must exist, otherwise nothing is saved."""
    return rebate_service.manage_restaurant_rebate_mappings(db, body, actor)


@router.get("/rebates/staff/{staff_id}/totals", response_model=RebateTotalsOut, summary="Rebates paid by a staff member")
def get_staff_rebate_totals(staff_id: int, actor: Actor = Depends(staff_or_admin), db: Session = Depends(get_db)):
    if not actor.is_admin and actor.id != staff_id:
        raise AuthorizationError("Not authorized to view another staff member's totals")
    return rebate_service.staff_rebate_totals(db, staff_id)


@router.get("/rebates/restaurant/{restaurant_id}/totals", response_model=RebateTotalsOut,
            summary="Rebates paid at a restaurant")
def get_restaurant_rebate_totals(restaurant_id: int, actor: Actor = Depends(staff_or_admin),
                                 db: Session = Depends(get_db)):
    rebate_service.ensure_restaurant_scope(actor, restaurant_id)
    return rebate_service.restaurant_rebate_totals(db, restaurant_id)


@router.get("/rebates/restaurant/{restaurant_id}/mappings", response_model=list[RebateMappingOut],
            summary="A restaurant's rebate values")
def get_restaurant_mappings(restaurant_id: int, actor: Actor = Depends(get_current_user),
                            db: Session = Depends(get_db)):
    return rebate_service.mappings_for_restaurant(db, restaurant_id)


@router.get("/rebates/{container_type_id}", response_model=list[RebateMappingOut],
            summary="Rebate values for a container type across restaurants")
def get_container_type_mappings(container_type_id: int, actor: Actor = Depends(get_current_user),
                                db: Session = Depends(get_db)):
    return rebate_service.mappings_for_container_type(db, container_type_id)
