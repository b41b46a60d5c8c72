# aqro/routers/container_types.py
"""Container type catalog. List for everyone, CRUD for admins."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from aqro.auth import get_current_user, require_user_types
from aqro.config import settings
from aqro.database import get_db
from aqro.models.container import Container
from aqro.models.container_type import ContainerType
from aqro.models.restaurant_container_rebate import RestaurantContainerRebate
from aqro.schemas.container_type import ContainerTypeCreate, ContainerTypeOut, ContainerTypeUpdate
from aqro.services.errors import InvalidStateError
from aqro.services.user_lookup import Actor
from aqro.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

admin_only = require_user_types("admin")


@router.get("/container-types", response_model=list[ContainerTypeOut], summary="Active container types")
def list_container_types(actor: Actor = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(ContainerType).filter(ContainerType.is_active.is_(True)).order_by(ContainerType.name).all()


@router.post("/container-types", response_model=ContainerTypeOut, status_code=201, summary="Create a container type")
def create_container_type(body: ContainerTypeCreate, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    now = datetime.utcnow()
    container_type = ContainerType(
        name=body.name,
        description=body.description,
        price=body.price,
        rebate_value=body.rebate_value,
        max_uses=body.max_uses or settings.DEFAULT_MAX_USES,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(container_type)
    db.commit()
    db.refresh(container_type)
    logger.info(f"[CATALOG] Container type '{container_type.name}' created (max_uses={container_type.max_uses})")
    return container_type


@router.put("/container-types/{container_type_id}", response_model=ContainerTypeOut, summary="Update a container type")
def update_container_type(container_type_id: int, body: ContainerTypeUpdate, actor: Actor = Depends(admin_only),
                          db: Session = Depends(get_db)):
    container_type = db.get(ContainerType, container_type_id)
    if not container_type:
        raise HTTPException(status_code=404, detail="Container type not found")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "max_uses" in changes:
        highest_use = (
            db.query(func.max(Container.uses_count))
            .filter(Container.container_type_id == container_type_id)
            .scalar()
        ) or 0
        if changes["max_uses"] < highest_use:
            raise InvalidStateError(
                "max_uses is below the uses already recorded on containers of this type",
                maxUses=changes["max_uses"],
                currentUses=highest_use,
            )

    for key, value in changes.items():
        setattr(container_type, key, value)
    container_type.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(container_type)
    return container_type


@router.delete("/container-types/{container_type_id}", summary="Delete (or deactivate) a container type")
def delete_container_type(container_type_id: int, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    """Types still referenced by containers or rebate values are only deactivated."""
    container_type = db.get(ContainerType, container_type_id)
    if not container_type:
        raise HTTPException(status_code=404, detail="Container type not found")

    in_use = (
        db.query(Container.id).filter(Container.container_type_id == container_type_id).first()
        or db.query(RestaurantContainerRebate.id)
        .filter(RestaurantContainerRebate.container_type_id == container_type_id).first()
    )
    if in_use:
        container_type.is_active = False
        container_type.updated_at = datetime.utcnow()
        db.commit()
        logger.info(f"[CATALOG] Container type {container_type_id} deactivated (in use)")
        return {"id": container_type_id, "status": "deactivated"}

    db.delete(container_type)
    db.commit()
    logger.info(f"[CATALOG] Container type {container_type_id} deleted")
    return {"id": container_type_id, "status": "deleted"}
