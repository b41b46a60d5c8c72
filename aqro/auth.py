# aqro/auth.py
"""
Bearer-token authentication.
Tokens are issued elsewhere; here we only resolve them to an active user and
hand the transaction engine an Actor it can trust.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from aqro.database import get_db
from aqro.models.user import User
from aqro.services.user_lookup import Actor, SqlUserLookup

_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer),
    db: Session = Depends(get_db),
) -> Actor:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Not authorized to access this route")
    user = db.query(User).filter(User.auth_token == credentials.credentials).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Not authorized to access this route")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="User account has been deactivated")
    return Actor(id=user.id, user_type=user.user_type, restaurant_id=user.restaurant_id)


def require_user_types(*user_types: str):
    """Dependency factory: restrict a route to the given user types."""
    def _check(actor: Actor = Depends(get_current_user)) -> Actor:
        if actor.user_type not in user_types:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail=f"User type {actor.user_type} is not authorized to access this route")
        return actor
    return _check


def get_user_lookup(db: Session = Depends(get_db)) -> SqlUserLookup:
    return SqlUserLookup(db)
