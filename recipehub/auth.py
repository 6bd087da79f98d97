from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from . import accounts, models, policy
from .db import get_db

SESSION_USER_KEY = "user_id"


def login_user(request: Request, user: models.User):
    request.session[SESSION_USER_KEY] = user.id


def logout_user(request: Request):
    request.session.clear()


def get_current_user(
    request: Request, db: Session = Depends(get_db)
) -> Optional[models.User]:
    """The signed-in user, or None for anonymous requests."""
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None
    user = accounts.get_user(db, user_id)
    if user is None:
        # account was deleted while the session was alive
        request.session.pop(SESSION_USER_KEY, None)
    return user


def require_user(
    user: Optional[models.User] = Depends(get_current_user),
) -> models.User:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: models.User = Depends(require_user)) -> models.User:
    if not policy.is_admin(user.role_names):
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
