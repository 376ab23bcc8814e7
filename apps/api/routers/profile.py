"""
Profile API endpoints.

The caller reads and edits their own profile. Email and role are fixed here.
"""
from typing import Any
import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ConflictError, UnauthorizedError
from core.responses import success
from core.validation import parse_body
from models import User
from schemas import ProfileResponse, ProfileUpdateRequest
from services.sessions import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


def _load_self(db: Session, current_user: AuthUser) -> User:
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None:
        # Deleted between session lookup and now.
        raise UnauthorizedError("User not found for session")
    return user


@router.get("/me")
def get_profile(
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = _load_self(db, current_user)
    return success({"user": ProfileResponse.model_validate(user).model_dump()})


@router.patch("/me")
def update_profile(
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update. An empty avatar_url clears the avatar."""
    user = _load_self(db, current_user)
    data = parse_body(ProfileUpdateRequest, payload, "Invalid profile update")
    changes = data.model_dump(exclude_unset=True)

    new_username = changes.get("username")
    if new_username is not None and new_username != user.username:
        taken = (
            db.query(User.id)
            .filter(User.username == new_username, User.id != user.id)
            .first()
        )
        if taken:
            raise ConflictError("Username is already taken", error_code="USERNAME_TAKEN")

    for field, value in changes.items():
        if field in ("gender", "fitness_level"):
            value = value.value
        setattr(user, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username is already taken", error_code="USERNAME_TAKEN")

    db.refresh(user)
    logger.info(f"Updated profile for user {user.id}", extra={"extra_fields": {"fields": sorted(changes)}})
    return success({"user": ProfileResponse.model_validate(user).model_dump()})
