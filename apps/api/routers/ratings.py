"""
Ratings API endpoints.

A participant rates the host of a run once. The author or an admin can
change or remove a rating afterwards.
"""
from typing import Any
import logging

from fastapi import APIRouter, Body, Depends, Path, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ConflictError, ForbiddenError, ValidationError
from core.responses import success
from core.validation import parse_body
from models import Rating
from schemas import RatingCreateRequest, RatingResponse, RatingUpdateRequest
from services.authorization import can_rate_run, ensure_can_modify_rating
from services.lookups import get_rating_or_404, get_run_or_404, has_rated_run, is_run_member
from services.sessions import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_rating(
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Rate the host of a run.

    Checks run in this order: run exists (404), caller is not the host
    (400), caller is a member (403), no earlier rating by the caller (409).
    """
    data = parse_body(RatingCreateRequest, payload, "Invalid rating payload")

    run = get_run_or_404(db, data.run_id)
    if run.host_user_id == current_user.id:
        raise ValidationError(
            "Hosts cannot rate themselves",
            details={"field_errors": {"run_id": ["You are the host of this run"]}},
        )

    is_member = is_run_member(db, run.id, current_user.id)
    already_rated = has_rated_run(db, run.id, current_user.id)
    if not can_rate_run(current_user, run, is_member, already_rated):
        if not is_member:
            raise ForbiddenError("Only run participants can rate the host")
        raise ConflictError("You have already rated the host of this run")

    rating = Rating(
        run_id=run.id,
        from_user_id=current_user.id,
        to_user_id=run.host_user_id,
        score=data.score,
        comment=data.comment,
    )
    db.add(rating)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already rated the host of this run")
    db.refresh(rating)

    logger.info(
        f"User {current_user.id} rated run {run.id}",
        extra={"extra_fields": {"rating_id": rating.id, "score": rating.score}},
    )
    return success({"rating": RatingResponse.model_validate(rating).model_dump()}, status.HTTP_201_CREATED)


@router.patch("/{rating_id}")
def update_rating(
    rating_id: int = Path(..., gt=0),
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rating = get_rating_or_404(db, rating_id)
    ensure_can_modify_rating(current_user, rating)
    data = parse_body(RatingUpdateRequest, payload, "Invalid rating update")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(rating, field, value)
    db.commit()
    db.refresh(rating)

    return success({"rating": RatingResponse.model_validate(rating).model_dump()})


@router.delete("/{rating_id}")
def delete_rating(
    rating_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rating = get_rating_or_404(db, rating_id)
    ensure_can_modify_rating(current_user, rating)

    db.delete(rating)
    db.commit()
    if rating.from_user_id != current_user.id:
        logger.warning(
            f"Admin {current_user.id} deleted rating {rating_id}",
            extra={"extra_fields": {"rating_id": rating_id, "author_id": rating.from_user_id}},
        )
    return success({"deleted": True})
