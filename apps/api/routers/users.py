"""
Public user endpoints.
"""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.responses import success
from models import Rating, Run, User
from schemas import ReceivedRating, UserRatingsSummary
from services.lookups import get_user_or_404
from services.sessions import AuthUser

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/ratings")
def get_user_ratings(
    user_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Ratings a user has received as a host.

    No ratings gives total_ratings 0 and average_score null.
    """
    user = get_user_or_404(db, user_id)

    rows = (
        db.query(Rating, Run.title, User.username)
        .join(Run, Rating.run_id == Run.id)
        .join(User, Rating.from_user_id == User.id)
        .filter(Rating.to_user_id == user.id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .all()
    )

    ratings = [
        ReceivedRating(
            id=rating.id,
            run_id=rating.run_id,
            run_title=run_title,
            score=rating.score,
            comment=rating.comment,
            from_user_id=rating.from_user_id,
            from_username=from_username,
        )
        for rating, run_title, from_username in rows
    ]
    average = round(sum(r.score for r in ratings) / len(ratings), 2) if ratings else None

    summary = UserRatingsSummary(
        to_user_id=user.id,
        average_score=average,
        total_ratings=len(ratings),
        ratings=ratings,
    )
    return success(summary.model_dump())
