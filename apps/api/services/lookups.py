"""
Row loaders that raise NotFoundError, and membership lookups.

Always called before any authorization check.
"""
from typing import Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from models import Message, Rating, Run, RunMembership, User


def get_run_or_404(db: Session, run_id: int) -> Run:
    run = db.query(Run).filter(Run.id == run_id).first()
    if run is None:
        raise NotFoundError("Run", run_id)
    return run


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def get_rating_or_404(db: Session, rating_id: int) -> Rating:
    rating = db.query(Rating).filter(Rating.id == rating_id).first()
    if rating is None:
        raise NotFoundError("Rating", rating_id)
    return rating


def get_run_message_or_404(db: Session, run_id: int, message_id: int) -> Message:
    """A message only counts as found inside the run it was posted to."""
    message = (
        db.query(Message)
        .filter(Message.id == message_id, Message.run_id == run_id)
        .first()
    )
    if message is None:
        raise NotFoundError("Message", message_id)
    return message


def get_membership(db: Session, run_id: int, user_id: int) -> Optional[RunMembership]:
    return (
        db.query(RunMembership)
        .filter(RunMembership.run_id == run_id, RunMembership.user_id == user_id)
        .first()
    )


def is_run_member(db: Session, run_id: int, user_id: int) -> bool:
    return get_membership(db, run_id, user_id) is not None


def has_rated_run(db: Session, run_id: int, user_id: int) -> bool:
    return (
        db.query(Rating.id)
        .filter(Rating.run_id == run_id, Rating.from_user_id == user_id)
        .first()
        is not None
    )
