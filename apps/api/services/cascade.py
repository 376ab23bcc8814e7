"""
Domain Transaction Layer: cascading deletes.

The schema declares no ON DELETE CASCADE, so removing a run or a user
means removing every dependent row first. Each public function runs as a
single transaction on the caller's session: it commits when every step
succeeds and rolls back and re-raises otherwise, so a failed cascade never
leaves a partially cleaned state behind.

Both return per-table deleted row counts for logging.
"""
import logging
from collections import Counter
from typing import Dict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import Message, Rating, Run, RunMembership, User, UserSession

logger = logging.getLogger(__name__)


def _purge_run(db: Session, run_id: int, counts: Counter) -> None:
    """Delete a run and everything hanging off it. Does not commit."""
    counts["messages"] += db.query(Message).filter(Message.run_id == run_id).delete(synchronize_session=False)
    counts["run_users"] += db.query(RunMembership).filter(RunMembership.run_id == run_id).delete(synchronize_session=False)
    counts["ratings"] += db.query(Rating).filter(Rating.run_id == run_id).delete(synchronize_session=False)
    counts["runs"] += db.query(Run).filter(Run.id == run_id).delete(synchronize_session=False)


def delete_run_cascade(db: Session, run_id: int) -> Dict[str, int]:
    """Delete a run with its messages, memberships and ratings, atomically."""
    counts: Counter = Counter()
    try:
        _purge_run(db, run_id, counts)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Run cascade failed for run {run_id}; rolled back", exc_info=True)
        raise

    summary = dict(counts)
    logger.info(
        f"Deleted run {run_id}",
        extra={"extra_fields": {"event": "run_cascade", "run_id": run_id, "deleted": summary}},
    )
    return summary


def delete_user_cascade(db: Session, user_id: int) -> Dict[str, int]:
    """
    Delete a user and everything they own or took part in, atomically.

    Order:
    1. every run the user hosts, with that run's messages, memberships, ratings
    2. messages the user sent or received
    3. ratings the user gave or received
    4. the user's memberships in other runs
    5. the user's sessions
    6. the user row
    """
    counts: Counter = Counter()
    try:
        hosted_run_ids = [
            run_id for (run_id,) in db.query(Run.id).filter(Run.host_user_id == user_id).all()
        ]
        for run_id in hosted_run_ids:
            _purge_run(db, run_id, counts)

        counts["messages"] += db.query(Message).filter(
            or_(Message.from_user_id == user_id, Message.to_user_id == user_id)
        ).delete(synchronize_session=False)
        counts["ratings"] += db.query(Rating).filter(
            or_(Rating.from_user_id == user_id, Rating.to_user_id == user_id)
        ).delete(synchronize_session=False)
        counts["run_users"] += db.query(RunMembership).filter(
            RunMembership.user_id == user_id
        ).delete(synchronize_session=False)
        counts["sessions"] += db.query(UserSession).filter(
            UserSession.user_id == user_id
        ).delete(synchronize_session=False)
        counts["users"] += db.query(User).filter(User.id == user_id).delete(synchronize_session=False)

        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"User cascade failed for user {user_id}; rolled back", exc_info=True)
        raise

    summary = dict(counts)
    logger.warning(
        f"Deleted user {user_id}",
        extra={"extra_fields": {
            "event": "user_cascade",
            "user_id": user_id,
            "hosted_runs": len(hosted_run_ids),
            "deleted": summary,
        }},
    )
    return summary
