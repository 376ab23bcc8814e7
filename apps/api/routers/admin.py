"""
Admin API Router

User and run moderation. Admin role only.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.auth import require_admin
from core.database import get_db
from core.responses import success
from core.time_utils import isoformat_utc
from models import Location, Run, RunMembership, User
from services.authorization import ensure_can_delete_user
from services.cascade import delete_run_cascade, delete_user_cascade
from services.lookups import get_run_or_404, get_user_or_404
from services.sessions import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
def list_users(
    search: Optional[str] = Query(default=None, max_length=200),
    current_user: AuthUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All users, newest first, with hosted and joined run counts."""
    hosted = (
        db.query(Run.host_user_id.label("user_id"), func.count(Run.id).label("n"))
        .group_by(Run.host_user_id)
        .subquery()
    )
    joined = (
        db.query(RunMembership.user_id.label("user_id"), func.count(RunMembership.id).label("n"))
        .group_by(RunMembership.user_id)
        .subquery()
    )

    query = (
        db.query(
            User,
            func.coalesce(hosted.c.n, 0),
            func.coalesce(joined.c.n, 0),
        )
        .outerjoin(hosted, hosted.c.user_id == User.id)
        .outerjoin(joined, joined.c.user_id == User.id)
    )

    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            func.lower(User.email).like(pattern),
            func.lower(User.username).like(pattern),
        ))

    rows = query.order_by(User.created_at.desc(), User.id.desc()).all()

    return success({
        "users": [
            {
                "id": user.id,
                "email": user.email,
                "username": user.username,
                "role": user.role,
                "created_at": isoformat_utc(user.created_at),
                "hosted_runs_count": int(hosted_count),
                "joined_runs_count": int(joined_count),
                "is_current_admin": user.id == current_user.id,
            }
            for user, hosted_count, joined_count in rows
        ],
    })


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Permanently delete a user and all their data.

    The acting admin can never delete their own account here; that check
    runs before the existence check.
    """
    ensure_can_delete_user(current_user, user_id)
    target = get_user_or_404(db, user_id)

    deleted = delete_user_cascade(db, target.id)

    logger.warning(
        f"Admin {current_user.id} deleted user {user_id}",
        extra={"extra_fields": {
            "event": "admin_delete_user",
            "admin_id": current_user.id,
            "target_user_id": user_id,
            "target_email": target.email,
            "deleted": deleted,
        }},
    )
    return success({"deleted": True})


@router.get("/runs")
def list_runs(
    current_user: AuthUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All runs, latest start first, with participant counts."""
    participants = (
        db.query(RunMembership.run_id.label("run_id"), func.count(RunMembership.id).label("n"))
        .group_by(RunMembership.run_id)
        .subquery()
    )

    rows = (
        db.query(Run, User.username, Location, func.coalesce(participants.c.n, 0))
        .join(User, Run.host_user_id == User.id)
        .join(Location, Run.location_id == Location.id)
        .outerjoin(participants, participants.c.run_id == Run.id)
        .order_by(Run.starts_at.desc(), Run.id.desc())
        .all()
    )

    return success({
        "runs": [
            {
                "id": run.id,
                "title": run.title,
                "starts_at": isoformat_utc(run.starts_at),
                "host_user_id": run.host_user_id,
                "host_username": host_username,
                "city": location.city,
                "municipality": location.municipality,
                "participants_count": int(count),
            }
            for run, host_username, location, count in rows
        ],
    })


@router.delete("/runs/{run_id}")
def delete_run(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    run = get_run_or_404(db, run_id)
    deleted = delete_run_cascade(db, run.id)

    logger.warning(
        f"Admin {current_user.id} deleted run {run_id}",
        extra={"extra_fields": {
            "event": "admin_delete_run",
            "admin_id": current_user.id,
            "run_id": run_id,
            "host_user_id": run.host_user_id,
            "deleted": deleted,
        }},
    )
    return success({"deleted": True})
