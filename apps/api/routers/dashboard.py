"""
Dashboard API endpoint.

Summary for the landing page: how many runs the caller has joined, the
next few upcoming ones, and the latest chat activity across their runs.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import and_
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.responses import success
from core.time_utils import isoformat_utc, utcnow
from models import Location, Message, Run, RunMembership, User
from services.sessions import AuthUser

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

UPCOMING_RUNS_LIMIT = 5
RECENT_MESSAGES_LIMIT = 8


@router.get("/me")
def get_dashboard(
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    now = utcnow()

    upcoming = (
        db.query(Run, Location)
        .join(RunMembership, RunMembership.run_id == Run.id)
        .join(Location, Run.location_id == Location.id)
        .filter(RunMembership.user_id == current_user.id, Run.starts_at >= now)
        .order_by(Run.starts_at.asc(), Run.id.asc())
        .limit(UPCOMING_RUNS_LIMIT)
        .all()
    )

    joined_count = (
        db.query(RunMembership.id)
        .filter(RunMembership.user_id == current_user.id)
        .count()
    )

    recent = (
        db.query(Message, Run.title, User.username)
        .join(Run, Message.run_id == Run.id)
        .join(User, Message.from_user_id == User.id)
        .join(
            RunMembership,
            and_(RunMembership.run_id == Run.id, RunMembership.user_id == current_user.id),
        )
        .order_by(Message.sent_at.desc(), Message.id.desc())
        .limit(RECENT_MESSAGES_LIMIT)
        .all()
    )

    return success({
        "stats": {
            "joined_runs_count": joined_count,
            "upcoming_runs_count": len(upcoming),
        },
        "upcoming_runs": [
            {
                "id": run.id,
                "title": run.title,
                "starts_at": isoformat_utc(run.starts_at),
                "location": {"city": location.city, "municipality": location.municipality},
            }
            for run, location in upcoming
        ],
        "recent_messages": [
            {
                "id": message.id,
                "content": message.content,
                "sent_at": isoformat_utc(message.sent_at),
                "run_id": message.run_id,
                "run_title": run_title,
                "from_user_id": message.from_user_id,
                "from_username": from_username,
            }
            for message, run_title, from_username in recent
        ],
    })
