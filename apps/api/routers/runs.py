"""
Runs API endpoints.

Provides:
- Search and list runs (text query, pace ceiling)
- Create a run (the host is joined automatically)
- Run detail, partial update and delete (host only)
- Join and leave
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager

from core.auth import get_current_user
from core.database import get_db
from core.exceptions import ForbiddenError
from core.responses import success
from core.time_utils import isoformat_utc
from core.validation import parse_body
from models import Location, Rating, Run, RunMembership, User
from schemas import RunCreateRequest, RunUpdateRequest
from services.authorization import ensure_can_modify_run
from services.cascade import delete_run_cascade
from services.locations import get_or_create_location
from services.lookups import get_membership, get_run_or_404
from services.sessions import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["runs"])


def _participants_by_run(db: Session, run_ids: List[int]) -> Dict[int, List[int]]:
    participants: Dict[int, List[int]] = {run_id: [] for run_id in run_ids}
    if not run_ids:
        return participants
    rows = (
        db.query(RunMembership.run_id, RunMembership.user_id)
        .filter(RunMembership.run_id.in_(run_ids))
        .order_by(RunMembership.id.asc())
        .all()
    )
    for run_id, user_id in rows:
        participants[run_id].append(user_id)
    return participants


def _own_ratings_by_run(db: Session, run_ids: List[int], user_id: int) -> Dict[int, Rating]:
    if not run_ids:
        return {}
    rows = (
        db.query(Rating)
        .filter(Rating.run_id.in_(run_ids), Rating.from_user_id == user_id)
        .all()
    )
    return {r.run_id: r for r in rows}


def serialize_run(run: Run, participant_ids: List[int], own_rating: Optional[Rating]) -> Dict[str, Any]:
    return {
        "id": run.id,
        "title": run.title,
        "route": run.route,
        "starts_at": isoformat_utc(run.starts_at),
        "distance_km": run.distance_km,
        "pace_min_per_km": run.pace_min_per_km,
        "location": {
            "id": run.location.id,
            "city": run.location.city,
            "municipality": run.location.municipality,
            "lat": run.location.lat,
            "lng": run.location.lng,
        },
        "host": {
            "id": run.host.id,
            "username": run.host.username,
        },
        "participant_user_ids": participant_ids,
        "rated_by_current_user": own_rating is not None,
        "current_user_rating": (
            {"id": own_rating.id, "score": own_rating.score, "comment": own_rating.comment}
            if own_rating is not None
            else None
        ),
    }


def _run_payload(db: Session, run: Run, current_user: AuthUser) -> Dict[str, Any]:
    participants = _participants_by_run(db, [run.id])
    own = _own_ratings_by_run(db, [run.id], current_user.id)
    return serialize_run(run, participants[run.id], own.get(run.id))


@router.get("")
def list_runs(
    q: Optional[str] = Query(default=None, max_length=200),
    max_pace: Optional[float] = Query(default=None, gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List runs ordered by start time.

    `q` matches title, route, city or municipality (case-insensitive).
    `max_pace` keeps runs whose pace is at most the given min/km.
    """
    query = (
        db.query(Run)
        .join(Location, Run.location_id == Location.id)
        .join(User, Run.host_user_id == User.id)
        .options(contains_eager(Run.location), contains_eager(Run.host))
    )

    term = (q or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            func.lower(Run.title).like(pattern),
            func.lower(Run.route).like(pattern),
            func.lower(Location.city).like(pattern),
            func.lower(Location.municipality).like(pattern),
        ))

    if max_pace is not None:
        query = query.filter(Run.pace_min_per_km <= max_pace)

    runs = query.order_by(Run.starts_at.asc(), Run.id.asc()).all()
    run_ids = [r.id for r in runs]
    participants = _participants_by_run(db, run_ids)
    own_ratings = _own_ratings_by_run(db, run_ids, current_user.id)

    return success({
        "runs": [serialize_run(r, participants[r.id], own_ratings.get(r.id)) for r in runs],
        "current_user_id": current_user.id,
    })


@router.post("", status_code=status.HTTP_201_CREATED)
def create_run(
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a run hosted by the caller and join the caller to it."""
    data = parse_body(RunCreateRequest, payload, "Invalid run payload")

    location = get_or_create_location(db, data.city, data.municipality, data.lat, data.lng)
    run = Run(
        title=data.title,
        route=data.route,
        starts_at=data.starts_at,
        distance_km=data.distance_km,
        pace_min_per_km=data.pace_min_per_km,
        location_id=location.id,
        host_user_id=current_user.id,
    )
    db.add(run)
    db.flush()
    db.add(RunMembership(run_id=run.id, user_id=current_user.id))
    db.commit()
    db.refresh(run)

    logger.info(
        f"User {current_user.id} created run {run.id}",
        extra={"extra_fields": {"run_id": run.id, "location_id": location.id}},
    )
    return success({"run": _run_payload(db, run, current_user)}, status.HTTP_201_CREATED)


@router.get("/{run_id}")
def get_run(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = get_run_or_404(db, run_id)
    return success({"run": _run_payload(db, run, current_user)})


@router.patch("/{run_id}")
def update_run(
    run_id: int = Path(..., gt=0),
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update by the host. city and municipality move together."""
    run = get_run_or_404(db, run_id)
    ensure_can_modify_run(current_user, run)
    data = parse_body(RunUpdateRequest, payload, "Invalid run update")

    changes = data.model_dump(exclude_unset=True)
    city = changes.pop("city", None)
    municipality = changes.pop("municipality", None)
    if city is not None and municipality is not None:
        run.location_id = get_or_create_location(db, city, municipality).id

    for field, value in changes.items():
        setattr(run, field, value)

    db.commit()
    db.refresh(run)

    logger.info(f"Run {run.id} updated by host", extra={"extra_fields": {"run_id": run.id}})
    return success({"run": _run_payload(db, run, current_user)})


@router.delete("/{run_id}")
def delete_run(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = get_run_or_404(db, run_id)
    ensure_can_modify_run(current_user, run)
    delete_run_cascade(db, run.id)
    return success({"deleted": True})


@router.post("/{run_id}/join")
def join_run(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join a run. Joining twice is not an error; `already_joined` says so."""
    run = get_run_or_404(db, run_id)

    if get_membership(db, run.id, current_user.id) is not None:
        return success({"joined": True, "already_joined": True})

    db.add(RunMembership(run_id=run.id, user_id=current_user.id))
    try:
        db.commit()
    except IntegrityError:
        # Concurrent join from the same user won the unique constraint.
        db.rollback()
        return success({"joined": True, "already_joined": True})

    return success({"joined": True, "already_joined": False})


@router.post("/{run_id}/leave")
def leave_run(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = get_run_or_404(db, run_id)
    if run.host_user_id == current_user.id:
        raise ForbiddenError("The host cannot leave their own run")

    membership = get_membership(db, run.id, current_user.id)
    if membership is None:
        raise ForbiddenError("You are not a member of this run")

    db.delete(membership)
    db.commit()
    return success({"left": True})
