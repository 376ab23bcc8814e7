"""
Run chat API endpoints.

Only members of a run can read or post in its chat. Messages can be edited
or deleted by their author and nobody else; admins are not special here.
"""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Body, Depends, Path, status
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.responses import success
from core.validation import parse_body
from models import Message, Run, User
from schemas import MessageRequest, MessageResponse
from services.authorization import ensure_can_modify_message, ensure_run_member
from services.lookups import get_run_message_or_404, get_run_or_404, is_run_member
from services.sessions import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _member_run_or_raise(db: Session, run_id: int, current_user: AuthUser) -> Run:
    run = get_run_or_404(db, run_id)
    ensure_run_member(is_run_member(db, run.id, current_user.id))
    return run


def serialize_message(message: Message, from_username: str) -> Dict[str, Any]:
    return MessageResponse(
        id=message.id,
        run_id=message.run_id,
        content=message.content,
        sent_at=message.sent_at,
        from_user_id=message.from_user_id,
        from_username=from_username,
        to_user_id=message.to_user_id,
    ).model_dump()


def recipient_for(run: Run, sender_id: int) -> int:
    """Messages go to the host; when the host posts, to the host as well."""
    return sender_id if run.host_user_id == sender_id else run.host_user_id


@router.get("/{run_id}/messages")
def list_messages(
    run_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Messages of a run, oldest first."""
    run = _member_run_or_raise(db, run_id, current_user)

    rows = (
        db.query(Message, User.username)
        .join(User, Message.from_user_id == User.id)
        .filter(Message.run_id == run.id)
        .order_by(Message.sent_at.asc(), Message.id.asc())
        .all()
    )

    return success({
        "run": {"id": run.id, "title": run.title, "host_user_id": run.host_user_id},
        "messages": [serialize_message(m, username) for m, username in rows],
    })


@router.post("/{run_id}/messages", status_code=status.HTTP_201_CREATED)
def post_message(
    run_id: int = Path(..., gt=0),
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = _member_run_or_raise(db, run_id, current_user)
    data = parse_body(MessageRequest, payload, "Invalid message")

    message = Message(
        content=data.content,
        run_id=run.id,
        from_user_id=current_user.id,
        to_user_id=recipient_for(run, current_user.id),
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    return success({"message": serialize_message(message, current_user.username)}, status.HTTP_201_CREATED)


@router.patch("/{run_id}/messages/{message_id}")
def update_message(
    run_id: int = Path(..., gt=0),
    message_id: int = Path(..., gt=0),
    payload: Any = Body(default=None),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = _member_run_or_raise(db, run_id, current_user)
    message = get_run_message_or_404(db, run.id, message_id)
    ensure_can_modify_message(current_user, message)
    data = parse_body(MessageRequest, payload, "Invalid message")

    message.content = data.content
    db.commit()
    db.refresh(message)

    return success({"message": serialize_message(message, current_user.username)})


@router.delete("/{run_id}/messages/{message_id}")
def delete_message(
    run_id: int = Path(..., gt=0),
    message_id: int = Path(..., gt=0),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    run = _member_run_or_raise(db, run_id, current_user)
    message = get_run_message_or_404(db, run.id, message_id)
    ensure_can_modify_message(current_user, message)

    db.delete(message)
    db.commit()
    return success({"deleted": True})
