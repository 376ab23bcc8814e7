"""
Session Manager

Opaque session tokens stored in the `sessions` table.

- A token is 32 random bytes, hex encoded (64 chars).
- A session is valid while `expires_at` is strictly after "now".
- Sessions are never renewed in place; each login issues a new token.
- Nothing is cached: every request re-reads the session and the user.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from core.config import settings
from core.time_utils import as_utc, utcnow
from models import User, UserSession

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class AuthUser:
    """Identity resolved from a session. This is all authorization needs."""
    id: int
    email: str
    username: str
    role: str


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


def generate_session_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def create_session(db: Session, user_id: int, now: Optional[datetime] = None) -> IssuedSession:
    """Persist a new session for `user_id` and commit."""
    now = as_utc(now) or utcnow()
    token = generate_session_token()
    expires_at = now + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS)

    db.add(UserSession(token=token, user_id=user_id, expires_at=expires_at, created_at=now))
    db.commit()

    return IssuedSession(token=token, expires_at=expires_at)


def resolve_session(db: Session, token: Optional[str], now: Optional[datetime] = None) -> Optional[AuthUser]:
    """
    Map a token to the user it belongs to.

    Returns None for a missing, unknown or expired token, and for a session
    whose user no longer exists.
    """
    if not token:
        return None

    row = db.query(UserSession).filter(UserSession.token == token).first()
    if row is None:
        return None

    now = as_utc(now) or utcnow()
    if as_utc(row.expires_at) <= now:
        return None

    user = db.query(User).filter(User.id == row.user_id).first()
    if user is None:
        return None

    return AuthUser(id=user.id, email=user.email, username=user.username, role=user.role)


def invalidate_session(db: Session, token: Optional[str]) -> None:
    """Delete the session row. Unknown or already deleted tokens are fine."""
    if not token:
        return
    db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()


def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """Delete sessions that are no longer valid. Returns the number removed."""
    now = as_utc(now) or utcnow()
    deleted = (
        db.query(UserSession)
        .filter(UserSession.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Purged {deleted} expired sessions")
    return deleted
