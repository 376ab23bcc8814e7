"""
Tests for the session manager: token shape, expiry boundaries, invalidation.
"""
from datetime import timedelta

from sqlalchemy import text

from core.config import settings
from core.time_utils import as_utc, utcnow
from models import User, UserSession
from services.sessions import (
    AuthUser,
    create_session,
    generate_session_token,
    invalidate_session,
    purge_expired_sessions,
    resolve_session,
)


class TestTokenGeneration:
    def test_token_is_64_hex_chars(self):
        token = generate_session_token()
        assert len(token) == 64
        int(token, 16)  # hex or ValueError

    def test_tokens_are_unique(self):
        tokens = {generate_session_token() for _ in range(200)}
        assert len(tokens) == 200


class TestCreateAndResolve:
    def test_create_persists_row_with_configured_lifetime(self, db_session, make_user):
        user = make_user()
        now = utcnow()

        issued = create_session(db_session, user.id, now=now)

        row = db_session.query(UserSession).filter(UserSession.token == issued.token).one()
        assert row.user_id == user.id
        assert as_utc(row.expires_at) == now + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS)
        assert issued.expires_at == now + timedelta(days=7)

    def test_resolve_returns_identity_projection(self, db_session, make_user):
        user = make_user(role="coach")
        issued = create_session(db_session, user.id)

        identity = resolve_session(db_session, issued.token)

        assert identity == AuthUser(id=user.id, email=user.email, username=user.username, role="coach")

    def test_resolve_rejects_empty_and_unknown_tokens(self, db_session):
        assert resolve_session(db_session, None) is None
        assert resolve_session(db_session, "") is None
        assert resolve_session(db_session, "0" * 64) is None

    def test_session_valid_until_just_before_expiry(self, db_session, make_user):
        user = make_user()
        now = utcnow()
        issued = create_session(db_session, user.id, now=now)

        just_before = issued.expires_at - timedelta(seconds=1)
        assert resolve_session(db_session, issued.token, now=just_before) is not None

    def test_session_invalid_at_exact_expiry(self, db_session, make_user):
        """expires_at must be strictly after now."""
        user = make_user()
        issued = create_session(db_session, user.id)

        assert resolve_session(db_session, issued.token, now=issued.expires_at) is None
        assert resolve_session(db_session, issued.token, now=issued.expires_at + timedelta(seconds=1)) is None

    def test_session_of_deleted_user_resolves_to_none(self, db_session, make_user):
        user = make_user()
        issued = create_session(db_session, user.id)

        # Orphan the session row: remove the user with FK enforcement off.
        db_session.execute(text("PRAGMA foreign_keys=OFF"))
        try:
            db_session.query(User).filter(User.id == user.id).delete(synchronize_session=False)
            db_session.commit()
        finally:
            db_session.execute(text("PRAGMA foreign_keys=ON"))

        assert db_session.query(UserSession).count() == 1
        assert resolve_session(db_session, issued.token) is None


class TestInvalidate:
    def test_invalidate_deletes_row(self, db_session, make_user):
        user = make_user()
        issued = create_session(db_session, user.id)

        invalidate_session(db_session, issued.token)

        assert db_session.query(UserSession).count() == 0
        assert resolve_session(db_session, issued.token) is None

    def test_invalidate_is_idempotent(self, db_session, make_user):
        user = make_user()
        issued = create_session(db_session, user.id)

        invalidate_session(db_session, issued.token)
        invalidate_session(db_session, issued.token)
        invalidate_session(db_session, None)

        assert db_session.query(UserSession).count() == 0

    def test_invalidate_leaves_other_sessions(self, db_session, make_user):
        user = make_user()
        first = create_session(db_session, user.id)
        second = create_session(db_session, user.id)

        invalidate_session(db_session, first.token)

        assert resolve_session(db_session, second.token) is not None


class TestPurgeExpired:
    def test_purge_removes_only_expired(self, db_session, make_user):
        user = make_user()
        now = utcnow()
        create_session(db_session, user.id, now=now - timedelta(days=8))
        create_session(db_session, user.id, now=now - timedelta(days=7))
        live = create_session(db_session, user.id, now=now)

        removed = purge_expired_sessions(db_session, now=now)

        assert removed == 2
        remaining = db_session.query(UserSession).all()
        assert [s.token for s in remaining] == [live.token]
