"""
Create or promote the admin account.

Registration never hands out the admin role; this is the only way in.
Reads SEED_ADMIN_EMAIL / SEED_ADMIN_USERNAME / SEED_ADMIN_PASSWORD.
Re-running is safe: an existing account with that email is promoted to
admin and gets the configured username and password.

Usage (inside api container):
  python scripts/seed_admin.py
"""

from __future__ import annotations

import os
import sys
from typing import Tuple

from pydantic import EmailStr, TypeAdapter

# Ensure /app is on sys.path when run as a script inside the container.
_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

DEFAULT_ADMIN_PASSWORD = "Admin123!"

# Matches LoginRequest.email.
_admin_email = TypeAdapter(EmailStr)


def seed_admin(db, email: str, username: str, password: str) -> Tuple["User", bool]:
    """Upsert the admin by email. Returns (user, created).

    Raises pydantic.ValidationError when the email would be refused at login.
    """
    from core.security import get_password_hash
    from core.time_utils import utcnow
    from models import User

    email = _admin_email.validate_python(email.strip()).lower()
    user = db.query(User).filter(User.email == email).first()
    created = user is None

    if created:
        user = User(
            email=email,
            username=username,
            password_hash=get_password_hash(password),
            age=30,
            gender="drugo",
            fitness_level="srednji",
            pace_min_per_km=6.0,
            role="admin",
        )
        db.add(user)
    else:
        user.role = "admin"
        user.username = username
        user.password_hash = get_password_hash(password)
        user.updated_at = utcnow()

    db.commit()
    db.refresh(user)
    return user, created


def main() -> int:
    from core.config import settings
    from core.database import get_db_sync

    password = settings.SEED_ADMIN_PASSWORD or DEFAULT_ADMIN_PASSWORD

    db = get_db_sync()
    try:
        user, created = seed_admin(db, settings.SEED_ADMIN_EMAIL, settings.SEED_ADMIN_USERNAME, password)
    except Exception as e:
        db.rollback()
        print(f"ERROR: could not seed admin: {e}")
        return 1
    finally:
        db.close()

    action = "Created" if created else "Updated"
    print(f"{action} admin user {user.id}: {user.email} ({user.username})")
    if not settings.SEED_ADMIN_PASSWORD:
        print(f"WARNING: SEED_ADMIN_PASSWORD not set, using the default password '{DEFAULT_ADMIN_PASSWORD}'")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
