"""
Delete expired login sessions.

Expired sessions are already rejected on every request; this only keeps
the sessions table small. Safe to run from cron at any interval.

Usage (inside api container):
  python scripts/purge_expired_sessions.py
"""

from __future__ import annotations

import os
import sys

# Ensure /app is on sys.path when run as a script inside the container.
_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)


def main() -> int:
    from core.database import get_db_sync
    from services.sessions import purge_expired_sessions

    db = get_db_sync()
    try:
        removed = purge_expired_sessions(db)
    finally:
        db.close()

    print(f"Removed {removed} expired sessions")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
