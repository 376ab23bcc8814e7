"""
Authentication and authorization dependencies.

Provides FastAPI dependencies for:
- Getting the current authenticated user from the session cookie
- Reading the raw session token (logout)
- Role-based access control
"""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from core.config import settings
from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from services.sessions import AuthUser, resolve_session

# Use auto_error=False so a missing header falls through to the cookie
security = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Session cookie first, then an `Authorization: Bearer` header."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
) -> AuthUser:
    """
    Resolve the caller's identity.

    Raises UnauthorizedError (401) for a missing, unknown or expired session.
    """
    if not token:
        raise UnauthorizedError("Not authenticated")

    user = resolve_session(db, token)
    if user is None:
        raise UnauthorizedError("Session expired or invalid")
    return user


def require_role(allowed_roles: list[str]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: AuthUser = Depends(require_role(["admin"]))):
            ...
    """
    def role_checker(current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if current_user.role not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required roles: {allowed_roles}")
        return current_user

    return role_checker


def require_admin(
    current_user: AuthUser = Depends(require_role(["admin"]))
) -> AuthUser:
    """Require admin role."""
    return current_user
