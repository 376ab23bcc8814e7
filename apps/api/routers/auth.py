"""
Authentication API endpoints.

Provides:
- User registration
- Login (session cookie), rate limited per client address, optional CAPTCHA
- Logout
- Current identity
"""
from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.responses import Response

from core.auth import get_current_user, get_session_token
from core.captcha import verify_captcha_token
from core.config import settings
from core.database import get_db
from core.exceptions import ConflictError, InvalidCredentialsError
from core.rate_limit import enforce_login_rate_limit, get_client_ip
from core.responses import success
from core.security import DUMMY_PASSWORD_HASH, get_password_hash, verify_password
from core.validation import parse_body, read_json_body
from models import User
from schemas import AuthUserResponse, LoginRequest, RegisterRequest
from services.sessions import AuthUser, create_session, invalidate_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def _raise_if_identity_taken(db: Session, email: str, username: str) -> None:
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email is already registered", error_code="EMAIL_TAKEN")
    if db.query(User.id).filter(User.username == username).first():
        raise ConflictError("Username is already taken", error_code="USERNAME_TAKEN")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
):
    """
    Register a new account.

    Only the runner and coach roles can be chosen here.
    """
    data = parse_body(RegisterRequest, payload, "Invalid register payload")

    _raise_if_identity_taken(db, data.email, data.username)

    user = User(
        email=data.email,
        username=data.username,
        password_hash=get_password_hash(data.password),
        avatar_url=data.avatar_url,
        age=data.age,
        gender=data.gender.value,
        fitness_level=data.fitness_level.value,
        pace_min_per_km=data.pace_min_per_km,
        role=data.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration.
        db.rollback()
        _raise_if_identity_taken(db, data.email, data.username)
        raise

    logger.info(f"Registered user {user.id}", extra={"extra_fields": {"user_id": user.id, "role": user.role}})
    return success(AuthUserResponse.model_validate(user).model_dump(), status.HTTP_201_CREATED)


async def _login_body(request: Request, _: None = Depends(enforce_login_rate_limit)) -> Any:
    """Read the login body only once the attempt has been counted."""
    return await read_json_body(request)


@router.post("/login")
def login(
    request: Request,
    payload: Any = Depends(_login_body),
    db: Session = Depends(get_db),
):
    """
    Authenticate with email and password and set the session cookie.

    Order: rate limit, body validation, CAPTCHA (when configured), credentials.
    """
    data = parse_body(LoginRequest, payload, "Invalid login payload")

    verify_captcha_token(data.captcha_token, remote_ip=get_client_ip(request))

    user = db.query(User).filter(User.email == data.email).first()
    password_ok = verify_password(data.password, user.password_hash if user else DUMMY_PASSWORD_HASH)
    if user is None or not password_ok:
        logger.warning(
            "Failed login attempt",
            extra={"extra_fields": {"client_ip": get_client_ip(request), "known_email": user is not None}},
        )
        raise InvalidCredentialsError()

    issued = create_session(db, user.id)
    logger.info(f"User {user.id} logged in")

    response = success({
        "user": AuthUserResponse.model_validate(user).model_dump(),
        "expires_at": issued.expires_at,
    })
    set_session_cookie(response, issued.token)
    return response


@router.post("/logout")
def logout(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
):
    """Delete the current session, if any, and clear the cookie. Always succeeds."""
    invalidate_session(db, token)
    response = success({"logged_out": True})
    clear_session_cookie(response)
    return response


@router.get("/me")
def me(current_user: AuthUser = Depends(get_current_user)):
    return success({"user": AuthUserResponse.model_validate(current_user, from_attributes=True).model_dump()})
