"""
Custom exception classes and error handling.

Every deliberate failure in the API is one of these. The handlers in
main.py render them into the response envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.details = details


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=message,
            error_code="NOT_FOUND"
        )


class ValidationError(APIException):
    """Validation error. `details` carries per-field messages when available."""

    def __init__(self, detail: str, details: Optional[Any] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class UnauthorizedError(APIException):
    """Authentication required."""

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidCredentialsError(APIException):
    """Login with an unknown email or a wrong password."""

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_CREDENTIALS",
        )


class ForbiddenError(APIException):
    """Access denied."""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ConflictError(APIException):
    """Resource conflict (e.g., duplicate entry)."""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )


class RateLimitedError(APIException):
    """Too many attempts within the current window."""

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Try again later.",
            error_code="RATE_LIMITED",
            headers={"Retry-After": str(max(0, int(retry_after_seconds)))},
            details={"retry_after_seconds": max(0, int(retry_after_seconds))},
        )


class CaptchaFailedError(APIException):
    """CAPTCHA token missing, rejected, or the provider could not be reached."""

    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CAPTCHA verification failed",
            error_code="CAPTCHA_FAILED",
            details={"reason": reason},
        )
