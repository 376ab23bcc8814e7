"""
Security headers for the Runly API.

Every response gets nosniff, DENY framing, a referrer policy and a
permissions policy that only lets the web client ask for the browser's
location (the run map). Responses carrying per-user data are marked
`no-store`. Production adds HSTS and a deny-all CSP, since the API only
ever returns JSON.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.config import settings

PERMISSIONS_POLICY = {
    "geolocation": "(self)",
    "camera": "()",
    "microphone": "()",
    "payment": "()",
    "usb": "()",
    "accelerometer": "()",
    "gyroscope": "()",
    "magnetometer": "()",
}

# Prefixes of the session-authenticated routers.
PRIVATE_PATH_PREFIXES = ("/auth", "/profile", "/chat", "/dashboard", "/admin", "/ratings", "/runs", "/users")

HSTS_MAX_AGE_SECONDS = 31536000


def is_private_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PRIVATE_PATH_PREFIXES)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        headers = response.headers

        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        headers["Permissions-Policy"] = ", ".join(f"{k}={v}" for k, v in PERMISSIONS_POLICY.items())

        if is_private_path(request.url.path):
            headers["Cache-Control"] = "no-store"

        if settings.ENVIRONMENT == "production":
            headers["Strict-Transport-Security"] = f"max-age={HSTS_MAX_AGE_SECONDS}; includeSubDomains"
            headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response
