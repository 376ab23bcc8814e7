"""
reCAPTCHA verification.

The provider is treated as a remote yes/no answer. With no secret
configured, verification is skipped so local and test setups work
without network access.
"""
import logging
from typing import Optional

import requests

from core.config import settings
from core.exceptions import CaptchaFailedError

logger = logging.getLogger(__name__)


def verify_captcha_token(token: Optional[str], remote_ip: Optional[str] = None) -> None:
    """Raise CaptchaFailedError unless the provider accepts `token`."""
    secret = settings.RECAPTCHA_SECRET_KEY
    if not secret:
        return

    if not token or not token.strip():
        raise CaptchaFailedError("missing_token")

    data = {"secret": secret, "response": token.strip()}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        resp = requests.post(
            settings.RECAPTCHA_VERIFY_URL,
            data=data,
            timeout=settings.RECAPTCHA_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning(f"CAPTCHA provider request failed: {e}")
        raise CaptchaFailedError("provider_error")

    if resp.status_code != 200:
        logger.warning(f"CAPTCHA provider returned HTTP {resp.status_code}")
        raise CaptchaFailedError("provider_error")

    try:
        result = resp.json()
    except ValueError:
        logger.warning("CAPTCHA provider returned a non-JSON body")
        raise CaptchaFailedError("provider_error")

    if not result.get("success"):
        logger.info(
            "CAPTCHA rejected",
            extra={"extra_fields": {"error_codes": result.get("error-codes", [])}},
        )
        raise CaptchaFailedError("failed_check")
