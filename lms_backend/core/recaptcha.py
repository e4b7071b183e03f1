import logging
from typing import Optional

import httpx

from lms_backend.core.config import settings

logger = logging.getLogger(__name__)

async def verify_recaptcha_token(token: str, remote_ip: Optional[str] = None) -> bool:
    """
    Checks a reCAPTCHA response token with Google's siteverify endpoint.
    Returns False when no secret is configured or Google rejects the token.
    """
    if not settings.RECAPTCHA_SECRET_KEY:
        logger.error("RECAPTCHA_SECRET_KEY is not configured; rejecting reCAPTCHA token.")
        return False

    data = {"secret": settings.RECAPTCHA_SECRET_KEY, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.post(settings.RECAPTCHA_VERIFY_URL, data=data)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as e:
        logger.error(f"reCAPTCHA verification request failed: {e}", exc_info=True)
        return False

    if not payload.get("success"):
        logger.warning(f"reCAPTCHA rejected token: {payload.get('error-codes')}")
        return False
    return True
