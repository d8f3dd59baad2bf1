"""
Bearer-token guard for the cron endpoints.

The scheduler sends "Authorization: Bearer <CRON_SECRET>". Without a
configured secret every call is refused, except in dev mode.
"""
import hmac
import logging
import os
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def get_cron_secret() -> Optional[str]:
    """Get CRON_SECRET from environment."""
    return os.getenv("CRON_SECRET")


def is_dev_mode() -> bool:
    """Check if running in development mode."""
    return os.getenv("PMHNP_ENV", "").lower() == "dev"


def verify_bearer(header: Optional[str], secret: Optional[str]) -> bool:
    if not secret or not header:
        return False
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return False
    return hmac.compare_digest(token.strip(), secret)


def cron_required(request: Request) -> None:
    """
    FastAPI dependency that requires the cron bearer token.
    Raises 401 HTTPException if the token is missing or wrong.
    """
    secret = get_cron_secret()
    if not secret:
        logger.error("[cron] CRON_SECRET not configured")
        if is_dev_mode():
            return
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not verify_bearer(request.headers.get("Authorization"), secret):
        logger.warning(f"[cron] Unauthorized access attempt to {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized")
