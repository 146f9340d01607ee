"""
PURPOSE: Shared-secret authentication for every relay endpoint except /health.

The phone automation tool and the trading agent can only append query
parameters, so the secret travels as ?key=... and is compared against
SECRET_KEY from the app's settings.
"""

import secrets
from typing import Optional

from fastapi import HTTPException, Query, Request, status

from alert_relay.utils.logger import get_logger

logger = get_logger(__name__)


def require_key(request: Request, key: Optional[str] = Query(None)) -> None:
    """
    PURPOSE: FastAPI dependency rejecting requests without the correct ?key=.

    CALLED BY: Depends() on every signal / poll / status route

    Args:
        request: Incoming request (settings are read from app.state).
        key:     Value of the `key` query parameter.

    Raises:
        HTTPException: 403 if the key is missing or does not match.
    """
    configured: str = request.app.state.settings.SECRET_KEY
    if not key or not secrets.compare_digest(key.encode("utf-8"), configured.encode("utf-8")):
        logger.warning(
            "webhook_auth_failed",
            path=request.url.path,
            has_key=bool(key),
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="invalid key",
        )
