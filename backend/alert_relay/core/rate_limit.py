"""
PURPOSE: Rate limiting configuration for Alert Relay using slowapi.

Provides a shared Limiter instance keyed by client IP address and the rate
limit providers for the two endpoint categories:
    - WEBHOOK_LIMIT: signal ingestion (POST /signal/...)
    - READ_LIMIT:    polling and status (GET /last/..., GET /status)

The providers are callables, so slowapi re-reads them on every request and
the values installed by configure_limits() for the running app win over the
module-level settings.
"""

from typing import Dict

from slowapi import Limiter
from slowapi.util import get_remote_address

from alert_relay.config.settings import Settings, settings

# Shared limiter instance — keyed by client IP
limiter = Limiter(key_func=get_remote_address)

# ── Rate limit tiers ──────────────────────────────────────────
_limits: Dict[str, str] = {
    "webhook": settings.WEBHOOK_RATE_LIMIT,
    "read": settings.READ_RATE_LIMIT,
}


def configure_limits(app_settings: Settings) -> None:
    """
    PURPOSE: Install the rate limit strings of the app being built.

    Args:
        app_settings: Settings passed to create_app().
    """
    _limits["webhook"] = app_settings.WEBHOOK_RATE_LIMIT
    _limits["read"] = app_settings.READ_RATE_LIMIT


def webhook_limit() -> str:
    return _limits["webhook"]


def read_limit() -> str:
    return _limits["read"]


WEBHOOK_LIMIT = webhook_limit
READ_LIMIT = read_limit
