"""
PURPOSE: Health and status routes for Alert Relay.

    GET /health  unauthenticated liveness probe
    GET /status  per-channel queue depth and counters (requires ?key=)
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from alert_relay.api.auth import require_key
from alert_relay.api.deps import get_signal_router
from alert_relay.core.rate_limit import READ_LIMIT, limiter
from alert_relay.signals.router import SignalRouter
from alert_relay.version import get_version

router = APIRouter(tags=["system"])


@router.get("/health")
async def health() -> Dict[str, Any]:
    """Liveness probe for the hosting platform."""
    return {"ok": True, "status": "ok"}


@router.get("/status", dependencies=[Depends(require_key)])
@limiter.limit(READ_LIMIT)
async def get_status(
    request: Request,
    signal_router: SignalRouter = Depends(get_signal_router),
) -> Dict[str, Any]:
    """
    PURPOSE: Report what each channel holds and has seen since start-up.

    Returns:
        dict: {version, channels: {name: {kind, depth, max_depth,
            dedup_entries, counters, last_signal_time}}}
    """
    return {
        "version": get_version().get("version", "unknown"),
        "channels": signal_router.status(),
    }
