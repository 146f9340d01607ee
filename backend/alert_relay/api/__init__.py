"""
PURPOSE: API router initialization and exports for Alert Relay.

This module aggregates the signal and system routers into a single
api_router that is included in the main FastAPI application.
"""

from fastapi import APIRouter

from alert_relay.api.routes_signal import router as signal_router
from alert_relay.api.routes_system import router as system_router

# Paths are served from the root; existing senders post to /signal/<channel>
api_router = APIRouter()

api_router.include_router(system_router)
api_router.include_router(signal_router)

__all__ = ["api_router"]
