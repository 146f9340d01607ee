"""
PURPOSE: FastAPI dependencies giving routes access to the app-owned SignalRouter.
"""

from fastapi import HTTPException, Request, status

from alert_relay.signals.router import ChannelBinding, SignalRouter, UnknownChannelError


def get_signal_router(request: Request) -> SignalRouter:
    """Return the router built by create_app() and stored on app.state."""
    return request.app.state.router


def resolve_binding(router: SignalRouter, channel: str) -> ChannelBinding:
    """
    PURPOSE: Look up a channel binding, turning an unknown name into HTTP 404.

    Raises:
        HTTPException: 404 if the channel is not bound.
    """
    try:
        return router.binding(channel)
    except UnknownChannelError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"unknown channel '{channel}'",
        ) from None
