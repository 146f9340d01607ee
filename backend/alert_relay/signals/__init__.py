"""
PURPOSE: Signal engine for Alert Relay — normalisation, direction detection,
field extraction, deduplication and bounded per-channel queues.

Everything here is transport-agnostic; the FastAPI layer in alert_relay.api only
decodes requests and maps SubmitResult verdicts to HTTP responses.
"""

from alert_relay.signals.channels import build_bindings, build_router
from alert_relay.signals.models import FreeTextPayload, Signal, StructuredPayload, SubmitResult
from alert_relay.signals.router import ChannelBinding, SignalRouter, UnknownChannelError

__all__ = [
    "build_bindings",
    "build_router",
    "ChannelBinding",
    "FreeTextPayload",
    "Signal",
    "SignalRouter",
    "StructuredPayload",
    "SubmitResult",
    "UnknownChannelError",
]
