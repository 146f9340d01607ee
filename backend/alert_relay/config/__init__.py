"""
PURPOSE: Export configuration settings and constants for Alert Relay.

This module centralizes access to all configuration settings and constants
used throughout the relay.
"""

from .constants import (
    ChannelKind,
    Command,
    Outcome,
    SYMBOL_ALIASES,
)
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "ChannelKind",
    "Command",
    "Outcome",
    "SYMBOL_ALIASES",
]
