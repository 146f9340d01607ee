"""
PURPOSE: Alert Relay — turns trading-alert notifications into queued trade commands.

Structured JSON posts and free-form chat text are normalised into BUY/SELL
signals, deduplicated, and held in bounded per-channel queues until a polling
trading agent takes them.
"""
