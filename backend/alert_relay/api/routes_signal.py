"""
PURPOSE: Signal ingestion and polling routes for Alert Relay.

    POST /signal/{channel}        JSON body (structured or free-text channel)
    POST /signal/{channel}_plain  raw text/plain body, metadata in the query string
    POST /signal/c_raw            legacy alias of POST /signal/c
    GET  /last/{channel}          pop the oldest pending signal

Every route requires ?key=<SECRET_KEY>. Verdicts map to HTTP as:
queued / deduped / ignored → 200 acknowledgement (the notifier must not
retry something the relay dropped on purpose); rejected → 400.

CALLED BY:
    - MacroDroid / curl alert senders (POST)
    - The trading agent polling for work (GET)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from alert_relay.api.auth import require_key
from alert_relay.api.deps import get_signal_router, resolve_binding
from alert_relay.config.constants import ChannelKind, Outcome
from alert_relay.core.rate_limit import READ_LIMIT, WEBHOOK_LIMIT, limiter
from alert_relay.signals.models import FreeTextPayload, StructuredPayload, SubmitResult
from alert_relay.signals.router import SignalRouter
from alert_relay.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["signals"], dependencies=[Depends(require_key)])


# ════════════════════════════════════════════════════════════════
# Internal Helpers
# ════════════════════════════════════════════════════════════════


def _to_response(result: SubmitResult) -> JSONResponse:
    """
    PURPOSE: Render a SubmitResult in the relay's wire shape.

    Returns:
        JSONResponse: 200 for queued / deduped / ignored, 400 for rejected.
    """
    if result.outcome is Outcome.QUEUED:
        return JSONResponse({"ok": True, "queued": True, "size": result.queue_depth})
    if result.outcome is Outcome.DEDUPED:
        return JSONResponse({"ok": True, "deduped": True})
    if result.outcome is Outcome.IGNORED:
        return JSONResponse({"ok": True, "ignored": result.reason, **result.details})
    return JSONResponse(
        {"ok": False, "error": result.reason, **result.details},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def _submit_json(signal_router: SignalRouter, channel: str, body: Dict[str, Any]) -> JSONResponse:
    binding = resolve_binding(signal_router, channel)
    model = StructuredPayload if binding.kind is ChannelKind.STRUCTURED else FreeTextPayload
    try:
        payload = model.model_validate(body)
    except ValidationError as e:
        logger.warning("signal_payload_invalid", channel=channel, error_count=e.error_count())
        return _to_response(SubmitResult.rejected("invalid_payload"))
    return _to_response(signal_router.submit(channel, payload))


# ════════════════════════════════════════════════════════════════
# Ingestion
# ════════════════════════════════════════════════════════════════


@router.post("/signal/c_raw")
@limiter.limit(WEBHOOK_LIMIT)
async def post_signal_c_raw(
    request: Request,
    body: Dict[str, Any] = Body(...),
    signal_router: SignalRouter = Depends(get_signal_router),
) -> JSONResponse:
    """
    PURPOSE: Legacy path kept for senders still configured with /signal/c_raw.

    Behaves exactly like POST /signal/c.
    """
    return _submit_json(signal_router, "c", body)


@router.post("/signal/{channel}_plain")
@limiter.limit(WEBHOOK_LIMIT)
async def post_signal_plain(
    request: Request,
    channel: str,
    who: str = Query(""),
    room: str = Query(""),
    symbol: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    signal_router: SignalRouter = Depends(get_signal_router),
) -> JSONResponse:
    """
    PURPOSE: Accept a free-text alert as a raw text/plain body.

    The phone automation tool posts the notification text untouched (line
    breaks included) and passes who / room / symbol / id as query parameters.

    Example:
        POST /signal/c_plain?key=...&who=しおり&room=VIP&symbol=GOLD

    Returns:
        JSONResponse: Verdict in the relay's wire shape.
    """
    resolve_binding(signal_router, channel)
    raw = await request.body()
    payload = FreeTextPayload(
        text=raw.decode("utf-8", errors="replace"),
        who=who,
        room=room,
        symbol=symbol,
        id=id,
    )
    return _to_response(signal_router.submit(channel, payload))


@router.post("/signal/{channel}")
@limiter.limit(WEBHOOK_LIMIT)
async def post_signal(
    request: Request,
    channel: str,
    body: Dict[str, Any] = Body(...),
    signal_router: SignalRouter = Depends(get_signal_router),
) -> JSONResponse:
    """
    PURPOSE: Accept a JSON alert for any channel.

    Structured channels expect {cmd|command, symbol, id|identifier};
    free-text channels expect {text, who|admin, room, symbol, id}.

    Returns:
        JSONResponse: {"ok": true, "queued": true, "size": n} and friends,
            or HTTP 400 with {"ok": false, "error": reason} when rejected.

    Raises:
        HTTP 403: Invalid key.
        HTTP 404: Unknown channel.
    """
    return _submit_json(signal_router, channel, body)


# ════════════════════════════════════════════════════════════════
# Polling
# ════════════════════════════════════════════════════════════════


@router.get("/last/{channel}")
@limiter.limit(READ_LIMIT)
async def get_last(
    request: Request,
    channel: str,
    signal_router: SignalRouter = Depends(get_signal_router),
) -> Dict[str, Any]:
    """
    PURPOSE: Hand the oldest pending signal of a channel to the trading agent.

    Each call removes what it returns, so a signal is delivered once.

    Returns:
        dict: The signal's wire form, or {"signal": null} when nothing is pending.
    """
    resolve_binding(signal_router, channel)
    signal = signal_router.take_next(channel)
    if signal is None:
        return {"signal": None}
    return signal.to_wire()
