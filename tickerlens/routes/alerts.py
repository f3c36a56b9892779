from __future__ import annotations

from fastapi import APIRouter

from .. import actions
from ..errors import TickerLensError
from ..notifications import get_notifier
from ..schemas import Alert, CreateAlertRequest, SymbolRequest
from ..storage import get_storage
from .errors import to_http

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("", response_model=Alert, status_code=201)
async def create_alert(body: CreateAlertRequest) -> Alert:
    """Create an alert through the remote API using the stored API key."""
    try:
        return await actions.create_alert(get_storage(), get_notifier(), body)
    except TickerLensError as exc:
        raise to_http(exc) from exc


@router.post("/request", status_code=202)
async def request_alert(body: SymbolRequest) -> dict:
    """Hand a symbol to the alert configuration surface."""
    accepted = await actions.request_alert_creation(get_storage(), get_notifier(), body.symbol)
    return {"success": accepted, "symbol": body.symbol}
