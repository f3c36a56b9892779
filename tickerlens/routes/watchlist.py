from __future__ import annotations

from fastapi import APIRouter

from .. import actions
from ..errors import TickerLensError
from ..notifications import get_notifier
from ..schemas import SymbolRequest, WatchlistItem
from ..storage import get_storage
from .errors import to_http

router = APIRouter(prefix="/watchlist", tags=["watchlist"])


@router.get("", response_model=list[WatchlistItem])
async def list_watchlist() -> list[WatchlistItem]:
    try:
        return await actions.get_watchlist(get_storage())
    except TickerLensError as exc:
        raise to_http(exc) from exc


@router.post("", response_model=WatchlistItem, status_code=201)
async def add_to_watchlist(body: SymbolRequest) -> WatchlistItem:
    try:
        return await actions.add_to_watchlist(get_storage(), get_notifier(), body.symbol)
    except TickerLensError as exc:
        raise to_http(exc) from exc


@router.delete("/{item_id}", status_code=204)
async def remove_from_watchlist(item_id: str, symbol: str | None = None) -> None:
    try:
        await actions.remove_from_watchlist(get_storage(), get_notifier(), item_id, symbol)
    except TickerLensError as exc:
        raise to_http(exc) from exc
