"""
Background actions.

The operations behind the overlay's buttons and the HTTP service: alert
creation, handing a symbol to the alert configuration surface, and watchlist
changes.  Each one reports its outcome through the Notifier when given one;
failures are also re-raised so the caller can surface them.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .client import StockAlertApiError, StockAlertClient, create_api_client
from .errors import MembershipUnknown, MutationFailed, TickerLensError
from .notifications import Notifier
from .schemas import Alert, CreateAlertRequest, CreateWatchlistItemRequest, WatchlistItem
from .storage import StorageManager

log = logging.getLogger(__name__)

API_KEY_PREFIX = "sk_"


class ApiKeyMissing(MutationFailed):
    """No API key is stored, so the remote API cannot be called."""


class InvalidApiKey(TickerLensError):
    """The supplied key does not have the expected format."""


@asynccontextmanager
async def api_client(
    storage: StorageManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[StockAlertClient]:
    client = await create_api_client(storage, transport=transport)
    if client is None:
        raise ApiKeyMissing("API key not configured. Please add your API key in settings.")
    async with client:
        yield client


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


async def request_alert_creation(
    storage: StorageManager, notifier: Notifier, symbol: str
) -> bool:
    """
    Hand *symbol* to the alert configuration surface.

    The symbol is stored as the pending alert symbol for the configuration UI
    to pick up.  Returns False (after notifying) when no API key is set.
    """
    log.info("Alert creation requested for %s", symbol)
    if not await storage.get_api_key():
        notifier.notify(
            "API Key Required",
            "Please configure your StockAlert.pro API key in the extension settings.",
            level="error",
        )
        return False
    await storage.set_pending_alert_symbol(symbol)
    return True


async def create_alert(
    storage: StorageManager,
    notifier: Notifier,
    request: CreateAlertRequest,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Alert:
    log.info("Creating %s alert for %s", request.condition, request.symbol)
    try:
        async with api_client(storage, transport) as client:
            alert = await client.create_alert(request)
    except StockAlertApiError as exc:
        notifier.notify("Alert Creation Failed", exc.message, level="error")
        raise
    except ApiKeyMissing as exc:
        notifier.notify("Alert Creation Failed", str(exc), level="error")
        raise
    except httpx.RequestError as exc:
        notifier.notify(
            "Alert Creation Failed", "Failed to create alert. Please try again.", level="error"
        )
        raise MutationFailed(f"Request error: {type(exc).__name__}") from exc

    notifier.notify(
        "Alert Created",
        f"Successfully created {request.condition} alert for {request.symbol}",
    )
    return alert


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------


async def get_watchlist(
    storage: StorageManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[WatchlistItem]:
    async with api_client(storage, transport) as client:
        return await client.list_watchlist()


async def is_in_watchlist(
    storage: StorageManager,
    symbol: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    async with api_client(storage, transport) as client:
        return await client.is_in_watchlist(symbol)


async def add_to_watchlist(
    storage: StorageManager,
    notifier: Optional[Notifier],
    symbol: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WatchlistItem:
    log.info("Adding %s to watchlist", symbol)
    try:
        async with api_client(storage, transport) as client:
            item = await client.add_to_watchlist(CreateWatchlistItemRequest(stock_symbol=symbol))
    except httpx.RequestError as exc:
        raise MutationFailed(f"Request error: {type(exc).__name__}") from exc

    if notifier is not None:
        notifier.notify("Added to Watchlist", f"{symbol} has been added to your watchlist")
    return item


async def remove_from_watchlist(
    storage: StorageManager,
    notifier: Notifier,
    item_id: str,
    symbol: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    label = symbol or item_id
    log.info("Removing %s from watchlist", label)
    try:
        async with api_client(storage, transport) as client:
            await client.remove_from_watchlist(item_id)
    except httpx.RequestError as exc:
        raise MutationFailed(f"Request error: {type(exc).__name__}") from exc

    notifier.notify("Removed from Watchlist", f"{label} has been removed from your watchlist")


async def remove_symbol_from_watchlist(
    storage: StorageManager,
    notifier: Optional[Notifier],
    symbol: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Remove the watchlist entry for *symbol*; False if there was none."""
    try:
        async with api_client(storage, transport) as client:
            item = await client.find_watchlist_item(symbol)
            if item is None:
                return False
            await client.remove_from_watchlist(item.id)
    except httpx.RequestError as exc:
        raise MutationFailed(f"Request error: {type(exc).__name__}") from exc

    if notifier is not None:
        notifier.notify("Removed from Watchlist", f"{symbol} has been removed from your watchlist")
    return True


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


async def save_api_key(storage: StorageManager, notifier: Notifier, api_key: str) -> None:
    api_key = api_key.strip()
    if not api_key.startswith(API_KEY_PREFIX):
        raise InvalidApiKey(f'Invalid API key format. Key should start with "{API_KEY_PREFIX}"')
    await storage.save_api_key(api_key)
    notifier.notify("API Key Saved", "Your StockAlert.pro API key has been saved")


# ---------------------------------------------------------------------------
# Overlay collaborators
# ---------------------------------------------------------------------------


class StoredWatchlist:
    """
    Watchlist provider for the overlay, backed by the stored API key.

    The overlay reports outcomes with its own toasts, so nothing here goes
    through the Notifier.
    """

    def __init__(
        self,
        storage: StorageManager,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.storage = storage
        self.transport = transport

    async def is_in_watchlist(self, symbol: str) -> bool:
        try:
            return await is_in_watchlist(self.storage, symbol, self.transport)
        except (TickerLensError, httpx.RequestError) as exc:
            raise MembershipUnknown(f"Could not check watchlist status for {symbol}") from exc

    async def add(self, symbol: str) -> WatchlistItem:
        return await add_to_watchlist(self.storage, None, symbol, self.transport)

    async def remove(self, symbol: str) -> None:
        if not await remove_symbol_from_watchlist(self.storage, None, symbol, self.transport):
            raise MutationFailed(f"{symbol} is not in your watchlist")
