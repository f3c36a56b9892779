"""
Async client for the StockAlert.pro v1 API.

Every request carries the X-API-Key header.  A response counts as success
only when the HTTP status is 2xx *and* the JSON body has ``success: true``;
anything else becomes a StockAlertApiError built from the error envelope,
or from the HTTP status line when the body is not a valid envelope.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx
from pydantic import ValidationError

from .config import settings
from .errors import TickerLensError
from .ratelimit import RateLimiter
from .schemas import (
    Alert,
    AlertEnvelope,
    AlertListEnvelope,
    AlertPage,
    ApiErrorBody,
    ApiErrorEnvelope,
    CreateAlertRequest,
    CreateWatchlistItemRequest,
    WatchlistItem,
    WatchlistItemEnvelope,
    WatchlistListEnvelope,
)

if TYPE_CHECKING:
    from .storage import StorageManager

log = logging.getLogger(__name__)

_USER_AGENT = "TickerLens/1.0"


class StockAlertApiError(TickerLensError):
    def __init__(self, code: str, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @classmethod
    def from_api_error(cls, error: ApiErrorBody) -> StockAlertApiError:
        return cls(error.code, error.message, error.details)


class StockAlertClient:
    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.limiter = limiter
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"User-Agent": _USER_AGENT},
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> StockAlertClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def set_api_key(self, api_key: str) -> None:
        self.api_key = api_key

    # -----------------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if self.limiter is not None and not self.limiter.is_allowed(self.api_key):
            raise StockAlertApiError("RATE_LIMITED", "Client-side request limit reached")

        response = await self._http.request(
            method,
            endpoint,
            json=json,
            params=params,
            headers={"X-API-Key": self.api_key, "Content-Type": "application/json"},
        )

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_success and isinstance(data, dict) and data.get("success") is True:
            return data

        try:
            envelope = ApiErrorEnvelope.model_validate(data)
        except ValidationError:
            raise StockAlertApiError(
                "UNKNOWN_ERROR", f"HTTP {response.status_code}: {response.reason_phrase}"
            ) from None

        log.warning(
            "%s %s failed: %s %s", method, endpoint, envelope.error.code, envelope.error.message
        )
        raise StockAlertApiError.from_api_error(envelope.error)

    # -----------------------------------------------------------------------
    # Alerts
    # -----------------------------------------------------------------------

    async def create_alert(self, request: CreateAlertRequest) -> Alert:
        data = await self._request(
            "POST", "/api/v1/alerts", json=request.model_dump(exclude_none=True)
        )
        return AlertEnvelope.model_validate(data).data

    async def list_alerts(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        condition: Optional[str] = None,
        search: Optional[str] = None,
    ) -> AlertPage:
        params = {
            k: v
            for k, v in {
                "page": page,
                "limit": limit,
                "status": status,
                "condition": condition,
                "search": search,
            }.items()
            if v
        }
        data = await self._request("GET", "/api/v1/alerts", params=params or None)
        parsed = AlertListEnvelope.model_validate(data)
        return AlertPage(
            alerts=parsed.data,
            total=parsed.meta.pagination.total,
            page=parsed.meta.pagination.page,
        )

    async def get_alert(self, alert_id: str) -> Alert:
        data = await self._request("GET", f"/api/v1/alerts/{alert_id}")
        return AlertEnvelope.model_validate(data).data

    async def delete_alert(self, alert_id: str) -> None:
        await self._request("DELETE", f"/api/v1/alerts/{alert_id}")

    async def pause_alert(self, alert_id: str) -> None:
        await self._request("POST", f"/api/v1/alerts/{alert_id}/pause")

    async def activate_alert(self, alert_id: str) -> None:
        await self._request("POST", f"/api/v1/alerts/{alert_id}/activate")

    # -----------------------------------------------------------------------
    # Watchlist
    # -----------------------------------------------------------------------

    async def list_watchlist(self) -> list[WatchlistItem]:
        data = await self._request("GET", "/api/v1/watchlist")
        return WatchlistListEnvelope.model_validate(data).data

    async def add_to_watchlist(self, request: CreateWatchlistItemRequest) -> WatchlistItem:
        data = await self._request(
            "POST", "/api/v1/watchlist", json=request.model_dump(exclude_none=True)
        )
        return WatchlistItemEnvelope.model_validate(data).data

    async def remove_from_watchlist(self, item_id: str) -> None:
        await self._request("DELETE", f"/api/v1/watchlist/{item_id}")

    async def find_watchlist_item(self, symbol: str) -> Optional[WatchlistItem]:
        for item in await self.list_watchlist():
            if item.stock_symbol == symbol:
                return item
        return None

    async def is_in_watchlist(self, symbol: str) -> bool:
        return await self.find_watchlist_item(symbol) is not None


_limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window)


async def create_api_client(
    storage: StorageManager,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[StockAlertClient]:
    """Return a client for the stored API key, or None if no key is configured."""
    api_key = await storage.get_api_key()
    if not api_key:
        return None
    return StockAlertClient(api_key, transport=transport, limiter=_limiter)
