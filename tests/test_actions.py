from __future__ import annotations

import json

import httpx
import pytest

from tickerlens import actions
from tickerlens.actions import ApiKeyMissing, InvalidApiKey, StoredWatchlist
from tickerlens.client import StockAlertApiError
from tickerlens.errors import MembershipUnknown, MutationFailed
from tickerlens.schemas import CreateAlertRequest

RATE = {"limit": 100, "remaining": 99, "reset": 0}


class FakeApi:
    """Minimal in-memory StockAlert.pro watchlist/alerts API for MockTransport."""

    def __init__(self, symbols=()) -> None:
        self.items = {f"w{i}": s for i, s in enumerate(symbols, 1)}
        self.fail_with: tuple[int, str, str] | None = None
        self.raise_connect = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.raise_connect:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_with is not None:
            status, code, message = self.fail_with
            return httpx.Response(
                status, json={"success": False, "error": {"code": code, "message": message}}
            )

        path = request.url.path
        if path == "/api/v1/watchlist" and request.method == "GET":
            data = [{"id": i, "stock_symbol": s} for i, s in self.items.items()]
            return httpx.Response(200, json={"success": True, "data": data, "meta": {"rateLimit": RATE}})
        if path == "/api/v1/watchlist" and request.method == "POST":
            item_id = f"w{len(self.items) + 1}"
            self.items[item_id] = json.loads(request.content)["stock_symbol"]
            return httpx.Response(
                201,
                json={
                    "success": True,
                    "data": {"id": item_id, "stock_symbol": self.items[item_id]},
                    "meta": {"rateLimit": RATE},
                },
            )
        if path.startswith("/api/v1/watchlist/") and request.method == "DELETE":
            self.items.pop(path.rsplit("/", 1)[1], None)
            return httpx.Response(200, json={"success": True, "data": {}})
        if path == "/api/v1/alerts" and request.method == "POST":
            return httpx.Response(
                201,
                json={
                    "success": True,
                    "data": {
                        "id": "a1",
                        "symbol": "NVDA",
                        "condition": "price_below",
                        "threshold": 100.0,
                        "notification": "email",
                        "status": "active",
                        "created_at": "2024-01-01T00:00:00Z",
                        "initial_price": 120.0,
                    },
                    "meta": {"rateLimit": RATE},
                },
            )
        return httpx.Response(404, json={"success": False, "error": {"code": "NOT_FOUND", "message": "no route"}})


@pytest.fixture
def api():
    return FakeApi(["AAPL", "GOOGL"])


@pytest.fixture
def transport(api):
    return httpx.MockTransport(api)


@pytest.fixture
async def keyed_storage(storage):
    await storage.save_api_key("sk_live")
    return storage


# ---------------------------------------------------------------------------
# Alert creation
# ---------------------------------------------------------------------------


async def test_request_alert_creation_without_key(storage, notifier):
    assert await actions.request_alert_creation(storage, notifier, "NVDA") is False
    note = notifier.recent()[0]
    assert note.title == "API Key Required"
    assert note.level == "error"
    assert (await storage.get_storage()).pending_alert_symbol is None


async def test_request_alert_creation_stores_pending_symbol(keyed_storage, notifier):
    assert await actions.request_alert_creation(keyed_storage, notifier, "NVDA") is True
    assert await keyed_storage.pop_pending_alert_symbol() == "NVDA"


async def test_create_alert_success(keyed_storage, notifier, transport):
    request = CreateAlertRequest(symbol="NVDA", condition="price_below", threshold=100)
    alert = await actions.create_alert(keyed_storage, notifier, request, transport)

    assert alert.id == "a1"
    note = notifier.recent()[0]
    assert note.title == "Alert Created"
    assert note.message == "Successfully created price_below alert for NVDA"


async def test_create_alert_api_error(keyed_storage, notifier, api, transport):
    api.fail_with = (429, "RATE_LIMITED", "Too many requests")
    request = CreateAlertRequest(symbol="NVDA", condition="price_below", threshold=100)

    with pytest.raises(StockAlertApiError):
        await actions.create_alert(keyed_storage, notifier, request, transport)

    note = notifier.recent()[0]
    assert (note.title, note.message, note.level) == (
        "Alert Creation Failed",
        "Too many requests",
        "error",
    )


async def test_create_alert_network_error(keyed_storage, notifier, api, transport):
    api.raise_connect = True
    request = CreateAlertRequest(symbol="NVDA", condition="reminder")

    with pytest.raises(MutationFailed):
        await actions.create_alert(keyed_storage, notifier, request, transport)
    assert notifier.recent()[0].message == "Failed to create alert. Please try again."


async def test_create_alert_without_key(storage, notifier, transport):
    request = CreateAlertRequest(symbol="NVDA", condition="reminder")
    with pytest.raises(ApiKeyMissing):
        await actions.create_alert(storage, notifier, request, transport)
    assert notifier.recent()[0].title == "Alert Creation Failed"


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------


async def test_watchlist_membership(keyed_storage, transport):
    assert await actions.is_in_watchlist(keyed_storage, "GOOGL", transport)
    assert not await actions.is_in_watchlist(keyed_storage, "TSLA", transport)
    items = await actions.get_watchlist(keyed_storage, transport)
    assert [i.stock_symbol for i in items] == ["AAPL", "GOOGL"]


async def test_add_and_remove_symbol(keyed_storage, notifier, api, transport):
    item = await actions.add_to_watchlist(keyed_storage, notifier, "TSLA", transport)
    assert item.stock_symbol == "TSLA"
    assert "TSLA" in api.items.values()

    assert await actions.remove_symbol_from_watchlist(keyed_storage, notifier, "TSLA", transport)
    assert "TSLA" not in api.items.values()
    assert not await actions.remove_symbol_from_watchlist(keyed_storage, notifier, "TSLA", transport)

    titles = [n.title for n in notifier.recent()]
    assert titles == ["Removed from Watchlist", "Added to Watchlist"]


async def test_remove_by_item_id(keyed_storage, notifier, api, transport):
    await actions.remove_from_watchlist(keyed_storage, notifier, "w1", "AAPL", transport)
    assert list(api.items.values()) == ["GOOGL"]
    assert notifier.recent()[0].message == "AAPL has been removed from your watchlist"


async def test_watchlist_without_key(storage, transport):
    with pytest.raises(ApiKeyMissing):
        await actions.get_watchlist(storage, transport)


async def test_stored_watchlist_provider(keyed_storage, api, transport):
    provider = StoredWatchlist(keyed_storage, transport)

    assert await provider.is_in_watchlist("AAPL")
    await provider.add("NFLX")
    assert "NFLX" in api.items.values()
    await provider.remove("AAPL")
    assert "AAPL" not in api.items.values()

    with pytest.raises(MutationFailed, match="TSLA is not in your watchlist"):
        await provider.remove("TSLA")


async def test_stored_watchlist_leaves_reporting_to_the_overlay(keyed_storage, notifier, transport):
    provider = StoredWatchlist(keyed_storage, transport)
    await provider.add("NFLX")
    await provider.remove("NFLX")
    assert notifier.recent() == []


async def test_stored_watchlist_surfaces_api_message(keyed_storage, api, transport):
    api.fail_with = (400, "BAD_REQUEST", "Stock already in watchlist")
    provider = StoredWatchlist(keyed_storage, transport)

    with pytest.raises(StockAlertApiError, match="Stock already in watchlist"):
        await provider.add("AAPL")


async def test_stored_watchlist_lookup_failure_is_membership_unknown(storage, transport):
    provider = StoredWatchlist(storage, transport)
    with pytest.raises(MembershipUnknown):
        await provider.is_in_watchlist("AAPL")


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


async def test_save_api_key(storage, notifier):
    await actions.save_api_key(storage, notifier, "  sk_new  ")
    assert await storage.get_api_key() == "sk_new"
    assert notifier.recent()[0].title == "API Key Saved"


async def test_save_api_key_rejects_bad_prefix(storage, notifier):
    with pytest.raises(InvalidApiKey):
        await actions.save_api_key(storage, notifier, "pk_nope")
    assert await storage.get_api_key() is None
