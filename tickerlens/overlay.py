"""
Overlay controller.

A small state machine for the action panel shown when a marker is clicked:

    Closed ──open(T)──▶ Open(T, pending) ──membership──▶ Open(T, known)
       ▲                     │                               │
       └── close / Escape / outside click / action ──────────┘

Opening always tears the previous panel down first, so at most one overlay
exists in the tree.  The membership lookup runs in the background; when it
completes it only applies if the panel it was started for is still the one
on screen.  API calls are never cancelled, their late results are dropped.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Optional, Protocol

from bs4 import PageElement, Tag

from .exclusions import OVERLAY_CLASS, SYMBOL_ATTR, TOAST_CLASS
from .tree import ContentTree

log = logging.getLogger(__name__)


class WatchlistProvider(Protocol):
    async def is_in_watchlist(self, symbol: str) -> bool: ...

    async def add(self, symbol: str) -> Any: ...

    async def remove(self, symbol: str) -> Any: ...


AlertRequester = Callable[[str], Awaitable[Any]]


class Membership(enum.Enum):
    PENDING = "pending"
    MEMBER = "member"
    NOT_MEMBER = "not-member"
    UNKNOWN = "unknown"  # lookup failed; presented like NOT_MEMBER


class OverlayPhase(enum.Enum):
    CLOSED = "closed"
    PENDING = "pending"
    KNOWN = "known"


ACTION_CLOSE = "close"
ACTION_CREATE_ALERT = "create-alert"
ACTION_WATCHLIST = "watchlist"

_ADD_LABEL = "Add to Watchlist"
_REMOVE_LABEL = "Remove from Watchlist"
_ADD_STYLE = "background: linear-gradient(135deg, rgba(16, 185, 129, 0.9) 0%, rgba(5, 150, 105, 0.9) 100%);"
_REMOVE_STYLE = "background: linear-gradient(135deg, rgba(239, 68, 68, 0.9) 0%, rgba(220, 38, 38, 0.9) 100%);"
_PANEL_STYLE = (
    "position: fixed; z-index: 2147483647; padding: 20px; border-radius: 16px; "
    "min-width: {width}px; left: {left}px; top: {top}px;"
)


@dataclass(slots=True)
class OverlayState:
    active_symbol: Optional[str] = None
    element: Optional[Tag] = None
    membership: Membership = Membership.PENDING

    @property
    def phase(self) -> OverlayPhase:
        if self.element is None:
            return OverlayPhase.CLOSED
        if self.membership is Membership.PENDING:
            return OverlayPhase.PENDING
        return OverlayPhase.KNOWN


# ---------------------------------------------------------------------------
# Toasts
# ---------------------------------------------------------------------------


class ToastPresenter:
    """Transient messages appended to the page and removed after *duration* seconds."""

    def __init__(self, tree: ContentTree, duration: float = 3.0) -> None:
        self.tree = tree
        self.duration = duration
        self._toasts: dict[int, Tag] = {}
        self._timers: dict[int, asyncio.TimerHandle] = {}

    @property
    def active(self) -> list[Tag]:
        return list(self._toasts.values())

    def show(self, message: str, kind: str = "success") -> Tag:
        toast = self.tree.new_element(
            "div", message, **{"class": TOAST_CLASS, "data-kind": kind, "role": "status"}
        )
        self.tree.append(self.tree.root, toast, internal=True)
        self._toasts[id(toast)] = toast
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timers[id(toast)] = loop.call_later(self.duration, self._expire, toast)
        return toast

    def _expire(self, toast: Tag) -> None:
        self._timers.pop(id(toast), None)
        if self._toasts.pop(id(toast), None) is not None:
            self.tree.remove(toast, internal=True)

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for toast in self._toasts.values():
            self.tree.remove(toast, internal=True)
        self._toasts.clear()


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class OverlayController:
    def __init__(
        self,
        tree: ContentTree,
        watchlist: WatchlistProvider,
        request_alert: AlertRequester,
        toasts: ToastPresenter,
        viewport: tuple[int, int] = (1280, 800),
        panel_size: tuple[int, int] = (300, 180),
        offset: int = 10,
    ) -> None:
        self.tree = tree
        self.watchlist = watchlist
        self.request_alert = request_alert
        self.toasts = toasts
        self.viewport = viewport
        self.panel_size = panel_size
        self.offset = offset
        self.state = OverlayState()
        self.disposed = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self.state.element is not None

    def contains(self, node: PageElement) -> bool:
        element = self.state.element
        return element is not None and self.tree.is_within(node, element)

    # -- transitions ---------------------------------------------------------

    def open(self, symbol: str, x: float, y: float) -> Tag:
        """Show the panel for *symbol* near the pointer at (x, y)."""
        self.close()

        left, top = self.place(x, y)
        element = self._build_panel(symbol, left, top)
        self.tree.append(self.tree.root, element, internal=True)
        self.state = OverlayState(active_symbol=symbol, element=element)
        log.debug("Overlay opened for %s at (%d, %d)", symbol, left, top)

        self._spawn(self._load_membership(symbol, element))
        return element

    def close(self) -> bool:
        element = self.state.element
        if element is None:
            return False
        self.tree.remove(element, internal=True)
        log.debug("Overlay closed for %s", self.state.active_symbol)
        self.state = OverlayState()
        return True

    def dispose(self) -> None:
        """Close the panel for good; in-flight work finishes without touching the page."""
        self.close()
        self.disposed = True

    def handle_action(self, action: str) -> Optional[asyncio.Task]:
        """Run the overlay button *action*; the panel is closed afterwards."""
        symbol = self.state.active_symbol
        if symbol is None:
            return None

        task: Optional[asyncio.Task] = None
        if action == ACTION_CREATE_ALERT:
            log.info("Creating alert for %s", symbol)
            task = self._spawn(self._request_alert(symbol))
        elif action == ACTION_WATCHLIST:
            member = self.state.membership is Membership.MEMBER
            task = self._spawn(self._toggle_watchlist(symbol, member))
        elif action != ACTION_CLOSE:
            log.debug("Ignoring unknown overlay action %r", action)
            return None

        self.close()
        return task

    # -- geometry ------------------------------------------------------------

    def place(self, x: float, y: float) -> tuple[int, int]:
        """Panel origin for a click at (x, y), kept inside the viewport."""
        vw, vh = self.viewport
        w, h = self.panel_size
        left = x + self.offset
        top = y + self.offset
        if left + w > vw:
            left = vw - w - self.offset
        if top + h > vh:
            # Flip above the cursor.
            top = y - h - self.offset
        return int(max(0, left)), int(max(0, top))

    # -- background work -----------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for in-flight lookups and actions to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _load_membership(self, symbol: str, element: Tag) -> None:
        try:
            member = await self.watchlist.is_in_watchlist(symbol)
        except Exception as exc:
            log.warning("Could not check watchlist status for %s: %s", symbol, exc)
            membership = Membership.UNKNOWN
        else:
            membership = Membership.MEMBER if member else Membership.NOT_MEMBER

        if self.disposed or self.state.element is not element:
            log.debug("Discarding stale membership result for %s", symbol)
            return
        self.state.membership = membership
        self._render_membership(element, membership)

    async def _request_alert(self, symbol: str) -> None:
        try:
            await self.request_alert(symbol)
        except Exception:
            log.exception("Alert creation request for %s failed", symbol)

    async def _toggle_watchlist(self, symbol: str, member: bool) -> bool:
        try:
            if member:
                await self.watchlist.remove(symbol)
            else:
                await self.watchlist.add(symbol)
        except Exception as exc:
            log.warning("Watchlist update for %s failed: %s", symbol, exc)
            if self.disposed:
                return False
            self.toasts.show(str(exc) or "Failed to update watchlist", "error")
            return False

        if self.disposed:
            log.debug("Page torn down, dropping watchlist toast for %s", symbol)
            return True
        verb = "removed from" if member else "added to"
        self.toasts.show(f"{symbol} {verb} watchlist", "success")
        return True

    # -- markup --------------------------------------------------------------

    def _build_panel(self, symbol: str, left: int, top: int) -> Tag:
        t = self.tree
        panel = t.new_element(
            "div",
            **{
                "class": OVERLAY_CLASS,
                SYMBOL_ATTR: symbol,
                "data-membership": Membership.PENDING.value,
                "style": _PANEL_STYLE.format(width=self.panel_size[0], left=left, top=top),
            },
        )
        panel.append(t.new_element("button", "×", **{"data-action": ACTION_CLOSE}))

        header = t.new_element("div", **{"class": "stockalert-overlay-header"})
        header.append(t.new_element("div", symbol, **{"class": "stockalert-overlay-symbol"}))
        header.append(t.new_element("div", "Stock Symbol"))
        panel.append(header)

        actions = t.new_element("div", **{"class": "stockalert-overlay-actions"})
        actions.append(t.new_element("button", "Create Alert", **{"data-action": ACTION_CREATE_ALERT}))
        actions.append(
            t.new_element(
                "button",
                _ADD_LABEL,
                **{"data-action": ACTION_WATCHLIST, "data-in-watchlist": "false", "style": _ADD_STYLE},
            )
        )
        panel.append(actions)
        return panel

    def _render_membership(self, element: Tag, membership: Membership) -> None:
        member = membership is Membership.MEMBER
        self.tree.set_attribute(element, "data-membership", membership.value, internal=True)
        button = element.find("button", attrs={"data-action": ACTION_WATCHLIST})
        if button is None:
            return
        button.string = _REMOVE_LABEL if member else _ADD_LABEL
        self.tree.set_attribute(button, "data-in-watchlist", "true" if member else "false", internal=True)
        self.tree.set_attribute(button, "style", _REMOVE_STYLE if member else _ADD_STYLE, internal=True)
