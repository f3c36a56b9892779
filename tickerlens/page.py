"""
Per-page detector.

PageContext is the one object that owns everything live on a page: the
current DetectionSet, the renderer's marker registry, the mutation watcher
and the overlay state.  Build one per document and route host events to it:

    page = PageContext(tree, settings_provider=storage.get_settings,
                       watchlist=StoredWatchlist(storage),
                       request_alert=partial(request_alert_creation, storage, notifier))
    await page.start()
    page.dispatch_click(target, x, y)
    page.dispatch_keydown("Escape")
    page.teardown()
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from bs4 import PageElement, Tag

from .config import settings as app_settings
from .exclusions import SYMBOL_ATTR
from .overlay import AlertRequester, OverlayController, ToastPresenter, WatchlistProvider
from .renderer import HighlightRenderer, is_marker
from .scanner import DetectionSet, Occurrence, TreeScanner
from .schemas import DetectorSettings
from .tree import ContentTree, TextLayout
from .watcher import MutationWatcher

log = logging.getLogger(__name__)

SettingsProvider = Callable[[], Awaitable[DetectorSettings]]

RESCAN_PAGE = "RESCAN_PAGE"


# ---------------------------------------------------------------------------
# Click targets
# ---------------------------------------------------------------------------


class TargetKind(enum.Enum):
    MARKER = "marker"
    OVERLAY_CONTROL = "overlay-control"
    OVERLAY = "overlay"
    OUTSIDE = "outside"


@dataclass(frozen=True, slots=True)
class ClickTarget:
    kind: TargetKind
    symbol: Optional[str] = None  # MARKER
    action: Optional[str] = None  # OVERLAY_CONTROL


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


class PageContext:
    def __init__(
        self,
        tree: ContentTree,
        settings_provider: SettingsProvider,
        watchlist: WatchlistProvider,
        request_alert: AlertRequester,
        url: Optional[str] = None,
        debounce: Optional[float] = None,
    ) -> None:
        cfg = app_settings
        self.tree = tree
        self.url = url
        self.settings_provider = settings_provider
        self.detections: DetectionSet = {}
        self.highlight_enabled = True

        self.scanner = TreeScanner(
            tree, TextLayout(cfg.layout_columns, cfg.char_width, cfg.line_height)
        )
        self.renderer = HighlightRenderer(tree)
        self.watcher = MutationWatcher(
            tree,
            self.scan_and_highlight,
            delay=cfg.rescan_debounce if debounce is None else debounce,
        )
        self.toasts = ToastPresenter(tree, duration=cfg.toast_duration)
        self.overlay = OverlayController(
            tree,
            watchlist,
            request_alert,
            self.toasts,
            viewport=(cfg.viewport_width, cfg.viewport_height),
            panel_size=(cfg.overlay_width, cfg.overlay_height),
            offset=cfg.overlay_offset,
        )

    # -- lifecycle -----------------------------------------------------------

    def is_skipped_host(self) -> bool:
        if not self.url:
            return False
        host = urlparse(self.url).hostname or ""
        return any(skip in host for skip in app_settings.skip_hosts)

    async def load_settings(self) -> DetectorSettings:
        """Read settings, substituting defaults when the store is unavailable."""
        try:
            return await self.settings_provider()
        except Exception as exc:
            log.warning("Failed to load settings, using defaults: %s", exc)
            return DetectorSettings()

    async def start(self) -> bool:
        """Initial scan + highlight, then watch for new content.  False if detection is off."""
        if self.is_skipped_host():
            log.info("Skipping symbol detection on %s", self.url)
            return False

        detector_settings = await self.load_settings()
        if not detector_settings.auto_detect:
            log.info("Auto-detect disabled in settings")
            return False

        self.highlight_enabled = detector_settings.highlight_symbols
        self.scan_and_highlight()
        self.watcher.start()
        return True

    async def rescan(self) -> DetectionSet:
        """Re-read settings and run a full pass."""
        detector_settings = await self.load_settings()
        self.highlight_enabled = detector_settings.highlight_symbols
        return self.scan_and_highlight()

    def scan_and_highlight(self) -> DetectionSet:
        self.detections = self.scanner.scan()
        if self.highlight_enabled:
            created = self.renderer.highlight(self.detections)
            log.info(
                "Scan found %d unique symbol(s); %d new marker(s)", len(self.detections), created
            )
        else:
            log.info("Scan found %d unique symbol(s); highlighting disabled", len(self.detections))
        return self.detections

    def teardown(self) -> None:
        self.watcher.stop()
        self.overlay.dispose()
        self.toasts.clear()
        self.renderer.remove_highlights()
        self.detections = {}

    # -- queries -------------------------------------------------------------

    def detected_symbols(self) -> list[str]:
        return list(self.detections)

    def symbol_detections(self, symbol: str) -> list[Occurrence]:
        return self.detections.get(symbol, [])

    def has_symbol(self, symbol: str) -> bool:
        return symbol in self.detections

    # -- host events ---------------------------------------------------------

    def classify(self, node: PageElement) -> ClickTarget:
        """Decide once what a click landed on."""
        if self.overlay.contains(node):
            control = self.tree.closest(node, lambda t: t.has_attr("data-action"))
            if control is not None and self.overlay.contains(control):
                return ClickTarget(TargetKind.OVERLAY_CONTROL, action=str(control["data-action"]))
            return ClickTarget(TargetKind.OVERLAY)

        marker = self.tree.closest(node, is_marker)
        if marker is not None:
            return ClickTarget(TargetKind.MARKER, symbol=str(marker.get(SYMBOL_ATTR) or ""))
        return ClickTarget(TargetKind.OUTSIDE)

    def dispatch_click(self, node: PageElement, x: float = 0, y: float = 0) -> ClickTarget:
        target = self.classify(node)
        if target.kind is TargetKind.MARKER and target.symbol:
            self.overlay.open(target.symbol, x, y)
        elif target.kind is TargetKind.OVERLAY_CONTROL and target.action:
            self.overlay.handle_action(target.action)
        elif target.kind is TargetKind.OUTSIDE:
            self.overlay.close()
        return target

    def dispatch_keydown(self, key: str) -> None:
        if key == "Escape":
            self.overlay.close()

    def dispatch_hover(self, node: PageElement, entering: bool) -> None:
        marker = self.tree.closest(node, is_marker)
        if marker is not None:
            self.renderer.hover(marker, entering)

    async def dispatch_message(self, message_type: str) -> dict:
        if message_type == RESCAN_PAGE:
            await self.rescan()
            return {"success": True}
        log.warning("Unknown message type: %s", message_type)
        return {"success": False, "error": "Unknown message type"}

    def show_symbol(self, symbol: str) -> Optional[Tag]:
        """Open the overlay at the first recorded occurrence of *symbol*."""
        occurrences = self.detections.get(symbol)
        if not occurrences:
            return None
        pos = occurrences[0].position
        return self.overlay.open(symbol, pos.x, pos.y)
