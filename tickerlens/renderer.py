"""
Highlight renderer.

Turns a DetectionSet into persistent markers:

    <span class="stockalert-symbol" data-symbol="AAPL" style="…">AAPL</span>

Each marker owns exactly the text of one occurrence.  Markers are opaque to
the scanner, so running scan + highlight again over an unchanged tree creates
nothing new.
"""

from __future__ import annotations

import logging

from bs4 import NavigableString, PageElement, Tag

from .errors import RangeInvalid
from .exclusions import MARKER_CLASS, MARKER_SELECTOR, SYMBOL_ATTR
from .scanner import DetectionSet, Occurrence
from .tree import ContentTree, class_list

log = logging.getLogger(__name__)

_BASE_STYLE = (
    "border-bottom: 2px solid #3b82f6; cursor: pointer; padding: 0 2px; "
    "border-radius: 2px; transition: background-color 0.2s;"
)
MARKER_STYLE = f"background-color: rgba(59, 130, 246, 0.1); {_BASE_STYLE}"
MARKER_HOVER_STYLE = f"background-color: rgba(59, 130, 246, 0.2); {_BASE_STYLE}"


def is_marker(node: PageElement | None) -> bool:
    return isinstance(node, Tag) and MARKER_CLASS in class_list(node)


class HighlightRenderer:
    def __init__(self, tree: ContentTree) -> None:
        self.tree = tree
        self._markers: dict[int, Tag] = {}

    @property
    def markers(self) -> list[Tag]:
        """Markers created by this renderer that are still in the document."""
        return [m for m in self._markers.values() if self.tree.is_attached(m)]

    def highlight(self, detections: DetectionSet) -> int:
        """
        Wrap every occurrence in *detections* in a marker.

        Occurrences that no longer fit their leaf are skipped.  Returns the
        number of markers created.
        """
        self._prune_detached()

        # Group by leaf and wrap right-to-left, so each split leaves the
        # remaining occurrences at unchanged offsets inside the head piece.
        by_leaf: dict[int, list[Occurrence]] = {}
        for occurrences in detections.values():
            for occ in occurrences:
                by_leaf.setdefault(id(occ.leaf), []).append(occ)

        created = skipped = 0
        for group in by_leaf.values():
            group.sort(key=lambda o: o.start, reverse=True)
            target: NavigableString | None = group[0].leaf
            for occ in group:
                try:
                    target = self._wrap(target, occ)
                except RangeInvalid as exc:
                    skipped += 1
                    log.debug("Skipping %s at [%d, %d): %s", occ.symbol, occ.start, occ.end, exc)
                    continue
                created += 1

        if created or skipped:
            log.debug("Highlight pass created %d marker(s), skipped %d", created, skipped)
        return created

    def _prune_detached(self) -> None:
        """Forget markers the host has removed from the document."""
        detached = [key for key, m in self._markers.items() if not self.tree.is_attached(m)]
        for key in detached:
            del self._markers[key]
        if detached:
            log.debug("Forgot %d detached marker(s)", len(detached))

    def _wrap(self, target: NavigableString | None, occ: Occurrence) -> NavigableString | None:
        """Wrap *occ* inside *target*; returns the head piece left in its place."""
        if target is None or not self.tree.is_attached(target):
            raise RangeInvalid("text leaf was consumed or detached")
        if str(target)[occ.start:occ.end] != occ.symbol:
            raise RangeInvalid("leaf text no longer matches the occurrence")

        marker = self.tree.new_element(
            "span",
            **{"class": MARKER_CLASS, SYMBOL_ATTR: occ.symbol, "style": MARKER_STYLE},
        )
        head, _tail = self.tree.wrap_span(target, occ.start, occ.end, marker)
        self._markers[id(marker)] = marker
        return head

    def hover(self, marker: Tag, entering: bool) -> None:
        """Toggle the hover background of *marker*."""
        if not is_marker(marker):
            return
        style = MARKER_HOVER_STYLE if entering else MARKER_STYLE
        self.tree.set_attribute(marker, "style", style, internal=True)

    def remove_highlights(self) -> int:
        """Replace every marker with a plain text node holding its text."""
        found: dict[int, Tag] = dict(self._markers)
        for marker in self.tree.select(MARKER_SELECTOR):
            found.setdefault(id(marker), marker)

        removed = 0
        for marker in found.values():
            if marker.parent is None:
                continue
            self.tree.replace(marker, NavigableString(marker.get_text()), internal=True)
            removed += 1

        self._markers.clear()
        log.debug("Removed %d marker(s)", removed)
        return removed
