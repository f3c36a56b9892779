"""
Tree scanner.

Walks a ContentTree in pre-order and produces a DetectionSet: every surviving
symbol occurrence, grouped by symbol, each with the screen box it occupied at
scan time.

Design:
  • Sub-trees rooted at EXCLUDED_TAGS, existing markers, the overlay and
    toasts are skipped entirely – neither scanned nor descended into.  This
    is what keeps repeated passes from re-highlighting marked text.
  • Every text leaf is matched independently; there is no stitching of
    symbols across adjacent leaves.
  • An occurrence whose position cannot be computed is dropped; the pass
    continues.  Scanning never mutates the tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bs4 import NavigableString, PageElement, Tag

from .errors import RangeInvalid
from .exclusions import EXCLUDED_TAGS, RESERVED_CLASSES
from .matcher import iter_symbols
from .tree import ContentTree, Position, TextLayout, class_list

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class Occurrence:
    symbol: str
    leaf: NavigableString  # the text leaf as it was at scan time
    start: int
    end: int
    position: Position


# symbol -> occurrences in first-seen (pre-order) order
DetectionSet = dict[str, list[Occurrence]]


def is_excluded_element(tag: Tag) -> bool:
    """True if the sub-tree rooted at *tag* must not be scanned."""
    if tag.name in EXCLUDED_TAGS:
        return True
    return any(cls in RESERVED_CLASSES for cls in class_list(tag))


class TreeScanner:
    def __init__(self, tree: ContentTree, layout: TextLayout | None = None) -> None:
        self.tree = tree
        self.layout = layout or TextLayout()

    def scan(self, root: PageElement | None = None) -> DetectionSet:
        """Return a fresh DetectionSet for the sub-tree at *root* (default: whole page)."""
        root = root if root is not None else self.tree.root
        detections: DetectionSet = {}

        # Starting inside an opaque sub-tree means there is nothing to scan.
        if self.tree.closest(root, is_excluded_element) is not None:
            return detections

        snapshot = self.layout.snapshot(self.tree.root)
        dropped = 0

        stack: list[PageElement] = [root]
        while stack:
            node = stack.pop()

            if self.tree.is_text_leaf(node):
                text = self.tree.text_of(node)
                for match in iter_symbols(text):
                    try:
                        position = snapshot.locate(node, match.start, match.end)
                    except RangeInvalid:
                        dropped += 1
                        continue
                    detections.setdefault(match.symbol, []).append(
                        Occurrence(
                            symbol=match.symbol,
                            leaf=node,  # type: ignore[arg-type]
                            start=match.start,
                            end=match.end,
                            position=position,
                        )
                    )
                continue

            if not isinstance(node, Tag):
                continue
            if is_excluded_element(node):
                continue

            # Reverse so the leftmost child is popped first (pre-order).
            stack.extend(reversed(self.tree.children(node)))

        log.debug(
            "Scan found %d symbol(s), %d occurrence(s), dropped %d unplaceable",
            len(detections),
            sum(len(v) for v in detections.values()),
            dropped,
        )
        return detections
