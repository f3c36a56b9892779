"""
Content tree capability layer.

Wraps a BeautifulSoup document behind the handful of operations detection and
annotation need:

  • visit children, read leaf text, test subtree membership
  • wrap an exact text span in a new element
  • structural edits that publish MutationRecords to subscribers
  • a text-flow layout that turns (leaf, start, end) into an on-screen box

Only plain NavigableString nodes are text leaves; comments, CDATA, doctypes
and processing instructions are ignored.

bs4 Tags compare and hash by content, so every registry keyed on nodes in
this package uses id() rather than the node itself.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag

from .errors import RangeInvalid
from .exclusions import EXCLUDED_TAGS

log = logging.getLogger(__name__)

_DISPLAY_NONE = re.compile(r"display\s*:\s*none", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Position:
    x: float
    y: float
    width: float
    height: float


@dataclass(slots=True)
class MutationRecord:
    kind: str                          # "childList" or "attributes"
    target: PageElement                # parent for childList, element for attributes
    added_nodes: tuple[PageElement, ...] = ()
    removed_nodes: tuple[PageElement, ...] = ()
    attribute: str | None = None
    internal: bool = False             # written by this package (markers, overlay, toasts)


MutationListener = Callable[[list[MutationRecord]], None]


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


class ContentTree:
    """A mutable HTML document with change notification."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup
        self._listeners: list[MutationListener] = []

    @classmethod
    def from_html(cls, html: str, parser: str = "lxml") -> ContentTree:
        return cls(BeautifulSoup(html, parser))

    @property
    def root(self) -> Tag:
        """The <body> element, or the document itself for body-less fragments."""
        body = self.soup.body
        return body if body is not None else self.soup

    def to_html(self) -> str:
        return str(self.soup)

    def select(self, selector: str) -> list[Tag]:
        return self.soup.select(selector)

    # -- traversal -----------------------------------------------------------

    @staticmethod
    def is_text_leaf(node: PageElement) -> bool:
        return type(node) is NavigableString

    @staticmethod
    def children(node: PageElement) -> list[PageElement]:
        if isinstance(node, Tag):
            return list(node.children)
        return []

    @staticmethod
    def text_of(node: PageElement) -> str:
        if isinstance(node, Tag):
            return node.get_text()
        return str(node)

    def is_attached(self, node: PageElement) -> bool:
        """True if *node* is still reachable from the document root."""
        return self.is_within(node, self.soup)

    @staticmethod
    def is_within(node: PageElement, ancestor: PageElement) -> bool:
        """True if *node* is *ancestor* or lies inside its sub-tree."""
        current: PageElement | None = node
        while current is not None:
            if current is ancestor:
                return True
            current = current.parent
        return False

    @staticmethod
    def closest(node: PageElement, predicate: Callable[[Tag], bool]) -> Tag | None:
        """Nearest Tag at or above *node* satisfying *predicate*."""
        current: PageElement | None = node
        while current is not None:
            if isinstance(current, Tag) and predicate(current):
                return current
            current = current.parent
        return None

    # -- element factory -----------------------------------------------------

    def new_element(self, name: str, text: str | None = None, **attrs: str) -> Tag:
        tag = self.soup.new_tag(name, attrs=attrs)
        if text is not None:
            tag.append(NavigableString(text))
        return tag

    def parse_fragment(self, html: str) -> list[PageElement]:
        """Parse *html* without adding <html>/<body> wrappers."""
        fragment = BeautifulSoup(html, "html.parser")
        return list(fragment.contents)

    # -- structural edits ----------------------------------------------------

    def append(self, parent: Tag, node: PageElement, *, internal: bool = False) -> None:
        parent.append(node)
        self._emit([MutationRecord("childList", parent, added_nodes=(node,), internal=internal)])

    def append_html(self, parent: Tag, html: str) -> list[PageElement]:
        """Append parsed *html* under *parent* as a single host mutation."""
        nodes = self.parse_fragment(html)
        for node in nodes:
            parent.append(node)
        if nodes:
            self._emit([MutationRecord("childList", parent, added_nodes=tuple(nodes))])
        return nodes

    def remove(self, node: PageElement, *, internal: bool = False) -> None:
        parent = node.parent
        if parent is None:
            return
        node.extract()
        self._emit([MutationRecord("childList", parent, removed_nodes=(node,), internal=internal)])

    def replace(self, old: PageElement, new: PageElement, *, internal: bool = False) -> None:
        parent = old.parent
        if parent is None:
            raise RangeInvalid("cannot replace a detached node")
        old.replace_with(new)
        self._emit(
            [
                MutationRecord(
                    "childList", parent, added_nodes=(new,), removed_nodes=(old,), internal=internal
                )
            ]
        )

    def set_attribute(self, tag: Tag, name: str, value: str, *, internal: bool = False) -> None:
        tag[name] = value
        self._emit([MutationRecord("attributes", tag, attribute=name, internal=internal)])

    def wrap_span(
        self, leaf: PageElement, start: int, end: int, wrapper: Tag
    ) -> tuple[NavigableString | None, NavigableString | None]:
        """
        Move text[start:end] of *leaf* into *wrapper* and put *wrapper* in its place.

        The leaf is split into (head, wrapper, tail); empty head/tail pieces
        are omitted and returned as None.  Offsets below *start* stay valid
        on the returned head.  Raises RangeInvalid if the leaf is detached or
        the offsets do not fit it.
        """
        if not self.is_text_leaf(leaf) or leaf.parent is None:
            raise RangeInvalid("span source is not an attached text leaf")
        text = str(leaf)
        if not 0 <= start < end <= len(text):
            raise RangeInvalid(f"span [{start}, {end}) outside leaf of length {len(text)}")

        wrapper.clear()
        wrapper.append(NavigableString(text[start:end]))

        pieces: list[PageElement] = []
        head = NavigableString(text[:start]) if start > 0 else None
        if head is not None:
            pieces.append(head)
        pieces.append(wrapper)
        tail = NavigableString(text[end:]) if end < len(text) else None
        if tail is not None:
            pieces.append(tail)

        parent = leaf.parent
        leaf.replace_with(*pieces)
        self._emit(
            [
                MutationRecord(
                    "childList",
                    parent,
                    added_nodes=tuple(pieces),
                    removed_nodes=(leaf,),
                    internal=True,
                )
            ]
        )
        return head, tail

    # -- change notification -------------------------------------------------

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, records: list[MutationRecord]) -> None:
        for listener in list(self._listeners):
            listener(records)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------
#
# There is no rendering engine behind a parsed document, so on-screen boxes
# come from flowing the visible text into a fixed-width grid in document order.


@dataclass(slots=True)
class LayoutSnapshot:
    """Text-flow positions for every text leaf at the moment of the snapshot."""

    columns: int
    char_width: float
    line_height: float
    offsets: dict[int, int] = field(default_factory=dict)
    hidden: set[int] = field(default_factory=set)

    def locate(self, leaf: PageElement, start: int, end: int) -> Position:
        """Bounding box of leaf text[start:end]; RangeInvalid if it has none."""
        offset = self.offsets.get(id(leaf))
        if offset is None:
            raise RangeInvalid("text leaf is not part of the laid-out document")
        if id(leaf) in self.hidden or end <= start:
            raise RangeInvalid("span has no rendered size")
        row, col = divmod(offset + start, self.columns)
        return Position(
            x=col * self.char_width,
            y=row * self.line_height,
            width=(end - start) * self.char_width,
            height=self.line_height,
        )


class TextLayout:
    """
    Lays document text out as a fixed-width character grid.

    Leaves inside elements carrying the ``hidden`` attribute or an inline
    ``display: none`` style take no space and cannot be located.  Script,
    style and other code-like containers are not part of the text flow.
    """

    def __init__(self, columns: int = 120, char_width: float = 8.0, line_height: float = 18.0) -> None:
        self.columns = max(1, columns)
        self.char_width = char_width
        self.line_height = line_height

    def snapshot(self, root: PageElement) -> LayoutSnapshot:
        snap = LayoutSnapshot(self.columns, self.char_width, self.line_height)
        running = 0
        for leaf, hidden in _walk_text(root):
            snap.offsets[id(leaf)] = running
            if hidden:
                snap.hidden.add(id(leaf))
                continue
            running += len(leaf)
        return snap


def class_list(tag: Tag) -> list[str]:
    """CSS classes of *tag*, whether the parser stored them as a list or a string."""
    value = tag.get("class")
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def _is_hidden(tag: Tag) -> bool:
    if tag.has_attr("hidden"):
        return True
    style = tag.get("style") or ""
    return bool(_DISPLAY_NONE.search(style))


def _walk_text(root: PageElement) -> Iterator[tuple[NavigableString, bool]]:
    """Pre-order walk yielding (text leaf, hidden) pairs."""
    stack: list[tuple[PageElement, bool]] = [(root, False)]
    while stack:
        node, hidden = stack.pop()
        if type(node) is NavigableString:
            yield node, hidden
            continue
        if not isinstance(node, Tag) or node.name in EXCLUDED_TAGS:
            continue
        hidden = hidden or _is_hidden(node)
        children: Iterable[PageElement] = reversed(list(node.children))
        stack.extend((child, hidden) for child in children)
