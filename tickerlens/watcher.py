"""
Mutation watcher.

Subscribes to a ContentTree and turns bursts of structural insertions into a
single rescan once the tree has been quiet for ``delay`` seconds.

Only childList records that add nodes qualify.  Attribute changes, pure
removals and writes made by this package itself (markers, overlay, toasts)
are ignored, so a highlight pass does not schedule another pass.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .tree import ContentTree, MutationRecord

log = logging.getLogger(__name__)


def is_qualifying(record: MutationRecord) -> bool:
    return record.kind == "childList" and bool(record.added_nodes) and not record.internal


class MutationWatcher:
    def __init__(
        self,
        tree: ContentTree,
        on_quiet: Callable[[], None],
        delay: float = 0.5,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.tree = tree
        self.on_quiet = on_quiet
        self.delay = delay
        self._loop = loop
        self._unsubscribe: Callable[[], None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self.rescans = 0

    @property
    def observing(self) -> bool:
        return self._unsubscribe is not None

    @property
    def pending(self) -> bool:
        """True while a debounce timer is armed."""
        return self._timer is not None

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.tree.subscribe(self._on_mutations)
        log.debug("Watching for structural changes (debounce=%.3fs)", self.delay)

    def stop(self) -> None:
        """Stop observing and cancel any pending rescan.  Safe to call repeatedly."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        if not any(is_qualifying(r) for r in records):
            return
        # Restart, never stack: one rescan per quiet period.
        if self._timer is not None:
            self._timer.cancel()
        if self._loop is None:
            raise RuntimeError("MutationWatcher received changes before start()")
        self._timer = self._loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._unsubscribe is None:
            return
        self.rescans += 1
        try:
            self.on_quiet()
        except Exception:
            log.exception("Rescan after structural change failed")
