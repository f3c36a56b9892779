from __future__ import annotations

import asyncio

import pytest
from bs4 import NavigableString

from tickerlens.tree import MutationRecord
from tickerlens.watcher import MutationWatcher, is_qualifying

from .helpers import make_tree

DELAY = 0.05


class Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_qualifying_records():
    tree = make_tree("<p>x</p>")
    body = tree.root
    node = NavigableString("y")
    assert is_qualifying(MutationRecord("childList", body, added_nodes=(node,)))
    assert not is_qualifying(MutationRecord("childList", body, removed_nodes=(node,)))
    assert not is_qualifying(MutationRecord("attributes", body, attribute="class"))
    assert not is_qualifying(
        MutationRecord("childList", body, added_nodes=(node,), internal=True)
    )


async def test_burst_coalesces_into_one_rescan():
    tree = make_tree("<div id='feed'></div>")
    counter = Counter()
    watcher = MutationWatcher(tree, counter, delay=DELAY)
    watcher.start()

    feed = tree.soup.find(id="feed")
    for i in range(5):
        tree.append_html(feed, f"<p>item {i}</p>")
        await asyncio.sleep(DELAY / 5)

    assert counter.calls == 0
    assert watcher.pending
    await asyncio.sleep(DELAY * 3)
    assert counter.calls == 1
    assert not watcher.pending
    watcher.stop()


async def test_later_burst_triggers_another_rescan():
    tree = make_tree("")
    counter = Counter()
    watcher = MutationWatcher(tree, counter, delay=DELAY)
    watcher.start()

    tree.append_html(tree.root, "<p>NVDA</p>")
    await asyncio.sleep(DELAY * 3)
    tree.append_html(tree.root, "<p>AMD</p>")
    await asyncio.sleep(DELAY * 3)

    assert counter.calls == 2
    assert watcher.rescans == 2
    watcher.stop()


async def test_attribute_removal_and_internal_changes_are_ignored():
    tree = make_tree("<p id='a'>x</p>")
    counter = Counter()
    watcher = MutationWatcher(tree, counter, delay=DELAY)
    watcher.start()

    p = tree.soup.find(id="a")
    tree.set_attribute(p, "class", "busy")
    tree.append(tree.root, tree.new_element("div", "toast"), internal=True)
    tree.remove(p)

    assert not watcher.pending
    await asyncio.sleep(DELAY * 3)
    assert counter.calls == 0
    watcher.stop()


async def test_stop_cancels_pending_rescan():
    tree = make_tree("")
    counter = Counter()
    watcher = MutationWatcher(tree, counter, delay=DELAY)
    watcher.start()

    tree.append_html(tree.root, "<p>TSLA</p>")
    assert watcher.pending
    watcher.stop()

    assert not watcher.observing
    assert not watcher.pending
    await asyncio.sleep(DELAY * 3)
    assert counter.calls == 0

    tree.append_html(tree.root, "<p>MSFT</p>")
    await asyncio.sleep(DELAY * 3)
    assert counter.calls == 0


def test_changes_before_start_raise():
    tree = make_tree("")
    watcher = MutationWatcher(tree, Counter(), delay=DELAY)
    record = MutationRecord("childList", tree.root, added_nodes=(NavigableString("x"),))

    with pytest.raises(RuntimeError, match="before start"):
        watcher._on_mutations([record])


def test_stop_is_safe_before_start_and_when_repeated():
    watcher = MutationWatcher(make_tree(""), Counter(), delay=DELAY)
    watcher.stop()
    watcher.stop()
    assert not watcher.observing


async def test_start_twice_subscribes_once():
    tree = make_tree("")
    counter = Counter()
    watcher = MutationWatcher(tree, counter, delay=DELAY)
    watcher.start()
    watcher.start()

    tree.append_html(tree.root, "<p>IBM</p>")
    await asyncio.sleep(DELAY * 3)
    assert counter.calls == 1
    watcher.stop()


async def test_callback_failure_is_logged_and_watching_continues(caplog):
    tree = make_tree("")
    calls = []

    def flaky() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    watcher = MutationWatcher(tree, flaky, delay=DELAY)
    watcher.start()

    tree.append_html(tree.root, "<p>one</p>")
    await asyncio.sleep(DELAY * 3)
    tree.append_html(tree.root, "<p>two</p>")
    await asyncio.sleep(DELAY * 3)

    assert len(calls) == 2
    assert "Rescan after structural change failed" in caplog.text
    watcher.stop()
