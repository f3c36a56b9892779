"""Test doubles and tree helpers shared across the suite."""

from __future__ import annotations

import asyncio
from typing import Optional

from tickerlens.exclusions import MARKER_SELECTOR, OVERLAY_CLASS
from tickerlens.tree import ContentTree


class FakeWatchlist:
    """In-memory watchlist provider with optional per-symbol gates."""

    def __init__(self, members: Optional[set[str]] = None) -> None:
        self.members = set(members or ())
        self.gates: dict[str, asyncio.Event] = {}
        self.lookups: list[str] = []
        self.added: list[str] = []
        self.removed: list[str] = []
        self.fail_lookup = False
        self.fail_mutation: Optional[str] = None
        self.mutation_gate: Optional[asyncio.Event] = None

    def gate(self, symbol: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[symbol] = event
        return event

    async def is_in_watchlist(self, symbol: str) -> bool:
        self.lookups.append(symbol)
        gate = self.gates.get(symbol)
        if gate is not None:
            await gate.wait()
        if self.fail_lookup:
            raise RuntimeError("watchlist unavailable")
        return symbol in self.members

    async def add(self, symbol: str) -> None:
        if self.mutation_gate is not None:
            await self.mutation_gate.wait()
        if self.fail_mutation:
            raise RuntimeError(self.fail_mutation)
        self.added.append(symbol)
        self.members.add(symbol)

    async def remove(self, symbol: str) -> None:
        if self.mutation_gate is not None:
            await self.mutation_gate.wait()
        if self.fail_mutation:
            raise RuntimeError(self.fail_mutation)
        self.removed.append(symbol)
        self.members.discard(symbol)


class AlertRecorder:
    def __init__(self) -> None:
        self.requested: list[str] = []

    async def __call__(self, symbol: str) -> bool:
        self.requested.append(symbol)
        return True


def make_tree(body: str) -> ContentTree:
    return ContentTree.from_html(f"<html><body>{body}</body></html>")


def markers(tree: ContentTree) -> list:
    return tree.select(MARKER_SELECTOR)


def overlays(tree: ContentTree) -> list:
    return tree.select(f"div.{OVERLAY_CLASS}")


