"""
Settings and credential storage.

A single JSON document on disk, validated with pydantic:

    {"apiKey": "sk_…",
     "settings": {"autoDetect": true, "highlightSymbols": true, "overlayPosition": "cursor"},
     "pendingAlertSymbol": "AAPL"}

A missing or invalid file yields the defaults; a file that exists but cannot
be read raises SettingsUnavailable.  File IO runs in a worker thread so
callers on the event loop are not blocked.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .config import settings
from .errors import SettingsUnavailable
from .schemas import DetectorSettings, ExtensionStorage

log = logging.getLogger(__name__)


class StorageManager:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    # -- raw file access (worker thread) -------------------------------------

    def _read(self) -> ExtensionStorage:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ExtensionStorage()
        except OSError as exc:
            raise SettingsUnavailable(f"cannot read {self.path}: {exc}") from exc
        except ValueError as exc:
            log.warning("Storage at %s is not valid JSON, using defaults: %s", self.path, exc)
            return ExtensionStorage()
        try:
            return ExtensionStorage.model_validate(raw)
        except ValidationError as exc:
            log.warning("Storage at %s invalid, using defaults: %s", self.path, exc)
            return ExtensionStorage()

    def _write(self, data: ExtensionStorage) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = data.model_dump(by_alias=True, exclude_none=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def _update(self, **changes: Any) -> ExtensionStorage:
        async with self._lock:
            current = await asyncio.to_thread(self._read)
            updated = current.model_copy(update=changes)
            await asyncio.to_thread(self._write, updated)
            return updated

    # -- public API ----------------------------------------------------------

    async def get_storage(self) -> ExtensionStorage:
        return await asyncio.to_thread(self._read)

    async def get_settings(self) -> DetectorSettings:
        return (await self.get_storage()).settings

    async def update_settings(self, **updates: Any) -> DetectorSettings:
        """Merge *updates* (field names, not aliases) into the stored settings."""
        async with self._lock:
            current = await asyncio.to_thread(self._read)
            merged = current.settings.model_copy(
                update={k: v for k, v in updates.items() if v is not None}
            )
            await asyncio.to_thread(self._write, current.model_copy(update={"settings": merged}))
            return merged

    async def get_api_key(self) -> Optional[str]:
        return (await self.get_storage()).api_key

    async def save_api_key(self, api_key: str) -> None:
        await self._update(api_key=api_key)

    async def remove_api_key(self) -> None:
        await self._update(api_key=None)

    async def set_pending_alert_symbol(self, symbol: str) -> None:
        await self._update(pending_alert_symbol=symbol)

    async def pop_pending_alert_symbol(self) -> Optional[str]:
        async with self._lock:
            current = await asyncio.to_thread(self._read)
            symbol = current.pending_alert_symbol
            if symbol is not None:
                cleared = current.model_copy(update={"pending_alert_symbol": None})
                await asyncio.to_thread(self._write, cleared)
            return symbol


_storage: StorageManager | None = None


def get_storage() -> StorageManager:
    """Process-wide storage for the HTTP service."""
    global _storage
    if _storage is None:
        _storage = StorageManager(settings.storage_path)
    return _storage
