from __future__ import annotations

import json

import pytest

from tickerlens.errors import SettingsUnavailable
from tickerlens.schemas import DetectorSettings


async def test_missing_file_yields_defaults(storage):
    assert await storage.get_settings() == DetectorSettings()
    assert await storage.get_api_key() is None


async def test_corrupt_file_yields_defaults(storage, caplog):
    storage.path.write_text("{not json", encoding="utf-8")
    assert await storage.get_settings() == DetectorSettings()
    assert "not valid JSON" in caplog.text


async def test_invalid_content_yields_defaults(storage):
    storage.path.write_text(json.dumps({"settings": {"autoDetect": "maybe"}}), encoding="utf-8")
    assert (await storage.get_settings()).auto_detect is True


async def test_reads_camel_case_document(storage):
    storage.path.write_text(
        json.dumps(
            {
                "apiKey": "sk_abc",
                "settings": {"autoDetect": False, "highlightSymbols": True},
            }
        ),
        encoding="utf-8",
    )
    detector_settings = await storage.get_settings()
    assert detector_settings.auto_detect is False
    assert detector_settings.overlay_position == "cursor"
    assert await storage.get_api_key() == "sk_abc"


async def test_partial_settings_update_keeps_other_fields(storage):
    await storage.save_api_key("sk_abc")
    await storage.update_settings(highlight_symbols=False)
    updated = await storage.update_settings(overlay_position="top", auto_detect=None)

    assert updated.highlight_symbols is False
    assert updated.overlay_position == "top"
    assert updated.auto_detect is True
    assert await storage.get_api_key() == "sk_abc"

    on_disk = json.loads(storage.path.read_text(encoding="utf-8"))
    assert on_disk["apiKey"] == "sk_abc"
    assert on_disk["settings"]["highlightSymbols"] is False


async def test_api_key_removal(storage):
    await storage.save_api_key("sk_abc")
    await storage.remove_api_key()
    assert await storage.get_api_key() is None
    assert "apiKey" not in json.loads(storage.path.read_text(encoding="utf-8"))


async def test_pending_alert_symbol_is_consumed_once(storage):
    await storage.set_pending_alert_symbol("NVDA")
    assert await storage.pop_pending_alert_symbol() == "NVDA"
    assert await storage.pop_pending_alert_symbol() is None


async def test_unreadable_file_raises_settings_unavailable(storage):
    storage.path.mkdir()
    with pytest.raises(SettingsUnavailable):
        await storage.get_settings()
