from __future__ import annotations

from fastapi import APIRouter

from .. import actions
from ..errors import TickerLensError
from ..notifications import get_notifier
from ..schemas import ApiKeyUpdate, DetectorSettings, NotificationOut, SettingsUpdate
from ..storage import get_storage
from .errors import to_http

router = APIRouter(tags=["settings"])


@router.get("/settings", response_model=DetectorSettings, response_model_by_alias=True)
async def get_settings() -> DetectorSettings:
    return await get_storage().get_settings()


@router.put("/settings", response_model=DetectorSettings, response_model_by_alias=True)
async def update_settings(body: SettingsUpdate) -> DetectorSettings:
    """Partial update; omitted fields keep their stored values."""
    return await get_storage().update_settings(**body.model_dump(exclude_none=True))


@router.put("/settings/api-key", status_code=204)
async def save_api_key(body: ApiKeyUpdate) -> None:
    try:
        await actions.save_api_key(get_storage(), get_notifier(), body.api_key)
    except TickerLensError as exc:
        raise to_http(exc) from exc


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications() -> list[NotificationOut]:
    """Most recent notifications, newest first."""
    return [
        NotificationOut(
            title=n.title,
            message=n.message,
            level=n.level,
            created_at=n.created_at.isoformat(),
        )
        for n in get_notifier().recent()
    ]
