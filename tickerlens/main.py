"""
TickerLens – Symbol Detection Service
=====================================

Run locally:
    uvicorn tickerlens.main:app --reload

Environment variables (see .env.example):
    TICKERLENS_API_BASE_URL     StockAlert.pro API root        (default https://stockalert.pro)
    TICKERLENS_STORAGE_PATH     settings / API key JSON file   (default .tickerlens/storage.json)
    TICKERLENS_RESCAN_DEBOUNCE  quiet period before a rescan   (default 0.5 s)
    TICKERLENS_REQUEST_TIMEOUT  HTTP timeout in seconds        (default 15.0)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from . import __version__
from .config import settings
from .routes import alerts, pages, watchlist
from .routes import settings as settings_routes
from .storage import get_storage

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)-8s %(name)s – %(message)s",
)

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    storage = get_storage()
    detector_settings = await storage.get_settings()
    log.info(
        "Storage at %s (autoDetect=%s, highlightSymbols=%s)",
        storage.path,
        detector_settings.auto_detect,
        detector_settings.highlight_symbols,
    )
    yield


app = FastAPI(
    title="TickerLens – Symbol Detection Service",
    description=(
        "Detects stock ticker symbols in HTML documents, annotates them with "
        "interactive markers and relays alert / watchlist actions to StockAlert.pro."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.include_router(pages.router)
app.include_router(alerts.router)
app.include_router(watchlist.router)
app.include_router(settings_routes.router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
