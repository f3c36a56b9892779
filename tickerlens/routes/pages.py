from __future__ import annotations

from functools import partial

from fastapi import APIRouter

from ..actions import StoredWatchlist, request_alert_creation
from ..notifications import get_notifier
from ..page import PageContext
from ..schemas import AnnotateRequest, AnnotateResponse
from ..storage import get_storage
from ..tree import ContentTree

router = APIRouter(prefix="/pages", tags=["pages"])


@router.post("/annotate", response_model=AnnotateResponse)
async def annotate(body: AnnotateRequest) -> AnnotateResponse:
    """
    Run one scan + highlight pass over the submitted document.

    Every marker in the returned markup matches ``span.stockalert-symbol``
    and carries its symbol in ``data-symbol``.  ``highlight`` overrides the
    stored highlightSymbols setting for this request.
    """
    storage = get_storage()
    notifier = get_notifier()
    page = PageContext(
        ContentTree.from_html(body.html),
        settings_provider=storage.get_settings,
        watchlist=StoredWatchlist(storage),
        request_alert=partial(request_alert_creation, storage, notifier),
    )
    if body.highlight is None:
        page.highlight_enabled = (await page.load_settings()).highlight_symbols
    else:
        page.highlight_enabled = body.highlight

    detections = page.scan_and_highlight()
    return AnnotateResponse(
        html=page.tree.to_html(),
        symbols={symbol: len(occs) for symbol, occs in detections.items()},
        markers=len(page.renderer.markers),
    )
