from __future__ import annotations

from fastapi import HTTPException

from ..actions import ApiKeyMissing, InvalidApiKey
from ..client import StockAlertApiError
from ..errors import TickerLensError

_STATUS_BY_CODE = {
    "RATE_LIMITED": 429,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "VALIDATION_ERROR": 422,
    "BAD_REQUEST": 400,
}


def to_http(exc: TickerLensError) -> HTTPException:
    """Map a package error onto the HTTP status the caller should see."""
    if isinstance(exc, StockAlertApiError):
        status = _STATUS_BY_CODE.get(exc.code, 502)
        return HTTPException(status_code=status, detail={"code": exc.code, "message": exc.message})
    if isinstance(exc, (ApiKeyMissing, InvalidApiKey)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))
