from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


AlertCondition = Literal[
    # Price
    "price_above",
    "price_below",
    "price_change_up",
    "price_change_down",
    "new_high",
    "new_low",
    # Time
    "reminder",
    "daily_reminder",
    # Technical
    "ma_crossover_golden",
    "ma_crossover_death",
    "ma_touch_above",
    "ma_touch_below",
    "volume_change",
    "rsi_limit",
    # Fundamental
    "pe_ratio_below",
    "pe_ratio_above",
    "forward_pe_below",
    "forward_pe_above",
    "earnings_announcement",
    # Dividend
    "dividend_ex_date",
    "dividend_payment",
]

AlertStatus = Literal["active", "paused", "triggered"]
NotificationType = Literal["email", "sms"]
ApiErrorCode = Literal[
    "VALIDATION_ERROR",
    "UNAUTHORIZED",
    "FORBIDDEN",
    "NOT_FOUND",
    "RATE_LIMITED",
    "INTERNAL_ERROR",
    "BAD_REQUEST",
    "SERVICE_UNAVAILABLE",
]


# ---------------------------------------------------------------------------
# Remote API – alerts
# ---------------------------------------------------------------------------


class CreateAlertRequest(BaseModel):
    symbol: str = Field(min_length=1, max_length=10)
    condition: AlertCondition
    threshold: Optional[float] = None
    notification: NotificationType = "email"
    parameters: Optional[dict[str, Any]] = None

    @field_validator("symbol", mode="before")
    @classmethod
    def upper_symbol(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class AlertStock(BaseModel):
    name: str
    last_price: float
    high_52w: Optional[float] = None
    low_52w: Optional[float] = None
    rsi: Optional[float] = None
    ma_50: Optional[float] = None
    ma_200: Optional[float] = None


class Alert(BaseModel):
    id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    symbol: str
    condition: AlertCondition
    threshold: Optional[float] = None
    notification: NotificationType
    status: AlertStatus
    created_at: str
    triggered_at: Optional[str] = None
    initial_price: float
    parameters: Optional[dict[str, Any]] = None
    verified: Optional[bool] = None
    last_evaluated_at: Optional[str] = None
    last_metric_value: Optional[float] = None
    stock: Optional[AlertStock] = None


class RateLimitMeta(BaseModel):
    limit: int
    remaining: int
    reset: int  # unix epoch milliseconds


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class AlertMeta(BaseModel):
    rateLimit: RateLimitMeta


class AlertListMeta(BaseModel):
    pagination: PaginationMeta
    rateLimit: RateLimitMeta


class AlertEnvelope(BaseModel):
    success: Literal[True]
    data: Alert
    meta: AlertMeta


class AlertListEnvelope(BaseModel):
    success: Literal[True]
    data: list[Alert]
    meta: AlertListMeta


class AlertPage(BaseModel):
    alerts: list[Alert]
    total: int
    page: int


class ApiErrorBody(BaseModel):
    code: ApiErrorCode
    message: str
    details: Optional[dict[str, Any]] = None


class ApiErrorEnvelope(BaseModel):
    success: Literal[False]
    error: ApiErrorBody


# ---------------------------------------------------------------------------
# Remote API – watchlist
# ---------------------------------------------------------------------------


class WatchlistStock(BaseModel):
    symbol: str
    name: str
    last_price: Optional[float] = None


class WatchlistItem(BaseModel):
    id: str
    stock_symbol: str
    intention: Optional[Literal["buy", "sell"]] = None
    target_price: Optional[float] = None
    initial_price: Optional[float] = None
    auto_alerts_enabled: Optional[bool] = None
    stocks: Optional[WatchlistStock] = None
    created_at: Optional[str] = None


class CreateWatchlistItemRequest(BaseModel):
    stock_symbol: str
    intention: Optional[Literal["buy", "sell"]] = None
    target_price: Optional[float] = None
    auto_alerts_enabled: Optional[bool] = None

    @field_validator("stock_symbol", mode="before")
    @classmethod
    def upper_symbol(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class WatchlistListEnvelope(BaseModel):
    success: Literal[True]
    data: list[WatchlistItem]
    meta: AlertMeta


class WatchlistItemEnvelope(BaseModel):
    success: Literal[True]
    data: WatchlistItem
    meta: AlertMeta


# ---------------------------------------------------------------------------
# Local storage
# ---------------------------------------------------------------------------


class DetectorSettings(BaseModel):
    auto_detect: bool = Field(default=True, alias="autoDetect")
    highlight_symbols: bool = Field(default=True, alias="highlightSymbols")
    overlay_position: Literal["top", "bottom", "cursor"] = Field(
        default="cursor", alias="overlayPosition"
    )

    model_config = ConfigDict(populate_by_name=True)


class ExtensionStorage(BaseModel):
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    settings: DetectorSettings = Field(default_factory=DetectorSettings)
    pending_alert_symbol: Optional[str] = Field(default=None, alias="pendingAlertSymbol")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# HTTP surface
# ---------------------------------------------------------------------------


class AnnotateRequest(BaseModel):
    html: str
    highlight: Optional[bool] = None


class AnnotateResponse(BaseModel):
    html: str
    symbols: dict[str, int]
    markers: int


class SymbolRequest(BaseModel):
    symbol: str = Field(min_length=1, max_length=10)

    @field_validator("symbol", mode="before")
    @classmethod
    def upper_symbol(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class SettingsUpdate(BaseModel):
    auto_detect: Optional[bool] = Field(default=None, alias="autoDetect")
    highlight_symbols: Optional[bool] = Field(default=None, alias="highlightSymbols")
    overlay_position: Optional[Literal["top", "bottom", "cursor"]] = Field(
        default=None, alias="overlayPosition"
    )

    model_config = ConfigDict(populate_by_name=True)


class ApiKeyUpdate(BaseModel):
    api_key: str = Field(alias="apiKey")

    model_config = ConfigDict(populate_by_name=True)


class NotificationOut(BaseModel):
    title: str
    message: str
    level: str
    created_at: str
