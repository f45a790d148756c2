# Standardized feed event names and data models shared by all services

from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Any


class ViewerBaseModel(BaseModel):
    """Base model for all viewer schemas with proper JSON encoding (Pydantic v2)."""

    model_config = ConfigDict(
        json_encoders={
            Decimal: (lambda v: float(v) if v is not None else None),
            datetime: (lambda v: v.isoformat() if v is not None else None),
        }
    )


class FeedEvent(str, Enum):
    """Inbound push events from the live subscription."""
    PRICE_SNAPSHOT = "priceSnapshot"
    PRICE_DELTA = "priceDelta"
    HISTORY_SNAPSHOT = "historySnapshot"
    HISTORY_DELTA = "historyDelta"
    PORTFOLIO_SNAPSHOT = "portfolioSnapshot"
    TRADE_CONFIRMATION = "tradeConfirmation"

    @classmethod
    def from_wire(cls, name: Any) -> Optional["FeedEvent"]:
        """Resolve a wire event name (canonical or legacy socket name)."""
        if not isinstance(name, str):
            return None
        try:
            return cls(name)
        except ValueError:
            return WIRE_EVENT_ALIASES.get(name)


# Event names used by the upstream push server
WIRE_EVENT_ALIASES = {
    "prices": FeedEvent.PRICE_SNAPSHOT,
    "stockUpdate": FeedEvent.PRICE_DELTA,
    "history": FeedEvent.HISTORY_SNAPSHOT,
    "historyUpdate": FeedEvent.HISTORY_DELTA,
    "portfolioUpdate": FeedEvent.PORTFOLIO_SNAPSHOT,
    "tradeExecuted": FeedEvent.TRADE_CONFIRMATION,
}


class FeedRequest(str, Enum):
    """Outbound requests sent over the live subscription."""
    GET_PRICES = "getPrices"
    GET_HISTORY = "getHistory"


class FeedMessage(ViewerBaseModel):
    """One decoded frame from the live subscription"""
    event: FeedEvent
    data: Any = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class Trade(ViewerBaseModel):
    """A recorded trade; immutable once recorded upstream"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: TradeType
    instrument: str = Field(validation_alias=AliasChoices("instrument", "ticker"))
    quantity: int = Field(gt=0, validation_alias=AliasChoices("quantity", "qty"))
    price: Decimal
    timestamp: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("timestamp", "time", "ts", "created_at")
    )

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v):
        # Route floats through str so 0.1 stays 0.1
        if isinstance(v, float):
            return str(v)
        return v


class TradeConfirmation(ViewerBaseModel):
    """Informational push sent after a trade executes"""
    model_config = ConfigDict(populate_by_name=True)

    type: TradeType
    instrument: str = Field(validation_alias=AliasChoices("instrument", "ticker"))
    quantity: int = Field(validation_alias=AliasChoices("quantity", "qty"))
    price: Decimal

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v):
        if isinstance(v, float):
            return str(v)
        return v

    def describe(self) -> str:
        return f"Trade executed: {self.type.value} {self.quantity} {self.instrument} @ {self.price}"


class TrendSignal(ViewerBaseModel):
    """Instrument with the strongest positive move over the lookback window"""
    model_config = ConfigDict(frozen=True)

    instrument: str
    percent_change: Decimal


class MessageLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class UserMessage(ViewerBaseModel):
    """Transient user-visible status line (trade result, deposit result, failures)"""
    model_config = ConfigDict(frozen=True)

    topic: str
    level: MessageLevel
    text: str
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
