import json
from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from core.schemas.events import FeedEvent, Trade, TradeConfirmation, TradeType
from services.live_feed import decode_frame


@pytest.mark.parametrize("wire_name,event", [
    ("priceSnapshot", FeedEvent.PRICE_SNAPSHOT),
    ("prices", FeedEvent.PRICE_SNAPSHOT),
    ("stockUpdate", FeedEvent.PRICE_DELTA),
    ("history", FeedEvent.HISTORY_SNAPSHOT),
    ("historyUpdate", FeedEvent.HISTORY_DELTA),
    ("portfolioUpdate", FeedEvent.PORTFOLIO_SNAPSHOT),
    ("tradeExecuted", FeedEvent.TRADE_CONFIRMATION),
])
def test_wire_names_resolve(wire_name, event):
    assert FeedEvent.from_wire(wire_name) is event


def test_unknown_wire_names():
    assert FeedEvent.from_wire("getPrices") is None
    assert FeedEvent.from_wire(None) is None
    assert FeedEvent.from_wire(3) is None


def test_decode_frame():
    message = decode_frame(json.dumps({"event": "stockUpdate", "data": {"TSLA": 250}}))

    assert message.event is FeedEvent.PRICE_DELTA
    assert message.data == {"TSLA": 250}


def test_decode_frame_accepts_bytes():
    message = decode_frame(b'{"event": "prices", "data": {}}')

    assert message.event is FeedEvent.PRICE_SNAPSHOT


@pytest.mark.parametrize("frame", [
    "not json",
    "[1, 2]",
    '"prices"',
    '{"event": "unknown", "data": {}}',
    '{"data": {}}',
    b"\xff\xfe",
])
def test_undecodable_frames_are_dropped(frame):
    assert decode_frame(frame) is None


def test_trade_accepts_upstream_field_names():
    trade = Trade.model_validate({
        "type": "BUY",
        "ticker": "GOOG",
        "qty": 3,
        "price": 101.1,
        "time": "2024-01-02T10:00:00Z",
    })

    assert trade.type is TradeType.BUY
    assert trade.instrument == "GOOG"
    assert trade.quantity == 3
    assert trade.price == Decimal("101.1")
    assert isinstance(trade.timestamp, datetime)


def test_trade_rejects_bad_records():
    with pytest.raises(ValidationError):
        Trade.model_validate({"type": "hold", "instrument": "GOOG", "quantity": 1, "price": 1})
    with pytest.raises(ValidationError):
        Trade.model_validate({"type": "buy", "instrument": "GOOG", "quantity": 0, "price": 1})


def test_trade_type_is_case_insensitive():
    assert TradeType("Sell") is TradeType.SELL


def test_trade_confirmation_message():
    confirmation = TradeConfirmation.model_validate(
        {"type": "sell", "instrument": "TSLA", "quantity": 2, "price": "250.5"}
    )

    assert confirmation.describe() == "Trade executed: sell 2 TSLA @ 250.5"
