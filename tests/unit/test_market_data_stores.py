from decimal import Decimal

import pytest

from services.market_data import HistoryStore, PriceStore


def test_full_snapshot_replaces_entire_store():
    store = PriceStore()
    store.apply_full({"GOOG": 100, "TSLA": 200})
    store.apply_full({"AMZN": 50})

    assert store.snapshot() == {"AMZN": Decimal("50")}
    assert "GOOG" not in store


def test_delta_overwrites_only_named_instruments():
    store = PriceStore()
    store.apply_full({"GOOG": 100, "TSLA": 200})
    store.apply_delta({"TSLA": 250.5})

    assert store.get("GOOG") == Decimal("100")
    assert store.get("TSLA") == Decimal("250.5")
    assert len(store) == 2


def test_non_object_price_payloads_are_ignored():
    store = PriceStore()
    store.apply_full({"GOOG": 100})

    assert store.apply_full([1, 2, 3]) is False
    assert store.apply_delta("GOOG=5") is False
    assert store.apply_delta(None) is False
    assert store.snapshot() == {"GOOG": Decimal("100")}


def test_unusable_price_entries_are_skipped():
    store = PriceStore()
    store.apply_delta({"GOOG": "abc", "TSLA": -1, "AMZN": None, "META": "12.5"})

    assert store.snapshot() == {"META": Decimal("12.5")}


def test_listeners_see_post_update_contents():
    store = PriceStore()
    seen = []
    store.add_listener(seen.append)

    store.apply_full({"GOOG": 100})
    store.apply_delta({"TSLA": 200})

    assert seen == [
        {"GOOG": Decimal("100")},
        {"GOOG": Decimal("100"), "TSLA": Decimal("200")},
    ]


def test_listeners_not_called_for_ignored_payload():
    store = PriceStore()
    seen = []
    store.add_listener(seen.append)

    store.apply_delta(42)

    assert seen == []


def test_history_delta_replaces_series_per_key():
    store = HistoryStore()
    store.apply_delta({"GOOG": [1, 2, 3], "TSLA": [4, 5]})
    store.apply_delta({"GOOG": [9]})

    assert store.get("GOOG") == [Decimal("9")]
    assert store.get("TSLA") == [Decimal("4"), Decimal("5")]


def test_history_accepts_unsupported_instruments():
    store = HistoryStore()
    store.apply_delta({"XYZ": [1, 2]})

    assert store.instruments() == ["XYZ"]


def test_history_skips_non_sequence_values():
    store = HistoryStore()
    store.apply_delta({"GOOG": [1, 2]})

    assert store.apply_delta({"GOOG": "123", "TSLA": 5, "AMZN": [7]}) is True
    assert store.get("GOOG") == [Decimal("1"), Decimal("2")]
    assert "TSLA" not in store.snapshot()
    assert store.get("AMZN") == [Decimal("7")]
    assert store.apply_delta([1, 2]) is False


def test_history_replace_and_copy_semantics():
    store = HistoryStore()
    assert store.replace("GOOG", [100, "bad", 102]) is True
    assert store.replace("", [1]) is False
    assert store.replace("TSLA", None) is False

    series = store.get("GOOG")
    assert series == [Decimal("100"), Decimal("0"), Decimal("102")]

    series.append(Decimal("1"))
    assert len(store.get("GOOG")) == 3
    assert store.get("MISSING") == []


def test_failing_listener_leaves_store_unchanged():
    store = PriceStore()
    store.apply_full({"GOOG": 100})

    def reject(prices):
        raise RuntimeError("recompute failed")

    store.add_listener(reject)

    with pytest.raises(RuntimeError):
        store.apply_delta({"GOOG": 101})
    with pytest.raises(RuntimeError):
        store.apply_full({"TSLA": 200})

    assert store.snapshot() == {"GOOG": Decimal("100")}
