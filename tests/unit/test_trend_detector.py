from decimal import Decimal

import pytest

from core.schemas.events import TrendSignal
from services.market_data import TrendDetector


def _series(*values):
    return [Decimal(str(v)) for v in values]


def test_unique_maximum_is_reported():
    history = {
        "GOOG": _series(100, 101, 102, 103, 104, 110),
        "TSLA": _series(200, 200, 200, 200, 200, 210),
    }

    signal = TrendDetector().detect(history, ["GOOG", "TSLA"])

    assert signal == TrendSignal(instrument="GOOG", percent_change=Decimal("10.00"))


def test_insufficient_samples_yield_no_signal():
    history = {
        "GOOG": _series(100, 101, 102, 103, 110),
        "TSLA": _series(1, 2, 3, 4, 5),
    }

    assert TrendDetector().detect(history, ["GOOG", "TSLA"]) is None


def test_only_last_window_samples_count():
    # 50 is outside the 6-sample window
    history = {"GOOG": _series(50, 100, 100, 100, 100, 100, 105)}

    signal = TrendDetector().detect(history, ["GOOG"])

    assert signal.percent_change == Decimal("5.00")


def test_non_positive_changes_yield_no_signal():
    history = {
        "GOOG": _series(100, 100, 100, 100, 100, 100),
        "TSLA": _series(200, 190, 180, 170, 160, 150),
    }

    assert TrendDetector().detect(history, ["GOOG", "TSLA"]) is None


def test_first_supported_instrument_wins_ties():
    history = {
        "GOOG": _series(100, 0, 0, 0, 0, 110),
        "TSLA": _series(10, 0, 0, 0, 0, 11),
    }

    assert TrendDetector().detect(history, ["TSLA", "GOOG"]).instrument == "TSLA"
    assert TrendDetector().detect(history, ["GOOG", "TSLA"]).instrument == "GOOG"


def test_zero_old_price_is_skipped():
    history = {
        "GOOG": _series(0, 1, 2, 3, 4, 500),
        "TSLA": _series(100, 100, 100, 100, 100, 101),
    }

    signal = TrendDetector().detect(history, ["GOOG", "TSLA"])

    assert signal.instrument == "TSLA"


def test_unsupported_instruments_are_not_considered():
    history = {"XYZ": _series(1, 1, 1, 1, 1, 100)}

    assert TrendDetector().detect(history, ["GOOG"]) is None


def test_percent_change_is_rounded_to_two_places():
    history = {"GOOG": _series(3, 3, 3, 3, 3, 4)}

    signal = TrendDetector().detect(history, ["GOOG"])

    assert signal.percent_change == Decimal("33.33")


def test_custom_window():
    detector = TrendDetector(window=3)

    assert detector.percent_change(_series(1, 100, 110, 121)) == Decimal("21")
    with pytest.raises(ValueError):
        TrendDetector(window=1)


def test_huge_move_is_still_rounded():
    history = {"GOOG": [Decimal("1E-27")] + _series(1, 1, 1, 1, 1)}

    signal = TrendDetector().detect(history, ["GOOG"])

    assert signal.instrument == "GOOG"
    assert signal.percent_change == Decimal("99999999999999999999999999900")
