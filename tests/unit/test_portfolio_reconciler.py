from decimal import Decimal

import pytest

from core.trading.portfolio_models import Holding, PortfolioView
from core.utils.exceptions import MalformedPayloadError
from services.portfolio_manager.reconciler import PortfolioReconciler


RICH_SNAPSHOT = {
    "cash": 1000.5,
    "realized": "12.25",
    "holdings": [
        {"instrument": "GOOG", "quantity": 10, "average_cost": 100, "current_price": 100},
        {"ticker": "TSLA", "qty": 2, "avg_cost": "200"},
    ],
}


@pytest.fixture
def reconciler():
    return PortfolioReconciler()


def test_unrealized_uses_cost_basis(reconciler):
    view = reconciler.reconcile(RICH_SNAPSHOT, {"GOOG": Decimal("115")})

    goog = view.holding("GOOG")
    assert goog.current_price == Decimal("115")
    assert goog.unrealized == Decimal("150.00")


def test_price_delta_updates_total_immediately(reconciler):
    view = reconciler.reconcile(RICH_SNAPSHOT, {"GOOG": Decimal("100")})
    assert view.unrealized == Decimal("-400.00")

    view = reconciler.recompute(view, {"GOOG": Decimal("100"), "TSLA": Decimal("250")})

    assert view.holding("TSLA").unrealized == Decimal("100.00")
    assert view.unrealized == Decimal("100.00")


def test_rich_snapshot_field_aliases_and_defaults(reconciler):
    view = reconciler.normalize(RICH_SNAPSHOT)

    assert view.cash == Decimal("1000.5")
    assert view.realized == Decimal("12.25")
    tsla = view.holding("TSLA")
    assert tsla.quantity == 2
    assert tsla.average_cost == Decimal("200")
    assert tsla.current_price == Decimal("0")


def test_legacy_map_snapshot(reconciler):
    view = reconciler.normalize({"cash": 10, "holdings": {"GOOG": 5}})

    assert view.holdings == (Holding(instrument="GOOG", quantity=5),)
    goog = view.holding("GOOG")
    assert goog.average_cost == Decimal("0")
    assert goog.unrealized == Decimal("0")
    assert view.realized == Decimal("0")


def test_missing_snapshot_yields_empty_view(reconciler):
    assert reconciler.normalize(None) == PortfolioView.empty()
    assert reconciler.normalize({}) == PortfolioView.empty()


def test_snapshot_total_wins_when_present(reconciler):
    view = reconciler.normalize({
        "unrealized": "42.5",
        "holdings": [{"instrument": "GOOG", "quantity": 1, "unrealized": 1}],
    })

    assert view.unrealized == Decimal("42.5")


@pytest.mark.parametrize("raw", [
    [1, 2, 3],
    "portfolio",
    {"holdings": [{"quantity": 3}]},
    {"holdings": ["GOOG"]},
])
def test_malformed_snapshots_raise(reconciler, raw):
    with pytest.raises(MalformedPayloadError):
        reconciler.normalize(raw)


def test_price_for_other_instrument_keeps_current_price(reconciler):
    view = reconciler.reconcile(RICH_SNAPSHOT, {"GOOG": Decimal("120")})

    view = reconciler.recompute(view, {"AMZN": Decimal("5")})

    goog = view.holding("GOOG")
    assert goog.current_price == Decimal("120")
    assert goog.unrealized == Decimal("200.00")


def test_total_is_rounded_sum_of_rounded_holdings(reconciler):
    raw = {"holdings": [
        {"instrument": "A", "quantity": 1, "average_cost": "0"},
        {"instrument": "B", "quantity": 1, "average_cost": "0"},
        {"instrument": "C", "quantity": 1, "average_cost": "0"},
    ]}
    prices = {"A": Decimal("0.005"), "B": Decimal("0.005"), "C": Decimal("0.005")}

    view = reconciler.reconcile(raw, prices)

    # Each holding rounds up to 0.01 before summing
    assert [h.unrealized for h in view.holdings] == [Decimal("0.01")] * 3
    assert view.unrealized == Decimal("0.03")


def test_reconcile_is_idempotent(reconciler):
    prices = {"GOOG": Decimal("115"), "TSLA": Decimal("199.99")}

    assert reconciler.reconcile(RICH_SNAPSHOT, prices) == reconciler.reconcile(RICH_SNAPSHOT, prices)


def test_normalizing_normalized_view_is_identity(reconciler):
    view = reconciler.reconcile(RICH_SNAPSHOT, {"GOOG": Decimal("115")})

    assert reconciler.normalize(view.model_dump()) == view


def test_result_independent_of_event_order(reconciler):
    initial_prices = {"GOOG": Decimal("101")}
    final_prices = {"GOOG": Decimal("101"), "TSLA": Decimal("250")}

    # snapshot first, then the price delta
    snapshot_then_delta = reconciler.recompute(
        reconciler.reconcile(RICH_SNAPSHOT, initial_prices), final_prices
    )
    # price delta first, then the snapshot
    delta_then_snapshot = reconciler.reconcile(RICH_SNAPSHOT, final_prices)

    assert snapshot_then_delta == delta_then_snapshot


def test_recompute_returns_new_view(reconciler):
    view = reconciler.normalize(RICH_SNAPSHOT)

    updated = reconciler.recompute(view, {"GOOG": Decimal("130")})

    assert updated is not view
    assert view.holding("GOOG").current_price == Decimal("100")


def test_market_value_and_total_pnl(reconciler):
    view = reconciler.reconcile(RICH_SNAPSHOT, {"GOOG": Decimal("115"), "TSLA": Decimal("250.555")})

    assert view.holding("GOOG").market_value == Decimal("1150.00")
    assert view.holding("TSLA").market_value == Decimal("501.11")
    assert view.market_value == Decimal("1651.11")
    # realized 12.25 + unrealized (150.00 + 101.11)
    assert view.total_pnl == Decimal("263.36")


def test_empty_view_has_no_market_value():
    assert PortfolioView.empty().market_value == Decimal("0.00")
    assert PortfolioView.empty().total_pnl == Decimal("0.00")
    assert Holding(instrument="TSLA", quantity=2, current_price=Decimal("250.5")).market_value == Decimal("501.00")
