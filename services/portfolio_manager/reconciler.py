from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from core.logging import get_trading_logger_safe
from core.trading.money import to_decimal, to_quantity, sum_rounded
from core.trading.portfolio_models import Holding, PortfolioView
from core.utils.exceptions import MalformedPayloadError


def _first(entry: Mapping, *keys: str) -> Any:
    """Value of the first key present in ``entry`` (upstream uses both naming styles)."""
    for key in keys:
        if key in entry:
            return entry[key]
    return None


class PortfolioReconciler:
    """
    Turns the authoritative account snapshot plus the latest prices into a
    PortfolioView.

    Every method is a pure function of its arguments: the same (snapshot,
    prices) pair always yields an equal view, whichever of the two arrived
    last. That is what keeps a late snapshot from missing fresh prices and a
    late price tick from resurrecting a stale snapshot.
    """

    def __init__(self):
        self.logger = get_trading_logger_safe("portfolio_reconciler")

    def normalize(self, raw: Any) -> PortfolioView:
        """
        Map either supported snapshot shape onto a PortfolioView.

        Rich shape: ``holdings`` is a list of objects carrying quantity and
        cost basis. Legacy shape: ``holdings`` maps instrument -> quantity
        and has no cost basis, so cost, price and P/L start at zero.
        """
        if raw is None:
            return PortfolioView.empty()
        if not isinstance(raw, Mapping):
            raise MalformedPayloadError(
                "Portfolio snapshot is not an object",
                event="portfolioSnapshot",
                payload=raw,
            )

        raw_holdings = raw.get("holdings")
        try:
            if isinstance(raw_holdings, Mapping):
                holdings = tuple(
                    Holding(instrument=str(instrument), quantity=to_quantity(quantity))
                    for instrument, quantity in raw_holdings.items()
                )
            elif isinstance(raw_holdings, Sequence) and not isinstance(raw_holdings, (str, bytes)):
                holdings = tuple(self._holding_from_entry(entry) for entry in raw_holdings)
            else:
                holdings = ()
        except PydanticValidationError as e:
            raise MalformedPayloadError(
                f"Portfolio snapshot holdings are invalid: {e.error_count()} errors",
                event="portfolioSnapshot",
                payload=raw,
            ) from e

        unrealized = to_decimal(raw.get("unrealized"), default=None)
        if unrealized is None:
            unrealized = sum_rounded(h.unrealized for h in holdings)

        return PortfolioView(
            cash=to_decimal(raw.get("cash")),
            realized=to_decimal(raw.get("realized")),
            holdings=holdings,
            unrealized=unrealized,
        )

    def recompute(self, view: PortfolioView, prices: Mapping[str, Decimal]) -> PortfolioView:
        """
        Value every holding at the latest price.

        A holding whose instrument has no price keeps its previous
        current_price; a tick for some other instrument never zeroes it.
        """
        holdings = tuple(holding.priced_at(prices.get(holding.instrument)) for holding in view.holdings)
        return view.with_holdings(holdings)

    def reconcile(self, raw: Any, prices: Mapping[str, Decimal]) -> PortfolioView:
        """Normalize a raw snapshot and value it at ``prices`` in one step."""
        view = self.recompute(self.normalize(raw), prices)
        self.logger.debug("Portfolio reconciled",
                          holdings=len(view.holdings),
                          unrealized=str(view.unrealized))
        return view

    @staticmethod
    def _holding_from_entry(entry: Any) -> Holding:
        if not isinstance(entry, Mapping):
            raise MalformedPayloadError(
                "Holding entry is not an object",
                event="portfolioSnapshot",
                payload=entry,
            )
        instrument: Optional[str] = _first(entry, "instrument", "ticker", "symbol")
        if not instrument:
            raise MalformedPayloadError(
                "Holding entry has no instrument",
                event="portfolioSnapshot",
                payload=entry,
            )
        fields: Dict[str, Any] = {
            "instrument": str(instrument),
            "quantity": to_quantity(_first(entry, "quantity", "qty")),
            "average_cost": to_decimal(_first(entry, "average_cost", "avg_cost")),
            "current_price": to_decimal(_first(entry, "current_price")),
            "unrealized": to_decimal(_first(entry, "unrealized")),
        }
        return Holding(**fields)
