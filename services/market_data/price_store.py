from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_market_data_logger_safe
from core.trading.money import to_decimal

PriceListener = Callable[[Dict[str, Decimal]], None]


class PriceStore:
    """
    Latest known price per instrument.

    Updates arrive either as a full snapshot (replaces everything) or as a
    delta (overwrites only the instruments it names). Listeners receive the
    post-update contents before they are committed: if a listener raises,
    the store keeps its previous contents and the error propagates.
    """

    def __init__(self):
        self._prices: Dict[str, Decimal] = {}
        self._listeners: List[PriceListener] = []
        self.logger = get_market_data_logger_safe("price_store")

    def add_listener(self, listener: PriceListener) -> None:
        self._listeners.append(listener)

    def apply_full(self, prices: Any) -> bool:
        """Replace the entire store. Non-mapping input is ignored."""
        if not isinstance(prices, Mapping):
            self.logger.debug("Ignoring non-object price snapshot", payload_type=type(prices).__name__)
            return False

        self._commit(self._coerce(prices))
        return True

    def apply_delta(self, prices: Any) -> bool:
        """Merge the given instruments into the store; others keep prior values."""
        if not isinstance(prices, Mapping):
            self.logger.debug("Ignoring non-object price delta", payload_type=type(prices).__name__)
            return False

        merged = dict(self._prices)
        merged.update(self._coerce(prices))
        self._commit(merged)
        return True

    def get(self, instrument: str) -> Optional[Decimal]:
        return self._prices.get(instrument)

    def snapshot(self) -> Dict[str, Decimal]:
        return dict(self._prices)

    def __contains__(self, instrument: str) -> bool:
        return instrument in self._prices

    def __len__(self) -> int:
        return len(self._prices)

    def _coerce(self, prices: Mapping) -> Dict[str, Decimal]:
        coerced: Dict[str, Decimal] = {}
        for instrument, raw_price in prices.items():
            price = to_decimal(raw_price, default=None)
            if price is None or price < 0:
                self.logger.debug("Skipping unusable price", instrument=instrument, price=raw_price)
                continue
            coerced[str(instrument)] = price
        return coerced

    def _commit(self, prices: Dict[str, Decimal]) -> None:
        for listener in self._listeners:
            listener(dict(prices))
        self._prices = prices
