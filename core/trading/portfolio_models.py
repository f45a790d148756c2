from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from pydantic import ConfigDict

from core.schemas.events import ViewerBaseModel
from core.trading.money import ZERO, round2, sum_rounded


class Holding(ViewerBaseModel):
    """A single position from the account snapshot.

    ``quantity`` and ``average_cost`` are authoritative; ``current_price``
    and ``unrealized`` are derived and rebuilt on every recompute.
    """
    model_config = ConfigDict(frozen=True)

    instrument: str
    quantity: int = 0
    average_cost: Decimal = ZERO
    current_price: Decimal = ZERO
    unrealized: Decimal = ZERO

    def priced_at(self, price: Optional[Decimal]) -> "Holding":
        """Return a copy valued at ``price`` (or at the last known price when None)."""
        current_price = self.current_price if price is None else price
        unrealized = round2((current_price - self.average_cost) * self.quantity)
        return self.model_copy(update={"current_price": current_price, "unrealized": unrealized})

    @property
    def market_value(self) -> Decimal:
        return round2(self.current_price * self.quantity)


class PortfolioView(ViewerBaseModel):
    """Presentation-ready account state: the last snapshot valued at the last prices."""
    model_config = ConfigDict(frozen=True)

    cash: Decimal = ZERO
    realized: Decimal = ZERO
    holdings: Tuple[Holding, ...] = ()
    unrealized: Decimal = ZERO

    @classmethod
    def empty(cls) -> "PortfolioView":
        return cls()

    def holding(self, instrument: str) -> Optional[Holding]:
        for holding in self.holdings:
            if holding.instrument == instrument:
                return holding
        return None

    @property
    def market_value(self) -> Decimal:
        return sum_rounded(h.market_value for h in self.holdings)

    @property
    def total_pnl(self) -> Decimal:
        return sum_rounded((self.realized, self.unrealized))

    def with_holdings(self, holdings: Tuple[Holding, ...]) -> "PortfolioView":
        """Copy with new holdings and the total re-derived from them."""
        return self.model_copy(update={
            "holdings": holdings,
            "unrealized": sum_rounded(h.unrealized for h in holdings),
        })
