from typing import Any, Protocol, Tuple

from pydantic import ValidationError as PydanticValidationError

from core.logging import get_trading_logger_safe
from core.schemas.events import Trade


class TradeHistorySource(Protocol):
    async def fetch_trade_history(self) -> list: ...


class TransactionLedger:
    """
    Read-only cache of the account's trade history.

    Populated only by an explicit reload; each reload replaces the cached
    list wholesale and keeps the upstream order. A failed reload leaves the
    previous list in place.
    """

    def __init__(self, source: TradeHistorySource):
        self.source = source
        self._trades: Tuple[Trade, ...] = ()
        self._loaded = False
        self.logger = get_trading_logger_safe("transaction_ledger")

    @property
    def trades(self) -> Tuple[Trade, ...]:
        return self._trades

    @property
    def loaded(self) -> bool:
        """True once a reload has succeeded."""
        return self._loaded

    async def reload(self) -> Tuple[Trade, ...]:
        raw_trades = await self.source.fetch_trade_history()
        trades = tuple(trade for trade in (self._parse(entry) for entry in raw_trades) if trade is not None)

        self._trades = trades
        self._loaded = True
        self.logger.info("Trade history reloaded",
                         trades=len(trades),
                         skipped=len(raw_trades) - len(trades))
        return trades

    def _parse(self, entry: Any) -> Trade | None:
        try:
            return Trade.model_validate(entry)
        except PydanticValidationError as e:
            self.logger.debug("Skipping malformed trade record", errors=e.error_count())
            return None
