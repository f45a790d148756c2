from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.logging import get_market_data_logger_safe
from core.trading.money import to_decimal


class HistoryStore:
    """
    Per-instrument price series, oldest sample first.

    Both update paths replace a series wholesale: the periodic push already
    carries the complete rolling window, so nothing is appended, reordered or
    deduplicated here. Instruments outside the supported list are stored too.
    """

    def __init__(self):
        self._series: Dict[str, List[Decimal]] = {}
        self.logger = get_market_data_logger_safe("history_store")

    def replace(self, instrument: Any, series: Any) -> bool:
        """Store the result of an explicit fetch for one instrument."""
        if not isinstance(instrument, str) or not instrument:
            self.logger.debug("Ignoring history without instrument", instrument=instrument)
            return False
        samples = self._coerce_series(series)
        if samples is None:
            self.logger.debug("Ignoring non-sequence history", instrument=instrument)
            return False
        self._series[instrument] = samples
        return True

    def apply_delta(self, updates: Any) -> bool:
        """Replace the series of every instrument present in ``updates``."""
        if not isinstance(updates, Mapping):
            self.logger.debug("Ignoring non-object history delta", payload_type=type(updates).__name__)
            return False

        merged = dict(self._series)
        for instrument, series in updates.items():
            samples = self._coerce_series(series)
            if samples is None:
                self.logger.debug("Skipping non-sequence history", instrument=instrument)
                continue
            merged[str(instrument)] = samples
        self._series = merged
        return True

    def get(self, instrument: str) -> List[Decimal]:
        return list(self._series.get(instrument, ()))

    def snapshot(self) -> Dict[str, List[Decimal]]:
        return {instrument: list(series) for instrument, series in self._series.items()}

    def instruments(self) -> List[str]:
        return list(self._series)

    @staticmethod
    def _coerce_series(series: Any) -> Optional[List[Decimal]]:
        if isinstance(series, (str, bytes)) or not isinstance(series, Sequence):
            return None
        # Position matters for the lookback window, so unusable samples become 0
        return [to_decimal(sample) for sample in series]
