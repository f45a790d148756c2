from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from core.schemas.events import TrendSignal
from core.trading.money import round2

DEFAULT_TREND_WINDOW = 6
HUNDRED = Decimal("100")


class TrendDetector:
    """
    Picks the instrument with the strongest positive move over the last
    ``window`` samples of its history.

    Instruments are scanned in supported-list order and a candidate must be
    strictly better than the current best, so the earliest instrument wins a
    tie. Series shorter than the window, and windows starting at a zero price,
    are skipped.
    """

    def __init__(self, window: int = DEFAULT_TREND_WINDOW):
        if window < 2:
            raise ValueError("trend window needs at least two samples")
        self.window = window

    def percent_change(self, series: Sequence[Decimal]) -> Optional[Decimal]:
        """Unrounded change across the window, or None when it cannot be computed."""
        if len(series) < self.window:
            return None
        old = series[len(series) - self.window]
        cur = series[len(series) - 1]
        if old == 0:
            return None
        return (cur - old) / old * HUNDRED

    def detect(self, history: Mapping[str, Sequence[Decimal]],
               supported: Iterable[str]) -> Optional[TrendSignal]:
        best_instrument: Optional[str] = None
        best_pct = Decimal("0")

        for instrument in supported:
            pct = self.percent_change(history.get(instrument) or ())
            if pct is None:
                continue
            if pct > best_pct:
                best_pct = pct
                best_instrument = instrument

        if best_instrument is None:
            return None
        return TrendSignal(instrument=best_instrument, percent_change=round2(best_pct))
