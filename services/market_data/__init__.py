from .price_store import PriceStore
from .history_store import HistoryStore
from .trend_detector import TrendDetector, DEFAULT_TREND_WINDOW

__all__ = ["PriceStore", "HistoryStore", "TrendDetector", "DEFAULT_TREND_WINDOW"]
