from .client import AccountApiClient, validate_amount, validate_quantity, validate_trade_type
from .models import DepositResult, Profile, TradeResult

__all__ = [
    "AccountApiClient",
    "DepositResult",
    "Profile",
    "TradeResult",
    "validate_amount",
    "validate_quantity",
    "validate_trade_type",
]
