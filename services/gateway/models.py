from pydantic import BaseModel, Field, AliasChoices
from typing import Any, List

from core.schemas.events import Trade


class Profile(BaseModel):
    """Response of the profile endpoint"""
    supported_instruments: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("supported_instruments", "supportedInstruments", "supported"),
    )
    # Raw snapshot in either holdings shape; normalized by the reconciler
    portfolio: Any = None


class TradeResult(BaseModel):
    """Response of a successful trade submission"""
    portfolio: Any = None
    trade: Trade


class DepositResult(BaseModel):
    """Response of a successful deposit"""
    portfolio: Any = None
