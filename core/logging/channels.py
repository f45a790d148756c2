"""
Logging channel definitions for the position viewer.
Each component logs through a named channel so output can be filtered.
"""

from enum import Enum


class LogChannel(str, Enum):
    """Logging channels for different components."""

    APPLICATION = "application"  # General application logs
    TRADING = "trading"          # Portfolio reconciliation, trades, ledger
    MARKET_DATA = "market_data"  # Price and history feed
    API = "api"                  # Account API requests/responses
    ERROR = "error"              # Error logs


def get_channel_for_component(component: str) -> LogChannel:
    """Resolve a component name to its channel; unknown names log to the application channel."""
    try:
        return LogChannel(component)
    except ValueError:
        return LogChannel.APPLICATION
