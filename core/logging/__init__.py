# Structured logging entry points
import structlog
from typing import Optional

from core.config.settings import Settings
from .channels import LogChannel
from .enhanced_logging import (
    configure_enhanced_logging,
    get_enhanced_logger,
    get_channel_logger,
    get_trading_logger_safe,
    get_market_data_logger_safe,
    get_api_logger_safe,
    get_error_logger_safe,
)


def configure_logging(settings: Settings) -> None:
    """Configure logging once per process; later calls are no-ops."""
    configure_enhanced_logging(settings)


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return get_enhanced_logger(name, component)


__all__ = [
    "LogChannel",
    "configure_logging",
    "get_logger",
    "get_channel_logger",
    "get_trading_logger_safe",
    "get_market_data_logger_safe",
    "get_api_logger_safe",
    "get_error_logger_safe",
]
