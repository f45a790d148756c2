# Structured logging with channel tagging
import sys
import logging
from typing import Dict, Optional
import structlog

from core.config.settings import Settings
from .channels import LogChannel, get_channel_for_component

# Global logger manager instance
_logger_manager: Optional['EnhancedLoggerManager'] = None


class EnhancedLoggerManager:
    """Logging manager: one console handler, structlog processors, channel-bound loggers."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.configured_loggers: Dict[str, structlog.BoundLogger] = {}

        self._configure_structlog()
        self._setup_console_logging()

    def _setup_console_logging(self) -> None:
        """Attach a single stdout handler that renders structlog events."""
        level = getattr(logging, self.settings.logging.level.upper(), logging.INFO)
        renderer = (
            structlog.processors.JSONRenderer()
            if self.settings.logging.json_format
            else structlog.dev.ConsoleRenderer(colors=False)
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )

        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) == sys.stdout:
                root_logger.removeHandler(handler)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root_logger.addHandler(handler)
        root_logger.setLevel(level)

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("websockets").setLevel(logging.WARNING)

    def _configure_structlog(self) -> None:
        """Configure structlog with appropriate processors."""

        def add_correlation_id(logger, name, event_dict):
            """Add correlation ID to log events if available"""
            from core.logging.correlation import CorrelationIdManager
            correlation_id = CorrelationIdManager.get_correlation_id()
            if correlation_id:
                event_dict.setdefault('correlation_id', correlation_id)
            return event_dict

        def add_standard_context(logger, name, event_dict):
            """Bind standard context fields once from settings."""
            event_dict.setdefault('env', self.settings.environment.value)
            event_dict.setdefault('service', self.settings.app_name)
            return event_dict

        keys_to_redact = {key.lower() for key in self.settings.logging.redact_keys}

        def redact_sensitive(logger, name, event_dict):
            """Redact sensitive fields from event dict recursively."""

            def _redact(obj):
                if isinstance(obj, dict):
                    out = {}
                    for k, v in obj.items():
                        if isinstance(k, str) and k.lower() in keys_to_redact:
                            out[k] = '[REDACTED]'
                        else:
                            out[k] = _redact(v)
                    return out
                if isinstance(obj, list):
                    return [_redact(v) for v in obj]
                return obj

            return _redact(event_dict)

        processors = [
            add_correlation_id,
            add_standard_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_sensitive,
            # Defer final rendering to the handler via ProcessorFormatter
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str, component: Optional[str] = None) -> structlog.BoundLogger:
        """Get a structured logger for a component."""
        cache_key = f"{name}:{component}"
        if cache_key in self.configured_loggers:
            return self.configured_loggers[cache_key]

        logger = structlog.get_logger(name)
        if component:
            logger = logger.bind(component=component, channel=get_channel_for_component(component).value)

        self.configured_loggers[cache_key] = logger
        return logger

    def get_channel_logger(self, name: str, channel: LogChannel) -> structlog.BoundLogger:
        """Get a logger for a specific channel."""
        return self.get_logger(name).bind(channel=channel.value)


def configure_enhanced_logging(settings: Settings) -> None:
    """Configure enhanced logging system."""
    global _logger_manager

    if _logger_manager is not None:
        return

    _logger_manager = EnhancedLoggerManager(settings)


def get_enhanced_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    if _logger_manager is None:
        # Not configured yet (tests, library use): plain structlog defaults
        logger = structlog.get_logger(name)
        if component:
            logger = logger.bind(component=component, channel=get_channel_for_component(component).value)
        return logger

    return _logger_manager.get_logger(name, component)


def get_channel_logger(name: str, channel: LogChannel) -> structlog.BoundLogger:
    """Get a logger for a specific channel."""
    if _logger_manager is None:
        return structlog.get_logger(name).bind(channel=channel.value)

    return _logger_manager.get_channel_logger(name, channel)


# Convenience functions for specific components
def get_trading_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a trading logger."""
    return get_channel_logger(name, LogChannel.TRADING)


def get_market_data_logger_safe(name: str) -> structlog.BoundLogger:
    """Get a market data logger."""
    return get_channel_logger(name, LogChannel.MARKET_DATA)


def get_api_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an API logger."""
    return get_channel_logger(name, LogChannel.API)


def get_error_logger_safe(name: str) -> structlog.BoundLogger:
    """Get an error logger."""
    return get_channel_logger(name, LogChannel.ERROR)
