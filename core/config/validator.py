"""
Configuration validation at application startup.

Validates the critical configuration values before the viewer connects,
providing clear messages for missing or invalid settings.
"""

import logging
from typing import List
from dataclasses import dataclass
from urllib.parse import urlparse

from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a configuration validation check"""
    is_valid: bool
    component: str
    message: str
    severity: str = "error"  # "error", "warning", "info"


class ConfigurationValidator:
    """
    Configuration validator for startup checks.

    Collects every problem before reporting so a single run shows
    everything that needs fixing.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.validation_results: List[ValidationResult] = []

    async def validate_all(self) -> bool:
        """
        Run all validation checks.

        Returns:
            bool: True if all critical validations pass
        """
        logger.info("Starting configuration validation...")

        self._validate_api_settings()
        self._validate_feed_settings()
        self._validate_viewer_settings()
        self._validate_logging_settings()

        errors = [r for r in self.validation_results if r.severity == "error"]
        warnings = [r for r in self.validation_results if r.severity == "warning"]

        if errors:
            logger.error(f"Configuration validation failed: {len(errors)} errors, {len(warnings)} warnings")
            for result in errors:
                logger.error(f"   ERROR [{result.component}]: {result.message}")

        if warnings:
            for result in warnings:
                logger.warning(f"   WARNING [{result.component}]: {result.message}")

        if not errors and not warnings:
            logger.info("All configuration validation checks passed")
        elif not errors:
            logger.info(f"Configuration validation passed with {len(warnings)} warnings")

        return len(errors) == 0

    def _validate_api_settings(self):
        """Validate account API configuration"""
        parsed = urlparse(self.settings.api.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="API",
                message=f"API__BASE_URL must be an http(s) URL, got {self.settings.api.base_url!r}",
            ))

        if not self.settings.api.auth_token:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="API",
                message="API__AUTH_TOKEN is empty - profile, trade and ledger requests will be rejected",
                severity="warning"
            ))

        if self.settings.api.timeout_seconds <= 0:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="API",
                message="API__TIMEOUT_SECONDS must be positive",
            ))

    def _validate_feed_settings(self):
        """Validate live feed configuration"""
        parsed = urlparse(self.settings.feed.url)
        if parsed.scheme not in ("ws", "wss") or not parsed.netloc:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Feed",
                message=f"FEED__URL must be a ws(s) URL, got {self.settings.feed.url!r}",
            ))

        feed = self.settings.feed
        if feed.reconnect_base_delay_seconds < 0 or feed.reconnect_max_delay_seconds < feed.reconnect_base_delay_seconds:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Feed",
                message="Reconnect delays must satisfy 0 <= base delay <= max delay",
            ))
        if feed.reconnect_backoff_multiplier < 1:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Feed",
                message=f"Reconnect backoff multiplier must be at least 1, got {feed.reconnect_backoff_multiplier}",
            ))

    def _validate_viewer_settings(self):
        """Validate derivation engine configuration"""
        instruments = self.settings.viewer.supported_instruments
        if not instruments:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Viewer",
                message="VIEWER__SUPPORTED_INSTRUMENTS must contain at least one instrument",
            ))
            return

        default = self.settings.viewer.default_instrument
        if default and default not in instruments:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Viewer",
                message=f"VIEWER__DEFAULT_INSTRUMENT {default!r} is not in the supported list",
                severity="warning"
            ))

    def _validate_logging_settings(self):
        """Validate logging configuration"""
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        if self.settings.logging.level.upper() not in valid_log_levels:
            self.validation_results.append(ValidationResult(
                is_valid=False,
                component="Logging",
                message=f"Invalid log level: {self.settings.logging.level}. Must be one of {valid_log_levels}",
            ))


async def validate_startup_configuration(settings: Settings) -> bool:
    """
    Convenience function to run startup configuration validation.

    Args:
        settings: Application settings to validate

    Returns:
        bool: True if validation passes (no critical errors)
    """
    validator = ConfigurationValidator(settings)
    return await validator.validate_all()
