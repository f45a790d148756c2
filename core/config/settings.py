# Complete settings for the position viewer engine
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List, Union


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ApiSettings(BaseModel):
    """Account API (profile, trade, deposit, trade history) configuration"""
    base_url: str = "http://localhost:4000"
    # Passed into the engine explicitly; never read from ambient session storage
    auth_token: str = ""
    timeout_seconds: float = 10.0


class FeedSettings(BaseModel):
    """Live price/history feed configuration"""
    url: str = "ws://localhost:4000/feed"
    open_timeout_seconds: float = 10.0
    # Send getPrices/getHistory requests right after connecting
    request_on_connect: bool = True
    # Reconnect backoff after the feed drops or cannot be reached
    reconnect_base_delay_seconds: float = 1.0
    reconnect_max_delay_seconds: float = 30.0
    reconnect_backoff_multiplier: float = 2.0


class ViewerSettings(BaseModel):
    """Derivation engine configuration"""
    supported_instruments: Union[str, List[str]] = Field(
        default="GOOG,TSLA,AMZN,META,NVDA",
        description="Fallback instrument list used until the profile supplies one"
    )
    default_instrument: str | None = None
    trend_window: int = Field(default=6, ge=2, description="Samples in the momentum lookback window")

    @field_validator('supported_instruments', mode='before')
    @classmethod
    def parse_supported_instruments(cls, v):
        """Parse comma-separated string or return list as-is"""
        if isinstance(v, str):
            return [symbol.strip() for symbol in v.split(',') if symbol.strip()]
        return v


class LoggingSettings(BaseModel):
    level: str = "INFO"
    # Console rendering: plain text by default, JSON when shipping logs
    json_format: bool = False
    redact_keys: list[str] = [
        "authorization", "access_token", "refresh_token", "auth_token",
        "password", "secret", "token", "set-cookie"
    ]


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "position_viewer"
    version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT

    api: ApiSettings = ApiSettings()
    feed: FeedSettings = FeedSettings()
    viewer: ViewerSettings = ViewerSettings()
    logging: LoggingSettings = LoggingSettings()
