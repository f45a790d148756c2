"""
Pytest configuration and shared fixtures for position viewer tests.
"""
import asyncio
import json
import pytest
from typing import Any, List, Optional
from unittest.mock import AsyncMock

from core.config.settings import Settings, ApiSettings, FeedSettings, ViewerSettings
from services.gateway import AccountApiClient


class FakeFeedTransport:
    """In-memory feed transport: frames are queued by the test, sends are recorded."""

    def __init__(self, frames: Optional[List[Any]] = None):
        self.frames: asyncio.Queue = asyncio.Queue()
        for frame in frames or []:
            self.push(frame)
        self.sent: List[dict] = []
        self.connect_calls = 0
        self.close_calls = 0

    def push(self, frame: Any) -> None:
        """Queue a frame; dicts are JSON-encoded, None ends the stream, an exception is raised on receive."""
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self.frames.put_nowait(frame)

    async def connect(self) -> None:
        self.connect_calls += 1

    async def receive(self):
        frame = await self.frames.get()
        if isinstance(frame, Exception):
            raise frame
        return frame

    async def send(self, message: dict) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        api=ApiSettings(
            base_url="http://api.test",
            auth_token="test-token",
            timeout_seconds=5.0,
        ),
        feed=FeedSettings(url="ws://api.test/feed"),
        viewer=ViewerSettings(
            supported_instruments="GOOG,TSLA,AMZN",
            default_instrument="GOOG",
        ),
    )


@pytest.fixture
def fake_transport():
    return FakeFeedTransport()


@pytest.fixture
def mock_api_client():
    """Mock account API client; every request is an AsyncMock."""
    client = AsyncMock(spec=AccountApiClient)
    client.fetch_trade_history.return_value = []
    return client
