import json
from typing import Any, Optional, Protocol, Union

from websockets.asyncio.client import connect, ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidHandshake, InvalidURI

from core.config.settings import FeedSettings
from core.logging import get_market_data_logger_safe
from core.utils.exceptions import FeedError

Frame = Union[str, bytes]


class FeedTransport(Protocol):
    """Push channel carrying price, history and portfolio events."""

    async def connect(self) -> None: ...

    async def receive(self) -> Optional[Frame]:
        """Next raw frame, or None once the server closed the channel cleanly."""
        ...

    async def send(self, message: dict) -> None: ...

    async def close(self) -> None: ...


class WebSocketFeedTransport:
    """
    Feed transport over a plain websocket: one JSON object per text frame,
    ``{"event": <name>, "data": <payload>}``.
    """

    def __init__(self, settings: FeedSettings, auth_token: str = ""):
        self.settings = settings
        self.auth_token = auth_token
        self._ws: Optional[ClientConnection] = None
        self.logger = get_market_data_logger_safe("websocket_feed")

    async def connect(self) -> None:
        headers = {}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        try:
            self._ws = await connect(
                self.settings.url,
                additional_headers=headers,
                open_timeout=self.settings.open_timeout_seconds,
            )
        except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as e:
            raise FeedError(f"Could not connect to live feed: {e}", url=self.settings.url) from e
        self.logger.info("Live feed connected", url=self.settings.url)

    async def receive(self) -> Optional[Frame]:
        if self._ws is None:
            return None
        try:
            return await self._ws.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as e:
            raise FeedError(f"Live feed connection lost: {e}", url=self.settings.url) from e

    async def send(self, message: dict[str, Any]) -> None:
        if self._ws is None:
            raise FeedError("Live feed is not connected", url=self.settings.url)
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as e:
            raise FeedError(f"Live feed connection lost: {e}", url=self.settings.url) from e

    async def close(self) -> None:
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()
            self.logger.info("Live feed disconnected", url=self.settings.url)
