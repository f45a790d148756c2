import json
from typing import Any, AsyncIterator, Optional

from core.logging import get_market_data_logger_safe
from core.schemas.events import FeedEvent, FeedMessage, FeedRequest
from core.utils.exceptions import FeedError

from .transport import FeedTransport, Frame


def decode_frame(frame: Frame) -> Optional[FeedMessage]:
    """Decode one wire frame; anything that is not a known event object yields None."""
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        payload = json.loads(frame)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    event = FeedEvent.from_wire(payload.get("event"))
    if event is None:
        return None
    return FeedMessage(event=event, data=payload.get("data"))


class FeedSubscription:
    """
    Scoped handle on the live feed.

    Entering the context connects; leaving it, on any path including
    cancellation, unsubscribes exactly once. Nothing is yielded after the
    handle is closed, even a frame the transport already had in hand.
    """

    def __init__(self, transport: FeedTransport):
        self.transport = transport
        self._connected = False
        self._closed = False
        self.logger = get_market_data_logger_safe("feed_subscription")

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "FeedSubscription":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._closed:
            raise FeedError("Subscription already closed")
        if not self._connected:
            await self.transport.connect()
            self._connected = True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._connected:
            await self.transport.close()
            self.logger.info("Unsubscribed from live feed")

    async def request(self, request: FeedRequest, data: Any = None) -> None:
        """Send a one-off request (current prices, history for an instrument)."""
        if self._closed or not self._connected:
            self.logger.debug("Dropping request on inactive subscription", request=request.value)
            return
        message = {"event": request.value}
        if data is not None:
            message["data"] = data
        await self.transport.send(message)

    async def events(self) -> AsyncIterator[FeedMessage]:
        while not self._closed:
            frame = await self.transport.receive()
            if self._closed:
                return
            if frame is None:
                self.logger.info("Live feed ended by server")
                return
            message = decode_frame(frame)
            if message is None:
                self.logger.debug("Dropping undecodable feed frame")
                continue
            yield message

    def __aiter__(self) -> AsyncIterator[FeedMessage]:
        return self.events()
