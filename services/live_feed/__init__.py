from .subscription import FeedSubscription, decode_frame
from .transport import FeedTransport, WebSocketFeedTransport

__all__ = ["FeedSubscription", "FeedTransport", "WebSocketFeedTransport", "decode_frame"]
