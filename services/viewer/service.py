import asyncio
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from core.config.settings import Settings
from core.logging import get_trading_logger_safe, get_error_logger_safe
from core.logging.correlation import correlation_scope
from core.schemas.events import (
    FeedEvent,
    FeedMessage,
    FeedRequest,
    MessageLevel,
    Trade,
    TradeConfirmation,
    TrendSignal,
    UserMessage,
)
from core.trading.portfolio_models import PortfolioView
from core.utils.exceptions import (
    FeedError,
    MalformedPayloadError,
    RequestError,
    ValidationError,
    create_error_context,
)
from services.gateway import AccountApiClient, DepositResult, TradeResult
from services.ledger import TransactionLedger
from services.live_feed import FeedSubscription, FeedTransport
from services.market_data import HistoryStore, PriceStore, TrendDetector
from services.portfolio_manager.reconciler import PortfolioReconciler

ViewListener = Callable[[PortfolioView], None]


class PositionViewerService:
    """
    Live position viewer engine.

    Owns the price and history stores and the current PortfolioView, applies
    inbound feed events one at a time in arrival order, and issues account
    requests on behalf of the user. Failures never stop the engine: the last
    good state is kept and a user message is recorded instead.
    """

    def __init__(self, settings: Settings, api_client: AccountApiClient,
                 feed_transport: Optional[FeedTransport] = None):
        self.settings = settings
        self.api_client = api_client
        self.feed_transport = feed_transport

        self.prices = PriceStore()
        self.history = HistoryStore()
        self.reconciler = PortfolioReconciler()
        self.trend_detector = TrendDetector(window=settings.viewer.trend_window)
        self.ledger = TransactionLedger(api_client)

        self._view = PortfolioView.empty()
        self._supported: List[str] = list(settings.viewer.supported_instruments)
        self._selected: Optional[str] = settings.viewer.default_instrument or (
            self._supported[0] if self._supported else None
        )
        self._messages: Dict[str, UserMessage] = {}
        self._view_listeners: List[ViewListener] = []
        self._subscription: Optional[FeedSubscription] = None

        self.logger = get_trading_logger_safe("position_viewer")
        self.error_logger = get_error_logger_safe("position_viewer_errors")

        # Re-value holdings from the store contents after every price update
        self.prices.add_listener(self._on_prices_updated)

    # --- State accessors -------------------------------------------------

    @property
    def view(self) -> PortfolioView:
        return self._view

    @property
    def supported_instruments(self) -> Tuple[str, ...]:
        return tuple(self._supported)

    @property
    def selected_instrument(self) -> Optional[str]:
        return self._selected

    @property
    def messages(self) -> Dict[str, UserMessage]:
        return dict(self._messages)

    def message(self, topic: str) -> Optional[UserMessage]:
        return self._messages.get(topic)

    def add_view_listener(self, listener: ViewListener) -> None:
        self._view_listeners.append(listener)

    def trending(self) -> Optional[TrendSignal]:
        """Recomputed on every call from the current history."""
        return self.trend_detector.detect(self.history.snapshot(), self._supported)

    def selected_history(self) -> List[Decimal]:
        return self.history.get(self._selected) if self._selected else []

    # --- Lifecycle -------------------------------------------------------

    async def start(self) -> None:
        await self.api_client.start()
        await self.load_profile()
        self.logger.info("Position viewer started",
                         supported=self._supported,
                         selected=self._selected)

    async def stop(self) -> None:
        if self._subscription is not None:
            await self._subscription.close()
        await self.api_client.close()
        self.logger.info("Position viewer stopped")

    def subscribe(self) -> FeedSubscription:
        """Scoped live subscription; use as ``async with service.subscribe() as sub``."""
        if self.feed_transport is None:
            raise RuntimeError("No feed transport configured")
        return FeedSubscription(self.feed_transport)

    @property
    def connected(self) -> bool:
        """True while a live subscription is being consumed."""
        return self._subscription is not None

    async def run(self, subscription: FeedSubscription) -> None:
        """Apply feed events until the subscription ends or is closed."""
        self._subscription = subscription
        try:
            if self.settings.feed.request_on_connect:
                await subscription.request(FeedRequest.GET_PRICES)
                if self._selected:
                    await subscription.request(FeedRequest.GET_HISTORY, self._selected)

            async for message in subscription:
                if subscription.closed:
                    break
                try:
                    self.handle_message(message)
                except Exception as e:
                    # State is only replaced once an event is fully applied, so the last good view stands
                    self.error_logger.error("Failed to apply feed event",
                                            **create_error_context(e, "handle_message",
                                                                   {"feed_event": message.event.value}))
        finally:
            self._subscription = None

    async def stream(self) -> None:
        """
        Keep the live feed subscribed until cancelled.

        An outage (connect failure, dropped connection, server close) is
        logged and followed by a reconnect with exponential backoff; each new
        subscription re-requests prices and history. Cancelling the task
        leaves the current subscription, which unsubscribes.
        """
        feed = self.settings.feed
        attempts = 0
        while True:
            try:
                async with self.subscribe() as subscription:
                    attempts = 0
                    await self.run(subscription)
                self.logger.warning("Live feed closed by server")
            except FeedError as e:
                self.error_logger.error("Live feed unavailable",
                                        **create_error_context(e, "stream", {"url": e.url}))

            attempts += 1
            delay = min(
                feed.reconnect_base_delay_seconds * (feed.reconnect_backoff_multiplier ** (attempts - 1)),
                feed.reconnect_max_delay_seconds,
            )
            self.logger.info("Reconnecting to live feed", attempt=attempts, delay_seconds=delay)
            await asyncio.sleep(delay)

    # --- Inbound events --------------------------------------------------

    def handle_message(self, message: FeedMessage) -> None:
        """Apply one inbound event, including every derived recompute, before returning."""
        data = message.data
        event = message.event

        if event is FeedEvent.PRICE_SNAPSHOT:
            self.prices.apply_full(data)
        elif event is FeedEvent.PRICE_DELTA:
            self.prices.apply_delta(data)
        elif event is FeedEvent.HISTORY_SNAPSHOT:
            self._apply_history_snapshot(data)
        elif event is FeedEvent.HISTORY_DELTA:
            self.history.apply_delta(data)
        elif event is FeedEvent.PORTFOLIO_SNAPSHOT:
            self.apply_snapshot(data)
        elif event is FeedEvent.TRADE_CONFIRMATION:
            self._apply_trade_confirmation(data)

    def apply_snapshot(self, raw: Any) -> bool:
        """Replace the authoritative snapshot and value it at the current prices."""
        try:
            view = self.reconciler.reconcile(raw, self.prices.snapshot())
        except MalformedPayloadError as e:
            self.logger.debug("Dropping malformed portfolio snapshot", reason=e.message)
            return False
        self._set_view(view)
        return True

    def _on_prices_updated(self, prices: Dict[str, Decimal]) -> None:
        self._set_view(self.reconciler.recompute(self._view, prices))

    def _apply_history_snapshot(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        instrument = data.get("instrument", data.get("ticker"))
        series = data.get("series", data.get("history"))
        # A response for an instrument the user has since navigated away from is stale
        if instrument != self._selected:
            self.logger.debug("Ignoring history for unselected instrument",
                              instrument=instrument, selected=self._selected)
            return
        self.history.replace(instrument, series)

    def _apply_trade_confirmation(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        try:
            confirmation = TradeConfirmation.model_validate(data)
        except PydanticValidationError:
            self.logger.debug("Dropping malformed trade confirmation")
            return
        self._post("trade", MessageLevel.INFO, confirmation.describe())

    def _set_view(self, view: PortfolioView) -> None:
        self._view = view
        for listener in self._view_listeners:
            try:
                listener(view)
            except Exception as e:
                self.error_logger.error("View listener failed", **create_error_context(e, "notify_view"))

    # --- User actions ----------------------------------------------------

    async def select_instrument(self, instrument: str) -> None:
        """Switch the charted instrument and ask the feed for its history."""
        self._selected = instrument
        if self._subscription is not None:
            await self._subscription.request(FeedRequest.GET_HISTORY, instrument)

    async def load_profile(self) -> bool:
        with correlation_scope():
            try:
                profile = await self.api_client.fetch_profile()
            except RequestError as e:
                self.error_logger.error("Profile load failed", **create_error_context(e, "load_profile"))
                self._post("profile", MessageLevel.ERROR, e.message)
                return False

        if profile.supported_instruments:
            self._supported = list(profile.supported_instruments)
            if self._selected is None:
                self._selected = self._supported[0]
        self.apply_snapshot(profile.portfolio)
        return True

    async def submit_trade(self, trade_type: Any, quantity: Any,
                           instrument: Optional[str] = None) -> Optional[TradeResult]:
        instrument = instrument or self._selected
        with correlation_scope():
            try:
                result = await self.api_client.submit_trade(trade_type, instrument, quantity)
            except ValidationError as e:
                self._post("trade", MessageLevel.WARNING, e.message)
                return None
            except RequestError as e:
                self.error_logger.error("Trade failed", **create_error_context(e, "submit_trade"))
                self._post("trade", MessageLevel.ERROR, e.message)
                return None

        self.apply_snapshot(result.portfolio)
        trade: Trade = result.trade
        self._post("trade", MessageLevel.INFO,
                   f"Success: {trade.type.value} {trade.quantity} {trade.instrument} @ {trade.price}")
        self.logger.info("Trade submitted",
                         type=trade.type.value,
                         instrument=trade.instrument,
                         quantity=trade.quantity,
                         price=str(trade.price))
        return result

    async def submit_deposit(self, amount: Any) -> Optional[DepositResult]:
        with correlation_scope():
            try:
                result = await self.api_client.submit_deposit(amount)
            except ValidationError as e:
                self._post("deposit", MessageLevel.WARNING, e.message)
                return None
            except RequestError as e:
                self.error_logger.error("Deposit failed", **create_error_context(e, "submit_deposit"))
                self._post("deposit", MessageLevel.ERROR, e.message)
                return None

        self.apply_snapshot(result.portfolio)
        self._post("deposit", MessageLevel.INFO, "Deposit successful")
        return result

    async def reload_ledger(self) -> Tuple[Trade, ...]:
        with correlation_scope():
            try:
                return await self.ledger.reload()
            except RequestError as e:
                self.error_logger.error("Trade history reload failed", **create_error_context(e, "reload_ledger"))
                self._post("ledger", MessageLevel.ERROR, e.message)
                return self.ledger.trades

    def _post(self, topic: str, level: MessageLevel, text: str) -> None:
        self._messages[topic] = UserMessage(topic=topic, level=level, text=text)
