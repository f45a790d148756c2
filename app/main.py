# position_viewer/app/main.py

import asyncio
import signal
import sys

from core.logging import configure_logging, get_logger
from app.containers import AppContainer
from core.config.validator import validate_startup_configuration
from core.trading.portfolio_models import PortfolioView


class ApplicationOrchestrator:
    """Runs the position viewer against the live feed until shutdown."""

    def __init__(self):
        self.container = AppContainer()
        self._shutdown_event = asyncio.Event()

        self.settings = self.container.settings()
        configure_logging(self.settings)
        self.logger = get_logger("position_viewer.main", component="application")
        self.viewer = self.container.viewer_service()
        self.viewer.add_view_listener(self._log_view)
        self._started = False

    async def startup(self):
        """Validate configuration, then load the account profile."""
        self.logger.info("Initializing position viewer",
                         environment=self.settings.environment.value,
                         api=self.settings.api.base_url,
                         feed=self.settings.feed.url)

        config_valid = await validate_startup_configuration(self.settings)
        if not config_valid:
            self.logger.error("Configuration validation failed - cannot proceed with startup")
            sys.exit(1)

        await self.viewer.start()
        self._started = True

        profile_error = self.viewer.message("profile")
        if profile_error is not None:
            # Keep running on the live feed with an empty portfolio
            self.logger.warning("Starting without account profile", reason=profile_error.text)

    async def shutdown(self):
        """Gracefully shutdown application."""
        self.logger.info("Shutting down position viewer...")
        if self._started:
            try:
                await self.viewer.stop()
            except Exception as e:
                self.logger.error(f"Error during viewer shutdown: {e}")
        self.logger.info("Position viewer shutdown complete.")

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        try:
            self.logger.info(f"Received shutdown signal: {signal.strsignal(signum)}")
            self._shutdown_event.set()
        except Exception as e:
            print(f"Error in signal handler: {e}", file=sys.stderr)
            self._shutdown_event.set()

    def _log_view(self, view: PortfolioView) -> None:
        self.logger.info("Portfolio view updated",
                         cash=str(view.cash),
                         realized=str(view.realized),
                         unrealized=str(view.unrealized),
                         market_value=str(view.market_value),
                         total_pnl=str(view.total_pnl),
                         holdings=len(view.holdings))

    def _on_feed_task_done(self, task: asyncio.Task) -> None:
        # The stream reconnects on its own; only an unexpected crash stops the app
        if task.cancelled() or task.exception() is None:
            return
        self.logger.critical("Live feed consumer crashed", error=str(task.exception()))
        self._shutdown_event.set()

    async def run(self):
        """Run the application until shutdown."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            await self.startup()
            self.logger.info("Application is now running. Press Ctrl+C to exit.")
            feed_task = asyncio.create_task(self.viewer.stream())
            feed_task.add_done_callback(self._on_feed_task_done)
            await self._shutdown_event.wait()
            # Cancelling the consumer leaves the subscription context, which unsubscribes
            if not feed_task.done():
                feed_task.cancel()
                try:
                    await feed_task
                except asyncio.CancelledError:
                    pass
        finally:
            await self.shutdown()


async def main():
    """Application entry point"""
    app = ApplicationOrchestrator()
    await app.run()

if __name__ == "__main__":
    asyncio.run(main())
