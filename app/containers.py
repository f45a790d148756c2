from dependency_injector import containers, providers
from core.config.settings import Settings
from services.gateway import AccountApiClient
from services.live_feed import WebSocketFeedTransport
from services.viewer import PositionViewerService


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # Account REST API
    api_client = providers.Singleton(
        AccountApiClient,
        settings=settings.provided.api,
    )

    # Live push feed; shares the API bearer token
    feed_transport = providers.Singleton(
        WebSocketFeedTransport,
        settings=settings.provided.feed,
        auth_token=settings.provided.api.auth_token,
    )

    # Position viewer engine
    viewer_service = providers.Singleton(
        PositionViewerService,
        settings=settings,
        api_client=api_client,
        feed_transport=feed_transport,
    )
