from .service import PositionViewerService

__all__ = ["PositionViewerService"]
