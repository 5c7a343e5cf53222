from .bus import Event, EventBus, Subscription
from .gallery_events import (
    FavoriteToggledEvent,
    LoadStateChangedEvent,
    PageFetchFailedEvent,
    PermissionChangedEvent,
    WindowChangedEvent,
    WindowResetEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "FavoriteToggledEvent",
    "LoadStateChangedEvent",
    "PageFetchFailedEvent",
    "PermissionChangedEvent",
    "Subscription",
    "WindowChangedEvent",
    "WindowResetEvent",
]
