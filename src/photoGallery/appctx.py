"""Composition root wiring the gallery components together."""

from __future__ import annotations

import time
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .application.interfaces import AssetSource, FavoritesStore, ImageFetcher
from .application.services.asset_window import PagedAssetWindow
from .application.services.dispatch import Dispatcher, immediate_dispatcher
from .application.services.favorite_registry import FavoriteRegistry
from .application.services.image_loader import ImageLoadCoordinator
from .application.services.permissions import PermissionService, StaticPermissionService
from .config import FAVORITES_FILE_NAME
from .errors.handler import ErrorHandler
from .events.bus import EventBus
from .gui.viewmodels.gallery_viewmodel import GalleryViewModel
from .infrastructure.services.cache_stats import CacheStatsCollector
from .infrastructure.services.content_cache import ContentCache
from .infrastructure.services.image_fetcher import PillowImageFetcher
from .infrastructure.sources.directory_source import DirectoryAssetSource
from .infrastructure.stores.favorites_store import JsonFavoritesStore, MemoryFavoritesStore
from .settings.manager import GallerySettings
from .utils.logging import get_logger


@dataclass
class GalleryContext:
    """Everything one gallery screen needs, built by :func:`build_gallery`."""

    settings: GallerySettings
    event_bus: EventBus
    error_handler: ErrorHandler
    stats: CacheStatsCollector
    cache: ContentCache
    permissions: PermissionService
    window: PagedAssetWindow
    coordinator: ImageLoadCoordinator
    favorites: FavoriteRegistry
    viewmodel: GalleryViewModel

    def shutdown(self) -> None:
        """Dispose the view model and stop every executor the context owns."""

        self.viewmodel.dispose()
        self.window.shutdown()
        self.coordinator.shutdown()
        self.favorites.shutdown()
        self.event_bus.shutdown()


def build_gallery(
    source: AssetSource,
    fetcher: ImageFetcher,
    *,
    settings: Optional[GallerySettings] = None,
    favorites_store: Optional[FavoritesStore] = None,
    permissions: Optional[PermissionService] = None,
    dispatcher: Dispatcher = immediate_dispatcher,
    page_executor: Optional[Executor] = None,
    image_executor: Optional[Executor] = None,
    favorites_executor: Optional[Executor] = None,
    clock: Callable[[], float] = time.monotonic,
    event_bus: Optional[EventBus] = None,
) -> GalleryContext:
    """Wire a window, a coordinator and a favorite registry around *source*.

    Executors left as ``None`` are created by the component that needs
    them and shut down with :meth:`GalleryContext.shutdown`.
    """

    settings = settings or GallerySettings.defaults()
    logger = get_logger()
    bus = event_bus or EventBus(logger)
    errors = ErrorHandler(logger, bus)
    stats = CacheStatsCollector()
    cache = ContentCache(
        settings.thumbnail_capacity,
        settings.full_image_capacity,
        full_image_cost_limit=settings.full_image_cost_limit,
        stats=stats,
    )
    permissions = permissions or StaticPermissionService()

    window = PagedAssetWindow(
        source,
        page_size=settings.page_size,
        max_window_size=settings.max_window_size,
        debounce_sec=settings.debounce_sec,
        executor=page_executor,
        dispatcher=dispatcher,
        permission_gate=lambda: permissions.authorization_status().granted,
        clock=clock,
        event_bus=bus,
        error_handler=errors,
    )
    coordinator = ImageLoadCoordinator(
        cache,
        fetcher,
        executor=image_executor,
        dispatcher=dispatcher,
        is_live=window.contains,
        thumbnail_size=settings.thumbnail_size,
        preload_count=settings.preload_count,
        event_bus=bus,
        error_handler=errors,
    )
    favorites = FavoriteRegistry(
        favorites_store if favorites_store is not None else MemoryFavoritesStore(),
        executor=favorites_executor,
        event_bus=bus,
    )
    viewmodel = GalleryViewModel(window, coordinator, favorites, bus, permissions)

    return GalleryContext(
        settings=settings,
        event_bus=bus,
        error_handler=errors,
        stats=stats,
        cache=cache,
        permissions=permissions,
        window=window,
        coordinator=coordinator,
        favorites=favorites,
        viewmodel=viewmodel,
    )


def build_directory_gallery(
    root: Path,
    *,
    favorites_path: Optional[Path] = None,
    recursive: bool = True,
    **kwargs,
) -> GalleryContext:
    """Build a gallery over the image files below *root*.

    Favorites persist to ``root / favorites.json`` unless *favorites_path*
    says otherwise.
    """

    source = DirectoryAssetSource(root, recursive=recursive)
    fetcher = PillowImageFetcher(source)
    store = JsonFavoritesStore(favorites_path or root / FAVORITES_FILE_NAME)
    return build_gallery(source, fetcher, favorites_store=store, **kwargs)


__all__ = ["GalleryContext", "build_directory_gallery", "build_gallery"]
