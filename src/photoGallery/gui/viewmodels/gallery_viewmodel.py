"""Gallery grid ViewModel in pure Python, with no Qt dependency.

Mirrors the state of a :class:`PagedAssetWindow` into observable properties
and turns window events into thumbnail preloads.  A renderer binds to the
properties and calls :meth:`GalleryViewModel.item_visible` as cells scroll
into view.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Optional

from photoGallery.application.services.asset_window import PagedAssetWindow
from photoGallery.application.services.dispatch import Dispatcher
from photoGallery.application.services.favorite_registry import FavoriteRegistry
from photoGallery.application.services.image_loader import ImageLoadCoordinator
from photoGallery.application.services.permissions import AuthorizationStatus, PermissionService
from photoGallery.config import LOAD_MORE_THRESHOLD
from photoGallery.domain.models import FetchStatus, ImageVariant, LoadState, WindowState
from photoGallery.events.bus import EventBus
from photoGallery.events.gallery_events import (
    FavoriteToggledEvent,
    LoadStateChangedEvent,
    PageFetchFailedEvent,
    PermissionChangedEvent,
    WindowChangedEvent,
    WindowResetEvent,
)
from photoGallery.gui.viewmodels.base import BaseViewModel
from photoGallery.gui.viewmodels.detail_viewmodel import DetailViewModel
from photoGallery.gui.viewmodels.signal import ObservableProperty, Signal

PERMISSION_REQUIRED_TEXT = "Photo access is required"
LOAD_FAILED_TEXT = "Failed to load photos"
LOADING_TEXT = "Loading photos..."


class GalleryViewModel(BaseViewModel):
    """Grid state for one window.

    The window is the source of truth; every property here is re-derived
    from :meth:`PagedAssetWindow.snapshot` whenever the window reports a
    change, so a missed event never leaves the view model out of step.
    """

    def __init__(
        self,
        window: PagedAssetWindow,
        coordinator: ImageLoadCoordinator,
        favorites: FavoriteRegistry,
        event_bus: EventBus,
        permissions: Optional[PermissionService] = None,
        load_more_threshold: int = LOAD_MORE_THRESHOLD,
        dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        super().__init__()
        self._window = window
        self._coordinator = coordinator
        self._favorites = favorites
        self._event_bus = event_bus
        self._permissions = permissions
        self._load_more_threshold = load_more_threshold
        self._logger = logging.getLogger(__name__)

        # Observable properties
        self.items = ObservableProperty(())
        self.base_global_offset = ObservableProperty(0)
        self.total_count = ObservableProperty(0)
        self.has_more = ObservableProperty(True)
        self.loading = ObservableProperty(False)
        self.error_message = ObservableProperty(None)
        self.permission_denied = ObservableProperty(False)
        self.loading_status = ObservableProperty("")

        # Signals
        self.item_changed = Signal()  # emits (asset_id, global_index)
        self.favorite_changed = Signal()  # emits (asset_id, is_favorite)

        # Event subscriptions; with a dispatcher they run on the consumer thread
        handlers = (
            (WindowChangedEvent, self._on_window_changed),
            (WindowResetEvent, self._on_window_reset),
            (PageFetchFailedEvent, self._on_page_failed),
            (LoadStateChangedEvent, self._on_load_state_changed),
            (FavoriteToggledEvent, self._on_favorite_toggled),
            (PermissionChangedEvent, self._on_permission_changed),
        )
        for event_type, handler in handlers:
            self.subscribe_event(event_bus, event_type, handler, dispatcher=dispatcher)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def check_permission(self) -> bool:
        """Resolve photo access and load the first page when it is granted."""
        if self._permissions is None:
            self.permission_denied.value = False
            self.load_initial()
            return True

        status = self._permissions.authorization_status()
        if status is AuthorizationStatus.NOT_DETERMINED:
            status = self._permissions.request_access()
        if not status.granted:
            self._logger.info("Photo access not granted (%s)", status.value)
            self.permission_denied.value = True
            self._sync()
            return False
        self.permission_denied.value = False
        self.load_initial()
        return True

    def request_permission(self) -> bool:
        return self.check_permission()

    def load_initial(self) -> Optional[Future]:
        """Start over from the first page."""
        future = self._window.reload()
        self._sync()
        return future

    def load_more(self) -> Optional[Future]:
        future = self._window.request_more()
        if future is not None:
            self._sync()
        return future

    def retry(self) -> Optional[Future]:
        future = self._window.retry()
        if future is not None:
            self._sync()
        return future

    def item_visible(self, global_index: int) -> Optional[Future]:
        """A cell at *global_index* came into view.

        Starts its thumbnail load and asks for the next page when the cell
        is within ``load_more_threshold`` of the end of the window.
        """
        record = self._window.record_at(global_index)
        if record is None:
            return None
        future = self._coordinator.ensure_loaded(record, ImageVariant.THUMBNAIL)
        snapshot = self._window.snapshot()
        if snapshot.next_offset - global_index <= self._load_more_threshold:
            self.load_more()
        return future

    # ------------------------------------------------------------------
    # Per-item queries
    # ------------------------------------------------------------------

    def load_state(self, asset_id: str) -> Optional[LoadState]:
        record = self._window.find(asset_id)
        return record.load_state if record is not None else None

    def is_photo_loading(self, asset_id: str) -> bool:
        return self.load_state(asset_id) is LoadState.LOADING

    def has_image_error(self, asset_id: str) -> bool:
        return self.load_state(asset_id) is LoadState.FAILED

    def thumbnail(self, asset_id: str) -> Optional[bytes]:
        """Cached thumbnail bytes for *asset_id*, if any."""
        return self._coordinator.cached(asset_id, ImageVariant.THUMBNAIL)

    def is_favorite(self, asset_id: str) -> bool:
        return self._favorites.contains(asset_id)

    def toggle_favorite(self, asset_id: str) -> bool:
        return self._favorites.toggle(asset_id)

    def open_detail(self, asset_id: str) -> Optional[DetailViewModel]:
        """Build the detail ViewModel for a record currently in the window."""
        record = self._window.find(asset_id)
        if record is None:
            return None
        return DetailViewModel(record, self._coordinator, self._favorites, self._event_bus)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_window_changed(self, event: WindowChangedEvent) -> None:
        snapshot = self._sync()
        if event.generation != snapshot.generation:
            return
        appended = set(event.appended_ids)
        records = [record for record in snapshot.items if record.id in appended]
        self._coordinator.preload(records)

    def _on_window_reset(self, event: WindowResetEvent) -> None:
        self._sync()

    def _on_page_failed(self, event: PageFetchFailedEvent) -> None:
        self._logger.warning("Page at offset %d failed: %s", event.offset, event.message)
        self._sync()

    def _on_load_state_changed(self, event: LoadStateChangedEvent) -> None:
        self.item_changed.emit(event.asset_id, event.global_index)

    def _on_favorite_toggled(self, event: FavoriteToggledEvent) -> None:
        self.favorite_changed.emit(event.asset_id, event.is_favorite)

    def _on_permission_changed(self, event: PermissionChangedEvent) -> None:
        self.permission_denied.value = not event.granted
        self._sync()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _sync(self) -> WindowState:
        snapshot = self._window.snapshot()
        self.items.value = snapshot.items
        self.base_global_offset.value = snapshot.base_global_offset
        self.total_count.value = snapshot.total_count
        self.has_more.value = snapshot.has_more
        self.loading.value = snapshot.status is FetchStatus.FETCHING_PAGE
        self.error_message.value = snapshot.error_message
        self.loading_status.value = self._status_text(snapshot)
        return snapshot

    def _status_text(self, snapshot: WindowState) -> str:
        if self.permission_denied.value:
            return PERMISSION_REQUIRED_TEXT
        if snapshot.status is FetchStatus.ERROR:
            return LOAD_FAILED_TEXT
        if snapshot.status is FetchStatus.FETCHING_PAGE and not snapshot.items:
            return LOADING_TEXT
        return f"Loaded {snapshot.next_offset} of {snapshot.total_count} photos"
