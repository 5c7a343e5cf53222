"""Single-photo ViewModel in pure Python, with no Qt dependency."""

from __future__ import annotations

import logging
from concurrent.futures import CancelledError, Future
from typing import Optional

from photoGallery.application.services.favorite_registry import FavoriteRegistry
from photoGallery.application.services.image_loader import ImageLoadCoordinator
from photoGallery.domain.models import AssetRecord, ImageVariant, TargetSize
from photoGallery.events.bus import EventBus
from photoGallery.events.gallery_events import FavoriteToggledEvent
from photoGallery.gui.viewmodels.base import BaseViewModel
from photoGallery.gui.viewmodels.signal import ObservableProperty

LOAD_FAILED_TEXT = "Failed to load the photo. Please try again."


class DetailViewModel(BaseViewModel):
    """Full-size image and favorite state for one record."""

    def __init__(
        self,
        record: AssetRecord,
        coordinator: ImageLoadCoordinator,
        favorites: FavoriteRegistry,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        super().__init__()
        self._record = record
        self._coordinator = coordinator
        self._favorites = favorites
        self._logger = logging.getLogger(__name__)

        self.image = ObservableProperty(None)
        self.is_loading = ObservableProperty(False)
        self.error_message = ObservableProperty(None)
        self.is_favorite = ObservableProperty(favorites.contains(record.id))

        if event_bus is not None:
            self.subscribe_event(event_bus, FavoriteToggledEvent, self._on_favorite_toggled)

    @property
    def record(self) -> AssetRecord:
        return self._record

    def load_full_image(self, target_size: Optional[TargetSize] = None) -> Future:
        """Fetch the full-size image; ``target_size=None`` means the original."""
        self.is_loading.value = True
        self.error_message.value = None
        future = self._coordinator.ensure_loaded(self._record, ImageVariant.FULLSIZE, target_size)
        future.add_done_callback(self._on_image_loaded)
        return future

    def toggle_favorite(self) -> bool:
        is_favorite = self._favorites.toggle(self._record.id)
        self.is_favorite.value = is_favorite
        return is_favorite

    def _on_image_loaded(self, future: Future) -> None:
        try:
            blob = future.result()
        except CancelledError:
            self.is_loading.value = False
            return
        except Exception as exc:
            self._logger.warning("Full image for %s failed: %s", self._record.id, exc)
            self.error_message.value = LOAD_FAILED_TEXT
        else:
            self.image.value = blob
        self.is_loading.value = False

    def _on_favorite_toggled(self, event: FavoriteToggledEvent) -> None:
        if event.asset_id == self._record.id:
            self.is_favorite.value = event.is_favorite
