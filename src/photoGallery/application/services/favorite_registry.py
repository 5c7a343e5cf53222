"""In-memory favorite set with asynchronous persistence."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import FrozenSet, List, Optional, Set

from ...errors import FavoritesPersistenceError
from ...events.bus import EventBus
from ...events.gallery_events import FavoriteToggledEvent
from ..interfaces import FavoritesStore

LOGGER = logging.getLogger(__name__)


class FavoriteRegistry:
    """Set of favorite asset ids backed by a :class:`FavoritesStore`.

    Membership changes are visible to ``contains`` as soon as the call that
    made them returns.  Writing them out happens on a single-worker executor
    so saves land in the order the changes were made; a failed save is
    logged and the in-memory state is kept.
    """

    def __init__(
        self,
        store: FavoritesStore,
        *,
        executor: Optional[Executor] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="favorites")
        self._events = event_bus
        self._lock = threading.Lock()
        self._favorites: Set[str] = set()
        self._pending: List[Future] = []
        self._load()

    def _load(self) -> None:
        try:
            stored = self._store.load()
        except FavoritesPersistenceError as exc:
            LOGGER.error("Failed to load favorites: %s", exc)
            return
        with self._lock:
            self._favorites = set(stored)
        LOGGER.debug("Loaded %d favorites", len(stored))

    # -- queries -----------------------------------------------------------

    def contains(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._favorites

    @property
    def favorite_ids(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._favorites)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._favorites)

    # -- mutations ---------------------------------------------------------

    def toggle(self, asset_id: str) -> bool:
        """Flip membership of *asset_id*; return the new membership."""
        with self._lock:
            if asset_id in self._favorites:
                self._favorites.discard(asset_id)
                is_favorite = False
            else:
                self._favorites.add(asset_id)
                is_favorite = True
            snapshot = frozenset(self._favorites)
            self._schedule_save_locked(snapshot)
        self._publish(asset_id, is_favorite)
        return is_favorite

    def add(self, asset_id: str) -> None:
        self._set(asset_id, True)

    def remove(self, asset_id: str) -> None:
        self._set(asset_id, False)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every scheduled save has finished."""
        with self._lock:
            pending, self._pending = self._pending, []
        for future in pending:
            future.exception(timeout=timeout)

    def shutdown(self) -> None:
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # -- internal ----------------------------------------------------------

    def _set(self, asset_id: str, is_favorite: bool) -> None:
        with self._lock:
            if (asset_id in self._favorites) == is_favorite:
                return
            if is_favorite:
                self._favorites.add(asset_id)
            else:
                self._favorites.discard(asset_id)
            self._schedule_save_locked(frozenset(self._favorites))
        self._publish(asset_id, is_favorite)

    def _schedule_save_locked(self, snapshot: FrozenSet[str]) -> None:
        self._pending = [future for future in self._pending if not future.done()]
        try:
            future = self._executor.submit(self._save, snapshot)
        except RuntimeError as exc:
            # Executor already shut down; the change stays in memory only.
            LOGGER.error("Failed to schedule favorites save: %s", exc)
            return
        self._pending.append(future)

    def _save(self, snapshot: FrozenSet[str]) -> None:
        try:
            self._store.save(snapshot)
        except FavoritesPersistenceError as exc:
            LOGGER.error("Failed to save favorites: %s", exc)

    def _publish(self, asset_id: str, is_favorite: bool) -> None:
        if self._events is not None:
            self._events.publish(FavoriteToggledEvent(asset_id=asset_id, is_favorite=is_favorite))
