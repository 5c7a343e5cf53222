"""Persistence backends for favorite asset ids."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import AbstractSet, FrozenSet, Iterable

from ...errors import FavoritesPersistenceError
from ...utils.jsonio import read_json, write_json

LOGGER = logging.getLogger(__name__)


class JsonFavoritesStore:
    """Stores favorites as a sorted JSON list of asset ids."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> FrozenSet[str]:
        if not self._path.exists():
            return frozenset()
        try:
            payload = read_json(self._path)
        except (OSError, ValueError) as exc:
            raise FavoritesPersistenceError(f"Failed to load favorites: {exc}") from exc
        if not isinstance(payload, list):
            raise FavoritesPersistenceError(f"Favorites file {self._path} does not hold a list")
        return frozenset(str(item) for item in payload if isinstance(item, str))

    def save(self, asset_ids: Iterable[str]) -> None:
        try:
            write_json(self._path, sorted(asset_ids))
        except OSError as exc:
            raise FavoritesPersistenceError(f"Failed to save favorites: {exc}") from exc
        LOGGER.debug("Saved favorites to %s", self._path)


class MemoryFavoritesStore:
    """Process-local store, mostly for tests and throwaway sessions."""

    def __init__(self, initial: Iterable[str] = ()) -> None:
        self._ids: FrozenSet[str] = frozenset(initial)
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> AbstractSet[str]:
        with self._lock:
            return self._ids

    def save(self, asset_ids: Iterable[str]) -> None:
        with self._lock:
            self._ids = frozenset(asset_ids)
            self.save_count += 1
