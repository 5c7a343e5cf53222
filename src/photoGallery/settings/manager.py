"""Settings file management with validation and change notifications."""

from __future__ import annotations

import logging
import os
import sys
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jsonschema import ValidationError

from ..errors import SettingsLoadError, SettingsValidationError
from ..gui.viewmodels.signal import Signal
from ..utils.jsonio import read_json, write_json
from .schema import DEFAULT_SETTINGS, merge_with_defaults

LOGGER = logging.getLogger(__name__)


def default_settings_path() -> Path:
    """Return the default settings.json location for the current platform."""

    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "photoGallery" / "settings.json"
        return Path.home() / "AppData" / "Roaming" / "photoGallery" / "settings.json"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "photoGallery" / "settings.json"
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "photoGallery" / "settings.json"
    return Path.home() / ".config" / "photoGallery" / "settings.json"


@dataclass(frozen=True)
class GallerySettings:
    """Typed view of the values the gallery is built from."""

    page_size: int
    max_window_size: int
    debounce_sec: float
    preload_count: int
    thumbnail_capacity: int
    full_image_capacity: int
    full_image_cost_limit: Optional[int]
    thumbnail_size: tuple[int, int]
    library_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GallerySettings":
        paging = data["paging"]
        cache = data["cache"]
        thumbnail = data["thumbnail"]
        library_path = data.get("library_path")
        return cls(
            page_size=paging["page_size"],
            max_window_size=paging["max_window_size"],
            debounce_sec=paging["debounce_ms"] / 1000.0,
            preload_count=data["preload"]["count"],
            thumbnail_capacity=cache["thumbnail_capacity"],
            full_image_capacity=cache["full_image_capacity"],
            full_image_cost_limit=cache.get("full_image_cost_limit"),
            thumbnail_size=(thumbnail["width"], thumbnail["height"]),
            library_path=Path(library_path) if library_path else None,
        )

    @classmethod
    def defaults(cls) -> "GallerySettings":
        return cls.from_dict(DEFAULT_SETTINGS)


class SettingsManager:
    """Load, validate and persist user settings for the gallery.

    ``settings_changed`` emits ``(key, value)`` after every successful
    :meth:`set`.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data: dict[str, Any] = deepcopy(DEFAULT_SETTINGS)
        self.settings_changed = Signal()

    @property
    def path(self) -> Path:
        return self._path or default_settings_path()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Load the settings JSON from disk, creating defaults if missing."""

        path = self.path
        self._path = path
        if path.exists():
            try:
                payload = read_json(path)
            except (OSError, ValueError) as exc:
                raise SettingsLoadError(str(exc)) from exc
            if not isinstance(payload, dict):
                raise SettingsLoadError(f"{path} does not contain a JSON object")
        else:
            payload = None
        try:
            self._data = merge_with_defaults(payload)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc
        self._write()
        LOGGER.debug("Loaded settings from %s", path)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return the value for *key*, supporting dotted access for nested keys."""

        target = self._data
        parts = key.split(".")
        for index, part in enumerate(parts):
            if not isinstance(target, dict) or part not in target:
                return default
            value = target[part]
            if index == len(parts) - 1:
                return value
            target = value
        return default

    def set(self, key: str, value: Any) -> None:
        """Update *key* with *value* and persist the change.

        An invalid value raises :class:`SettingsValidationError` and leaves
        the current settings untouched.
        """

        if isinstance(value, Path):
            value = str(value)

        candidate = deepcopy(self._data)
        parts = key.split(".")
        target: dict[str, Any] = candidate
        for part in parts[:-1]:
            branch = target.get(part)
            if not isinstance(branch, dict):
                branch = {}
                target[part] = branch
            target = branch
        target[parts[-1]] = value
        try:
            self._data = merge_with_defaults(candidate)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc
        self._write()
        self.settings_changed.emit(key, value)

    def gallery_settings(self) -> GallerySettings:
        return GallerySettings.from_dict(self._data)

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    def _write(self) -> None:
        path = self.path
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        write_json(path, self._data)


__all__ = ["GallerySettings", "SettingsManager", "default_settings_path"]
