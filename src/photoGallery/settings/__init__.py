"""User settings for the gallery."""

from .manager import GallerySettings, SettingsManager, default_settings_path

__all__ = ["GallerySettings", "SettingsManager", "default_settings_path"]
