"""Custom exception hierarchy for photoGallery."""

from __future__ import annotations


class GalleryError(Exception):
    """Base class for all custom errors raised by photoGallery."""


# --- 3-layer hierarchy ---

class DomainError(GalleryError):
    """Base class for domain-level errors."""


class InfrastructureError(GalleryError):
    """Base class for infrastructure-level errors."""


class ApplicationError(GalleryError):
    """Base class for application-level errors."""


# --- Domain errors ---

class InvalidParametersError(DomainError):
    """Raised when a page or image request carries out-of-range arguments."""


class AssetNotFoundError(DomainError):
    """Raised when the requested asset cannot be located."""


# --- Infrastructure errors ---

class ImageFetchError(InfrastructureError):
    """Base class for per-item image load failures."""


class ImageFetchFailedError(ImageFetchError):
    """Raised when an image cannot be decoded or transported."""


class FavoritesPersistenceError(InfrastructureError):
    """Raised when the favorites store cannot be read or written."""


# --- Application errors ---

class PermissionDeniedError(ApplicationError):
    """Raised when photo library access has not been granted."""


class PageFetchError(ApplicationError):
    """Raised when a page of assets could not be loaded into the window."""


# --- Settings ---

class SettingsError(GalleryError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
