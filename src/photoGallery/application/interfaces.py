"""Protocols for the collaborators the gallery core talks to."""

from __future__ import annotations

from typing import AbstractSet, Iterable, Optional, Protocol

from ..domain.models import AssetPage, ImageVariant, TargetSize


class AssetSource(Protocol):
    """Paged provider of asset descriptors in a stable creation-time order."""

    def fetch_page(self, offset: int, limit: int) -> AssetPage:
        """Return up to *limit* descriptors starting at *offset*.

        Raises :class:`~photoGallery.errors.InvalidParametersError` before
        any I/O when ``offset < 0``, ``limit`` is outside ``[1, 1000]`` or
        ``offset`` lies past the end of a non-empty collection.
        """
        ...

    def total_count(self) -> int: ...


class ImageFetcher(Protocol):
    """Produces encoded image bytes for one asset."""

    def fetch(self, asset_id: str, variant: ImageVariant, target_size: Optional[TargetSize]) -> bytes:
        """Raise ``AssetNotFoundError`` or ``ImageFetchFailedError`` on failure."""
        ...


class FavoritesStore(Protocol):
    """Persistence backend for :class:`FavoriteRegistry`."""

    def load(self) -> AbstractSet[str]: ...

    def save(self, asset_ids: Iterable[str]) -> None: ...
