"""Default configuration values for photoGallery."""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------

# The sliding window must hold at least two pages, otherwise every append
# evicts most of what the consumer is currently looking at.
DEFAULT_PAGE_SIZE: Final[int] = 50
DEFAULT_MAX_WINDOW_SIZE: Final[int] = 200
MIN_WINDOW_PAGES: Final[int] = 2

# ``request_more`` is ignored until this much time has passed since the last
# page fetch completed.
LOAD_MORE_DEBOUNCE_SEC: Final[float] = 0.5

# Bounds accepted by ``AssetSource.fetch_page``.
MIN_PAGE_LIMIT: Final[int] = 1
MAX_PAGE_LIMIT: Final[int] = 1000

# Only the first few records of a freshly appended page are preloaded.
PRELOAD_COUNT: Final[int] = 10

# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------

THUMBNAIL_CACHE_LIMIT: Final[int] = 150
FULL_IMAGE_CACHE_LIMIT: Final[int] = 10
FULL_IMAGE_CACHE_COST_LIMIT: Final[int] = 50 * 1024 * 1024

# ---------------------------------------------------------------------------
# Image rendering
# ---------------------------------------------------------------------------

THUMBNAIL_SIZE: Final[tuple[int, int]] = (200, 200)
MIN_IMAGE_DIMENSION: Final[int] = 1
MAX_IMAGE_DIMENSION: Final[int] = 4096
JPEG_QUALITY: Final[int] = 80

IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp"}
)

FAVORITES_FILE_NAME: Final[str] = "favorites.json"

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------

# A visible item this close to the end of the window triggers ``load_more``.
LOAD_MORE_THRESHOLD: Final[int] = 10
