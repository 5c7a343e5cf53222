"""Pillow-based image fetcher for :class:`DirectoryAssetSource` assets."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from ...config import JPEG_QUALITY
from ...domain.models import ImageVariant, TargetSize
from ...domain.paging import validate_target_size
from ...errors import AssetNotFoundError, ImageFetchFailedError
from ..sources.directory_source import DirectoryAssetSource

LOGGER = logging.getLogger(__name__)


class PillowImageFetcher:
    """Renders thumbnails and full images straight from the files on disk.

    Thumbnails are cropped to fill *target_size* and re-encoded as JPEG.  A
    full image without a target size is the original file's bytes; with a
    size it is scaled to fit inside it.
    """

    def __init__(self, source: DirectoryAssetSource, *, jpeg_quality: int = JPEG_QUALITY) -> None:
        self._source = source
        self._quality = jpeg_quality

    def fetch(self, asset_id: str, variant: ImageVariant, target_size: Optional[TargetSize]) -> bytes:
        validate_target_size(target_size)
        path = self._source.path_for(asset_id)
        if path is None or not path.is_file():
            raise AssetNotFoundError(f"Asset not found: {asset_id}")

        try:
            if variant is ImageVariant.THUMBNAIL:
                return self._render(path, target_size, fill=True)
            if target_size is None:
                return path.read_bytes()
            return self._render(path, target_size, fill=False)
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise ImageFetchFailedError(f"Image fetch failed: {exc}") from exc

    def _render(self, path: Path, size: Optional[TargetSize], *, fill: bool) -> bytes:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            if size is not None:
                if fill:
                    img = ImageOps.fit(img, size, Image.Resampling.LANCZOS)
                else:
                    img.thumbnail(size, Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=self._quality)
        LOGGER.debug("Rendered %s at %s (%d bytes)", path.name, size, buffer.tell())
        return buffer.getvalue()
