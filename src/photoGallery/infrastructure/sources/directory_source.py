"""Asset source backed by image files in a directory tree."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dateutil.tz import tzlocal
from PIL import Image, UnidentifiedImageError

from ...config import IMAGE_EXTENSIONS
from ...domain.models import AssetDescriptor, AssetMetadata, AssetPage
from ...domain.paging import validate_page_request

LOGGER = logging.getLogger(__name__)

_EXIF_IFD = 0x8769
_GPS_IFD = 0x8825
_TAG_DATETIME = 306
_TAG_DATETIME_ORIGINAL = 36867
_TAG_OFFSET_TIME_ORIGINAL = 36881
_EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


@dataclass(frozen=True)
class _Entry:
    descriptor: AssetDescriptor
    path: Path


def _to_degrees(value: Any) -> Optional[float]:
    try:
        degrees, minutes, seconds = (float(part) for part in value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return degrees + minutes / 60.0 + seconds / 3600.0


def _parse_location(gps: Dict[int, Any]) -> Optional[str]:
    lat = _to_degrees(gps.get(2))
    lon = _to_degrees(gps.get(4))
    if lat is None or lon is None:
        return None
    if gps.get(1) == "S":
        lat = -lat
    if gps.get(3) == "W":
        lon = -lon
    return f"{lat:.6f}, {lon:.6f}"


def _parse_capture_time(raw: Any, offset: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        captured = datetime.strptime(raw.strip(), _EXIF_DATETIME_FORMAT)
    except ValueError:
        return None
    if isinstance(offset, str) and len(offset.strip()) == 6:
        try:
            return datetime.strptime(f"{raw.strip()}{offset.strip()}", f"{_EXIF_DATETIME_FORMAT}%z")
        except ValueError:
            pass
    # EXIF times without an offset are wall-clock times of the camera.
    return captured.replace(tzinfo=tzlocal())


def read_metadata(path: Path) -> Optional[AssetMetadata]:
    """Read dimensions, capture time, size and location; ``None`` if not an image."""

    try:
        stat = path.stat()
        with Image.open(path) as img:
            width, height = img.size
            exif = img.getexif()
            exif_ifd = exif.get_ifd(_EXIF_IFD)
            gps_ifd = exif.get_ifd(_GPS_IFD)
    except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as exc:
        LOGGER.warning("Skipping unreadable image %s: %s", path, exc)
        return None

    created_at = _parse_capture_time(
        exif_ifd.get(_TAG_DATETIME_ORIGINAL) or exif.get(_TAG_DATETIME),
        exif_ifd.get(_TAG_OFFSET_TIME_ORIGINAL),
    )
    if created_at is None:
        created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

    return AssetMetadata(
        width=width,
        height=height,
        created_at=created_at,
        byte_size=stat.st_size,
        location=_parse_location(gps_ifd) if gps_ifd else None,
    )


class DirectoryAssetSource:
    """Pages through the images under *root*, newest first.

    The listing is built once and kept until :meth:`refresh`, so offsets stay
    stable while a window pages through it even if files change on disk.
    Asset ids are POSIX paths relative to *root*.
    """

    def __init__(self, root: Path, *, recursive: bool = True) -> None:
        self._root = root
        self._recursive = recursive
        self._entries: Optional[List[_Entry]] = None
        self._by_id: Dict[str, Path] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def refresh(self) -> None:
        """Forget the cached listing; the next call rescans the directory."""
        with self._lock:
            self._entries = None
            self._by_id = {}

    def total_count(self) -> int:
        with self._lock:
            return len(self._listing_locked())

    def fetch_page(self, offset: int, limit: int) -> AssetPage:
        with self._lock:
            entries = self._listing_locked()
            validate_page_request(offset, limit, len(entries))
            return AssetPage(
                items=[entry.descriptor for entry in entries[offset : offset + limit]],
                offset=offset,
                total_count=len(entries),
            )

    def path_for(self, asset_id: str) -> Optional[Path]:
        with self._lock:
            self._listing_locked()
            return self._by_id.get(asset_id)

    def _listing_locked(self) -> List[_Entry]:
        if self._entries is None:
            self._entries = self._scan()
            self._by_id = {entry.descriptor.id: entry.path for entry in self._entries}
            LOGGER.info("Indexed %d images under %s", len(self._entries), self._root)
        return self._entries

    def _scan(self) -> List[_Entry]:
        if not self._root.is_dir():
            LOGGER.warning("Library root %s is not a directory", self._root)
            return []
        pattern = "**/*" if self._recursive else "*"
        entries: List[_Entry] = []
        for path in self._root.glob(pattern):
            if not path.is_file() or path.suffix.lower() not in IMAGE_EXTENSIONS:
                continue
            if any(part.startswith(".") for part in path.relative_to(self._root).parts):
                continue
            metadata = read_metadata(path)
            if metadata is None:
                continue
            asset_id = path.relative_to(self._root).as_posix()
            entries.append(_Entry(AssetDescriptor(id=asset_id, metadata=metadata), path))
        entries.sort(key=lambda entry: (-entry.descriptor.metadata.created_at.timestamp(), entry.descriptor.id))
        return entries
