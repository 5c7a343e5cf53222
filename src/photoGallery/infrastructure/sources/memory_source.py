"""Asset source over an in-memory list of descriptors."""

from __future__ import annotations

import threading
from typing import Iterable, List

from ...domain.models import AssetDescriptor, AssetPage
from ...domain.paging import validate_page_request


class InMemoryAssetSource:
    """Serves pages from a fixed, already ordered list of descriptors."""

    def __init__(self, descriptors: Iterable[AssetDescriptor] = ()) -> None:
        self._descriptors: List[AssetDescriptor] = list(descriptors)
        self._lock = threading.Lock()
        self.fetch_count = 0

    def total_count(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def replace(self, descriptors: Iterable[AssetDescriptor]) -> None:
        """Swap the whole collection, as a library change would."""
        with self._lock:
            self._descriptors = list(descriptors)

    def fetch_page(self, offset: int, limit: int) -> AssetPage:
        with self._lock:
            total = len(self._descriptors)
            validate_page_request(offset, limit, total)
            self.fetch_count += 1
            return AssetPage(
                items=self._descriptors[offset : offset + limit],
                offset=offset,
                total_count=total,
            )
