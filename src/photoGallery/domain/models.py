"""Domain models shared by the window, the cache and the coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

TargetSize = Tuple[int, int]


class ImageVariant(str, Enum):
    """Image request class; each variant has its own cache partition."""

    THUMBNAIL = "thumbnail"
    FULLSIZE = "fullsize"


class LoadState(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class FetchStatus(str, Enum):
    """Page-fetch state machine of :class:`PagedAssetWindow`."""

    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    ERROR = "error"


@dataclass(frozen=True)
class AssetMetadata:
    width: int
    height: int
    created_at: datetime
    byte_size: Optional[int] = None
    location: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        if self.height <= 0:
            return 1.0
        return self.width / self.height


@dataclass(frozen=True)
class AssetDescriptor:
    """What an asset source knows about one library entry."""

    id: str
    metadata: AssetMetadata


@dataclass
class AssetPage:
    """Result of ``AssetSource.fetch_page``."""

    items: List[AssetDescriptor] = field(default_factory=list)
    offset: int = 0
    total_count: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total_count


@dataclass(eq=False)
class AssetRecord:
    """One entry of the sliding window.

    Records compare by identity: after a reset the same asset id may be
    appended again as a different record, and an in-flight load belonging to
    the old record must not touch the new one.
    """

    id: str
    global_index: int
    metadata: AssetMetadata
    _states: Dict[ImageVariant, LoadState] = field(default_factory=dict, repr=False)

    @property
    def load_state(self) -> LoadState:
        """Thumbnail load state, the one a grid cell renders."""
        return self.state_for(ImageVariant.THUMBNAIL)

    def state_for(self, variant: ImageVariant) -> LoadState:
        return self._states.get(variant, LoadState.PENDING)

    def set_state(self, variant: ImageVariant, state: LoadState) -> bool:
        """Update the state for *variant*; return ``True`` if it changed."""
        if self.state_for(variant) == state:
            return False
        self._states[variant] = state
        return True


@dataclass(frozen=True)
class WindowState:
    """Read-only snapshot of a :class:`PagedAssetWindow`."""

    items: Tuple[AssetRecord, ...] = ()
    base_global_offset: int = 0
    total_count: int = 0
    has_more: bool = True
    status: FetchStatus = FetchStatus.IDLE
    error_message: Optional[str] = None
    generation: int = 0

    @property
    def next_offset(self) -> int:
        return self.base_global_offset + len(self.items)

    def local_index(self, global_index: int) -> Optional[int]:
        """Translate a global position into an index into :attr:`items`."""
        index = global_index - self.base_global_offset
        if 0 <= index < len(self.items):
            return index
        return None
