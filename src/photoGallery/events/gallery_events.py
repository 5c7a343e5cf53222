"""Events published by the gallery core.

Consumers (view models, renderers) subscribe to these instead of being
called back by the data objects, so the window and the coordinator never
know which rendering API sits on the other side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .bus import Event


@dataclass(kw_only=True)
class WindowChangedEvent(Event):
    """A page was applied to the window.

    ``appended_ids`` are in window order.  ``evicted_ids`` were removed from
    the front, and ``base_global_offset`` has already been advanced past them,
    so a consumer mapping local indices to global ones only needs the new
    offset.
    """

    generation: int = 0
    appended_ids: list[str] = field(default_factory=list)
    evicted_ids: list[str] = field(default_factory=list)
    base_global_offset: int = 0
    total_count: int = 0
    has_more: bool = False


@dataclass(kw_only=True)
class WindowResetEvent(Event):
    generation: int = 0


@dataclass(kw_only=True)
class PageFetchFailedEvent(Event):
    generation: int = 0
    offset: int = 0
    message: str = ""


@dataclass(kw_only=True)
class LoadStateChangedEvent(Event):
    asset_id: str = ""
    variant: str = ""
    state: str = ""
    global_index: Optional[int] = None


@dataclass(kw_only=True)
class FavoriteToggledEvent(Event):
    asset_id: str = ""
    is_favorite: bool = False


@dataclass(kw_only=True)
class PermissionChangedEvent(Event):
    granted: bool = False
    status: str = ""
