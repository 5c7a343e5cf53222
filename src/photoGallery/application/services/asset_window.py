"""Sliding, memory-bounded window over a paged asset source.

The window appends pages at the back and drops records from the front once
it holds more than ``max_window_size`` of them, advancing
``base_global_offset`` by the same amount.  ``items[i].global_index`` is
therefore always ``base_global_offset + i``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, List, Optional, Tuple

from ...config import (
    DEFAULT_MAX_WINDOW_SIZE,
    DEFAULT_PAGE_SIZE,
    LOAD_MORE_DEBOUNCE_SEC,
    MAX_PAGE_LIMIT,
    MIN_PAGE_LIMIT,
    MIN_WINDOW_PAGES,
)
from ...domain.models import AssetPage, AssetRecord, FetchStatus, WindowState
from ...errors import GalleryError, PageFetchError
from ...errors.handler import ErrorHandler, ErrorSeverity
from ...events.bus import Event, EventBus
from ...events.gallery_events import (
    PageFetchFailedEvent,
    PermissionChangedEvent,
    WindowChangedEvent,
    WindowResetEvent,
)
from ..interfaces import AssetSource
from .dispatch import Dispatcher, immediate_dispatcher

LOGGER = logging.getLogger(__name__)


class PagedAssetWindow:
    """Stateful paginated window of :class:`AssetRecord` objects.

    Fetches run on *executor*; their completions are handed to *dispatcher*
    and applied under the window lock.  Every fetch is tagged with the
    generation it was issued in, and :meth:`reset` bumps the generation, so
    a completion that arrives after a reset is dropped.
    """

    def __init__(
        self,
        source: AssetSource,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_window_size: int = DEFAULT_MAX_WINDOW_SIZE,
        debounce_sec: float = LOAD_MORE_DEBOUNCE_SEC,
        executor: Optional[Executor] = None,
        dispatcher: Dispatcher = immediate_dispatcher,
        permission_gate: Optional[Callable[[], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
        event_bus: Optional[EventBus] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        if not MIN_PAGE_LIMIT <= page_size <= MAX_PAGE_LIMIT:
            raise ValueError(f"page_size must be between {MIN_PAGE_LIMIT} and {MAX_PAGE_LIMIT}")
        if max_window_size < MIN_WINDOW_PAGES * page_size:
            raise ValueError(
                f"max_window_size ({max_window_size}) must be at least "
                f"{MIN_WINDOW_PAGES}x page_size ({page_size})"
            )

        self._source = source
        self._page_size = page_size
        self._max_window_size = max_window_size
        self._debounce_sec = debounce_sec
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="page-fetch")
        self._dispatcher = dispatcher
        self._permission_gate = permission_gate
        self._clock = clock
        self._events = event_bus
        self._errors = error_handler
        self._lock = threading.RLock()

        # State
        self._items: List[AssetRecord] = []
        self._base_global_offset = 0
        self._total_count = 0
        self._has_more = True
        self._status = FetchStatus.IDLE
        self._error_message: Optional[str] = None
        self._generation = 0
        self._last_fetch_at: Optional[float] = None
        self._pending: Optional[Future] = None
        self._access_granted: Optional[bool] = None

    # -- properties --------------------------------------------------------

    @property
    def items(self) -> Tuple[AssetRecord, ...]:
        with self._lock:
            return tuple(self._items)

    @property
    def base_global_offset(self) -> int:
        with self._lock:
            return self._base_global_offset

    @property
    def total_count(self) -> int:
        with self._lock:
            return self._total_count

    @property
    def has_more(self) -> bool:
        with self._lock:
            return self._has_more

    @property
    def status(self) -> FetchStatus:
        with self._lock:
            return self._status

    @property
    def error_message(self) -> Optional[str]:
        with self._lock:
            return self._error_message

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def access_granted(self) -> Optional[bool]:
        """Result of the last permission check; ``None`` before the first one."""
        with self._lock:
            return self._access_granted

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def max_window_size(self) -> int:
        return self._max_window_size

    def snapshot(self) -> WindowState:
        with self._lock:
            return self._snapshot_locked()

    # -- lookups -----------------------------------------------------------

    def contains(self, record: AssetRecord) -> bool:
        """``True`` while *record* itself (not just its id) is in the window."""
        with self._lock:
            index = record.global_index - self._base_global_offset
            return 0 <= index < len(self._items) and self._items[index] is record

    def record_at(self, global_index: int) -> Optional[AssetRecord]:
        with self._lock:
            index = global_index - self._base_global_offset
            if 0 <= index < len(self._items):
                return self._items[index]
            return None

    def find(self, asset_id: str) -> Optional[AssetRecord]:
        with self._lock:
            for record in self._items:
                if record.id == asset_id:
                    return record
            return None

    # -- public API --------------------------------------------------------

    def can_request_more(self) -> bool:
        """Eligibility check without side effects (permission aside)."""
        with self._lock:
            return self._eligible_locked(respect_debounce=True)

    def request_more(self) -> Optional[Future]:
        """Fetch the next page if the window is eligible.

        Returns a future that resolves to the :class:`WindowState` once the
        page (or the failure) has been applied, or ``None`` when the call
        was a no-op.  The future is cancelled if a :meth:`reset` makes the
        fetch stale.
        """
        return self._request(respect_debounce=True)

    def retry(self) -> Optional[Future]:
        """Re-attempt the next page immediately, ignoring the debounce."""
        return self._request(respect_debounce=False)

    def reset(self) -> None:
        """Drop every record and start over at offset zero."""
        with self._lock:
            self._generation += 1
            self._items.clear()
            self._base_global_offset = 0
            self._total_count = 0
            self._has_more = True
            self._status = FetchStatus.IDLE
            self._error_message = None
            self._last_fetch_at = None
            pending, self._pending = self._pending, None
            generation = self._generation
        if pending is not None:
            pending.cancel()
        LOGGER.debug("Window reset to generation %d", generation)
        self._publish(WindowResetEvent(generation=generation))

    def reload(self) -> Optional[Future]:
        """Reset and immediately fetch the first page."""
        self.reset()
        return self.request_more()

    def shutdown(self) -> None:
        """Shut down the internal executor if this window created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # -- internal ----------------------------------------------------------

    def _request(self, *, respect_debounce: bool) -> Optional[Future]:
        permission_event: Optional[Event] = None
        with self._lock:
            if not self._eligible_locked(respect_debounce=respect_debounce):
                return None
            if self._permission_gate is not None:
                granted = bool(self._permission_gate())
                if granted != self._access_granted:
                    self._access_granted = granted
                    permission_event = PermissionChangedEvent(granted=granted)
                if not granted:
                    LOGGER.info("Photo library access not granted; skipping page fetch")
            else:
                granted = True
            if granted:
                self._status = FetchStatus.FETCHING_PAGE
                offset = self._base_global_offset + len(self._items)
                generation = self._generation
                applied: Future = Future()
                self._pending = applied

        if permission_event is not None:
            self._publish(permission_event)
        if not granted:
            return None

        LOGGER.debug("Fetching page offset=%d limit=%d (generation %d)", offset, self._page_size, generation)
        try:
            fetch = self._executor.submit(self._source.fetch_page, offset, self._page_size)
        except RuntimeError as exc:
            fetch = Future()
            fetch.set_exception(exc)
        fetch.add_done_callback(
            lambda done: self._dispatcher(partial(self._on_page_done, generation, offset, done, applied))
        )
        return applied

    def _eligible_locked(self, *, respect_debounce: bool) -> bool:
        if self._status is FetchStatus.FETCHING_PAGE:
            return False
        if not self._has_more:
            return False
        if respect_debounce and self._last_fetch_at is not None:
            if self._clock() - self._last_fetch_at < self._debounce_sec:
                return False
        return True

    def _on_page_done(self, generation: int, offset: int, fetch: Future, applied: Future) -> None:
        event: Optional[Event] = None
        failure: Optional[BaseException] = None
        with self._lock:
            if generation != self._generation:
                LOGGER.debug("Discarding page offset=%d from stale generation %d", offset, generation)
                stale = True
            else:
                stale = False
                self._pending = None
                self._last_fetch_at = self._clock()
                try:
                    page = fetch.result()
                except Exception as exc:
                    failure = exc
                    self._status = FetchStatus.ERROR
                    self._error_message = str(exc) or exc.__class__.__name__
                    event = PageFetchFailedEvent(
                        generation=generation, offset=offset, message=self._error_message
                    )
                else:
                    event = self._apply_page_locked(page, offset)
                snapshot = self._snapshot_locked()

        if stale:
            applied.cancel()
            return
        if failure is not None:
            self._report_failure(failure, offset, generation)
        if event is not None:
            self._publish(event)
        if not applied.cancelled():
            applied.set_result(snapshot)

    def _apply_page_locked(self, page: AssetPage, offset: int) -> WindowChangedEvent:
        start = self._base_global_offset + len(self._items)
        if offset != start:
            # Only one fetch is in flight per generation, so this means the
            # source answered for a different offset than it was asked.
            LOGGER.warning("Page offset %d does not match window end %d", offset, start)
        descriptors = page.items[: self._page_size]
        appended = [
            AssetRecord(id=item.id, global_index=start + i, metadata=item.metadata)
            for i, item in enumerate(descriptors)
        ]
        self._items.extend(appended)

        evicted: List[AssetRecord] = []
        overflow = len(self._items) - self._max_window_size
        if overflow > 0:
            evicted = self._items[:overflow]
            del self._items[:overflow]
            self._base_global_offset += overflow

        self._total_count = page.total_count
        # An empty page ends paging even if the source still reports a
        # larger total, otherwise the window would poll it forever.
        self._has_more = bool(appended) and (
            self._base_global_offset + len(self._items) < self._total_count
        )
        self._status = FetchStatus.IDLE
        self._error_message = None
        LOGGER.debug(
            "Applied %d records, evicted %d; base=%d total=%d",
            len(appended),
            len(evicted),
            self._base_global_offset,
            self._total_count,
        )
        return WindowChangedEvent(
            generation=self._generation,
            appended_ids=[record.id for record in appended],
            evicted_ids=[record.id for record in evicted],
            base_global_offset=self._base_global_offset,
            total_count=self._total_count,
            has_more=self._has_more,
        )

    def _report_failure(self, exc: BaseException, offset: int, generation: int) -> None:
        if isinstance(exc, GalleryError):
            LOGGER.warning("Failed to load page at offset %d: %s", offset, exc)
        else:
            LOGGER.warning("Unexpected error loading page at offset %d", offset, exc_info=exc)
        if self._errors is not None:
            error = PageFetchError(f"Failed to load photos: {exc}")
            error.__cause__ = exc
            self._errors.handle(
                error,
                ErrorSeverity.WARNING,
                context={"offset": offset, "generation": generation},
            )

    def _snapshot_locked(self) -> WindowState:
        return WindowState(
            items=tuple(self._items),
            base_global_offset=self._base_global_offset,
            total_count=self._total_count,
            has_more=self._has_more,
            status=self._status,
            error_message=self._error_message,
            generation=self._generation,
        )

    def _publish(self, event: Event) -> None:
        if self._events is not None:
            self._events.publish(event)
