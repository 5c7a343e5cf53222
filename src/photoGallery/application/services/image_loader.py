"""Deduplicating image loader that feeds the content cache."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional

from ...config import PRELOAD_COUNT, THUMBNAIL_SIZE
from ...domain.models import AssetRecord, ImageVariant, LoadState, TargetSize
from ...errors import GalleryError, ImageFetchFailedError
from ...errors.handler import ErrorHandler, ErrorSeverity
from ...events.bus import EventBus
from ...events.gallery_events import LoadStateChangedEvent
from ...infrastructure.services.content_cache import ContentCache
from ...utils.hashutils import make_cache_key
from ..interfaces import ImageFetcher
from .dispatch import Dispatcher, immediate_dispatcher

LOGGER = logging.getLogger(__name__)


@dataclass
class _InFlight:
    """One outstanding fetch and every record waiting on it."""

    outcome: Future
    records: List[AssetRecord] = field(default_factory=list)

    def attach(self, record: AssetRecord) -> None:
        if not any(waiting is record for waiting in self.records):
            self.records.append(record)


class ImageLoadCoordinator:
    """Load images for window records, one fetch per cache key.

    ``ensure_loaded`` consults the :class:`ContentCache` first.  On a miss it
    submits the fetch to *executor*, or attaches to the fetch already running
    for the same key.  The completion is posted through *dispatcher*:
    successes are cached and failures never are, so a later call always
    retries.  Before a completion touches a record's state, *is_live* is
    asked whether the record is still part of the window.
    """

    def __init__(
        self,
        cache: ContentCache,
        fetcher: ImageFetcher,
        *,
        executor: Optional[Executor] = None,
        dispatcher: Dispatcher = immediate_dispatcher,
        is_live: Optional[Callable[[AssetRecord], bool]] = None,
        thumbnail_size: TargetSize = THUMBNAIL_SIZE,
        preload_count: int = PRELOAD_COUNT,
        event_bus: Optional[EventBus] = None,
        error_handler: Optional[ErrorHandler] = None,
        max_workers: int = 4,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="image-load"
        )
        self._dispatcher = dispatcher
        self._is_live = is_live or (lambda record: True)
        self._thumbnail_size = thumbnail_size
        self._preload_count = preload_count
        self._events = event_bus
        self._errors = error_handler
        self._in_flight: Dict[str, _InFlight] = {}
        self._lock = threading.RLock()

    def shutdown(self) -> None:
        """Shut down the internal executor if it was created by this coordinator."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def resolve_size(self, variant: ImageVariant, target_size: Optional[TargetSize]) -> Optional[TargetSize]:
        """Thumbnails default to the grid cell size; full images to the original."""
        if target_size is None and variant is ImageVariant.THUMBNAIL:
            return self._thumbnail_size
        return target_size

    def cache_key(
        self,
        asset_id: str,
        variant: ImageVariant = ImageVariant.THUMBNAIL,
        target_size: Optional[TargetSize] = None,
    ) -> str:
        return make_cache_key(asset_id, variant, self.resolve_size(variant, target_size))

    def is_loading(
        self,
        asset_id: str,
        variant: ImageVariant = ImageVariant.THUMBNAIL,
        target_size: Optional[TargetSize] = None,
    ) -> bool:
        key = self.cache_key(asset_id, variant, target_size)
        with self._lock:
            return key in self._in_flight

    def cached(
        self,
        asset_id: str,
        variant: ImageVariant = ImageVariant.THUMBNAIL,
        target_size: Optional[TargetSize] = None,
    ) -> Optional[bytes]:
        """Synchronous cache lookup; never fetches."""
        return self._cache.get(self.cache_key(asset_id, variant, target_size))

    def ensure_loaded(
        self,
        record: AssetRecord,
        variant: ImageVariant = ImageVariant.THUMBNAIL,
        target_size: Optional[TargetSize] = None,
    ) -> Future:
        """Make sure the image for *record* is loaded or loading.

        Returns a future for the image bytes.  On a cache hit the future is
        already resolved and the record is ``LOADED`` before this returns.
        A fetch failure resolves the future with the exception; it never
        raises from here.
        """

        size = self.resolve_size(variant, target_size)
        key = make_cache_key(record.id, variant, size)

        blob = self._cache.get(key)
        if blob is not None:
            with self._lock:
                changed = record.set_state(variant, LoadState.LOADED)
            if changed:
                self._publish_state(record, variant)
            done: Future = Future()
            done.set_result(blob)
            return done

        with self._lock:
            entry = self._in_flight.get(key)
            if entry is not None:
                entry.attach(record)
                changed = record.set_state(variant, LoadState.LOADING)
                start_fetch = False
            else:
                entry = _InFlight(outcome=Future(), records=[record])
                self._in_flight[key] = entry
                changed = record.set_state(variant, LoadState.LOADING)
                start_fetch = True

        if changed:
            self._publish_state(record, variant)
        if not start_fetch:
            return entry.outcome

        LOGGER.debug("Fetching %s for %s (size=%s)", variant.value, record.id, size)
        try:
            fetch = self._executor.submit(self._fetcher.fetch, record.id, variant, size)
        except RuntimeError as exc:
            fetch = Future()
            fetch.set_exception(exc)
        fetch.add_done_callback(
            lambda completed: self._dispatcher(
                partial(self._on_fetch_done, key, variant, entry, completed)
            )
        )
        return entry.outcome

    def preload(self, records: Iterable[AssetRecord], count: Optional[int] = None) -> List[Future]:
        """Start thumbnail loads for the first *count* of *records*.

        Only a head start for what is about to scroll into view; a failed
        preload leaves the record ``FAILED`` and the next ``ensure_loaded``
        retries it.
        """
        limit = self._preload_count if count is None else count
        futures: List[Future] = []
        for index, record in enumerate(records):
            if index >= limit:
                break
            futures.append(self.ensure_loaded(record, ImageVariant.THUMBNAIL))
        return futures

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_fetch_done(self, key: str, variant: ImageVariant, entry: _InFlight, fetch: Future) -> None:
        error: Optional[Exception] = None
        blob: Optional[bytes] = None
        try:
            blob = fetch.result()
        except Exception as exc:
            error = exc
        else:
            if not blob:
                error = ImageFetchFailedError("No image data received")
            else:
                blob = bytes(blob)

        if error is None:
            self._cache.put(key, blob, len(blob))

        state = LoadState.LOADED if error is None else LoadState.FAILED
        with self._lock:
            if self._in_flight.get(key) is entry:
                del self._in_flight[key]
            live = [record for record in entry.records if self._is_live(record)]
            updated = [record for record in live if record.set_state(variant, state)]
            skipped = len(entry.records) - len(live)

        if skipped:
            LOGGER.debug("Dropped %s state for %d evicted record(s) of %s", state.value, skipped, key)
        if error is not None:
            self._report_failure(error, entry, variant)
        for record in updated:
            self._publish_state(record, variant)

        if entry.outcome.cancelled():
            return
        if error is None:
            entry.outcome.set_result(blob)
        else:
            entry.outcome.set_exception(error)

    def _report_failure(self, exc: Exception, entry: _InFlight, variant: ImageVariant) -> None:
        asset_id = entry.records[0].id if entry.records else "?"
        if isinstance(exc, GalleryError):
            LOGGER.warning("Failed to load %s for %s: %s", variant.value, asset_id, exc)
        else:
            LOGGER.warning("Unexpected error loading %s for %s", variant.value, asset_id, exc_info=exc)
        if self._errors is not None:
            self._errors.handle(
                exc,
                ErrorSeverity.WARNING,
                context={"asset_id": asset_id, "variant": variant.value},
            )

    def _publish_state(self, record: AssetRecord, variant: ImageVariant) -> None:
        if self._events is None:
            return
        self._events.publish(
            LoadStateChangedEvent(
                asset_id=record.id,
                variant=variant.value,
                state=record.state_for(variant).value,
                global_index=record.global_index,
            )
        )
