"""Typed publish/subscribe event bus.

Handlers subscribe to an event class and also receive events of its
subclasses, so subscribing to :class:`Event` observes everything.  A handler
runs in one of three places:

* synchronously, on the publishing thread (the default);
* on the bus's worker pool (``async_=True``);
* through a :data:`~photoGallery.application.services.dispatch.Dispatcher`
  (``dispatcher=...``), which is how a consumer with its own event loop gets
  window and load-state changes delivered on its own thread.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base event class."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""
    event_type: Type[Event]
    handler: Callable[[Event], None]
    async_: bool = False
    dispatcher: Optional[Callable[[Callable[[], None]], None]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    active: bool = True

    def cancel(self) -> None:
        """Stop delivery; the bus drops the entry on its next publish."""
        self.active = False


class EventBus:
    def __init__(self, logger: Optional[logging.Logger] = None, max_workers: int = 4):
        self._logger = logger or logging.getLogger(__name__)
        self._subscriptions: Dict[Type[Event], List[Subscription]] = {}
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def subscribe(
        self,
        event_type: Type[Event],
        handler: Callable[[Event], None],
        async_: bool = False,
        *,
        dispatcher: Optional[Callable[[Callable[[], None]], None]] = None,
    ) -> Subscription:
        if async_ and dispatcher is not None:
            raise ValueError("A subscription is either async or dispatched, not both")
        sub = Subscription(event_type=event_type, handler=handler, async_=async_, dispatcher=dispatcher)
        with self._lock:
            self._subscriptions.setdefault(event_type, []).append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.cancel()
        with self._lock:
            subs = self._subscriptions.get(subscription.event_type)
            if subs and subscription in subs:
                subs.remove(subscription)

    def publish(self, event: Event) -> None:
        """Deliver *event* to every active subscriber of its class or a base class."""
        for sub in self._matching(type(event)):
            if sub.async_:
                self._submit(sub.handler, event)
            elif sub.dispatcher is not None:
                sub.dispatcher(partial(self._deliver, sub, event))
            else:
                self._deliver(sub, event)

    def publish_async(self, event: Event) -> List[Future]:
        """Run every matching handler on the worker pool; return their futures."""
        return [self._submit(sub.handler, event) for sub in self._matching(type(event))]

    def subscriber_count(self, event_type: Type[Event]) -> int:
        return len(self._matching(event_type))

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _matching(self, event_type: Type[Event]) -> List[Subscription]:
        matched: List[Subscription] = []
        with self._lock:
            for klass in event_type.__mro__:
                subs = self._subscriptions.get(klass)
                if not subs:
                    continue
                subs[:] = [sub for sub in subs if sub.active]
                matched.extend(subs)
        return matched

    def _deliver(self, sub: Subscription, event: Event) -> None:
        if not sub.active:
            return
        try:
            sub.handler(event)
        except Exception:
            self._logger.exception("Handler %r failed for %s", sub.handler, type(event).__name__)

    def _submit(self, handler: Callable[[Event], None], event: Event) -> Future:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="event-bus"
                )
            executor = self._executor
        return executor.submit(self._safe_async_call, handler, event)

    def _safe_async_call(self, handler: Callable[[Event], None], event: Event) -> None:
        try:
            handler(event)
        except Exception:
            self._logger.exception("Async handler %r failed for %s", handler, type(event).__name__)
