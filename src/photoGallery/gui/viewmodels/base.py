"""Common lifecycle for view models: tracked event subscriptions."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple, Type

from photoGallery.events.bus import Event, EventBus, Subscription


class BaseViewModel:
    """Owns the bus subscriptions a view model makes.

    :meth:`dispose` cancels all of them and is safe to call twice.  After
    disposal, :meth:`subscribe_event` refuses new subscriptions so a late
    callback cannot resurrect a torn-down view model.
    """

    def __init__(self) -> None:
        self._subscriptions: List[Tuple[EventBus, Subscription]] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe_event(
        self,
        event_bus: EventBus,
        event_type: Type[Event],
        handler: Callable[[Event], None],
        *,
        dispatcher: Optional[Callable[[Callable[[], None]], None]] = None,
    ) -> Subscription:
        """Subscribe *handler* and remember the subscription for :meth:`dispose`."""
        if self._disposed:
            raise RuntimeError(f"{type(self).__name__} has been disposed")
        sub = event_bus.subscribe(event_type, handler, dispatcher=dispatcher)
        self._subscriptions.append((event_bus, sub))
        return sub

    def dispose(self) -> None:
        for bus, sub in self._subscriptions:
            bus.unsubscribe(sub)
        self._subscriptions.clear()
        self._disposed = True
