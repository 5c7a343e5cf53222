"""Observer primitives for the view models.

``Signal`` is a list of callbacks; ``ObservableProperty`` is a value that
emits a ``changed`` signal.  Neither depends on a UI toolkit, so a renderer
binds to them through whatever adapter it needs.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List

LOGGER = logging.getLogger(__name__)


class Signal:
    """Thread-safe callback list.

    Handlers run on the emitting thread in connection order.  A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._handlers: List[Callable[..., Any]] = []
        self._blocked = 0
        self._lock = threading.Lock()

    def connect(self, handler: Callable[..., Any]) -> Callable[[], None]:
        """Register *handler*; return a callable that disconnects it again."""
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return lambda: self.disconnect(handler)

    def disconnect(self, handler: Callable[..., Any]) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self, *args: Any, **kwargs: Any) -> int:
        """Call every handler; return how many ran without raising."""
        with self._lock:
            if self._blocked:
                return 0
            handlers = list(self._handlers)
        ran = 0
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception:
                LOGGER.exception("Handler %r of signal %r failed", handler, self.name)
            else:
                ran += 1
        return ran

    @contextmanager
    def blocked(self) -> Iterator[None]:
        """Suppress emissions for the duration of the ``with`` block."""
        with self._lock:
            self._blocked += 1
        try:
            yield
        finally:
            with self._lock:
                self._blocked -= 1

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)


class ObservableProperty:
    """A value that emits ``changed(new, old)`` when it is replaced.

    Assigning a value equal to the current one is silent.  Records in the
    window compare by identity, so a tuple of records only counts as equal
    when it holds the very same records.
    """

    def __init__(self, initial_value: Any = None, name: str = "") -> None:
        self._value = initial_value
        self._lock = threading.Lock()
        self.changed = Signal(name)

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        self.set(new_value)

    def set(self, new_value: Any) -> bool:
        """Replace the value; return ``True`` if ``changed`` was emitted."""
        with self._lock:
            old_value = self._value
            if old_value == new_value:
                return False
            self._value = new_value
        self.changed.emit(new_value, old_value)
        return True

    def bind(self, handler: Callable[[Any, Any], Any]) -> Callable[[], None]:
        """Connect *handler* and call it once with the current value.

        The initial call passes ``None`` as the old value.  Returns the
        disconnect callable from :meth:`Signal.connect`.
        """
        disconnect = self.changed.connect(handler)
        handler(self._value, None)
        return disconnect
