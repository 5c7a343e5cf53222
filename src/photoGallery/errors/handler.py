"""Central sink for failures the gallery absorbs instead of raising.

The window and the coordinator turn fetch failures into state; they also
hand the exception to an :class:`ErrorHandler` so it is logged once, in one
format, and published for whoever wants to surface it.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..events.bus import Event, EventBus


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]

    @property
    def user_visible(self) -> bool:
        """Whether the UI callback is told about errors of this severity."""
        return self in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)


_LOG_LEVELS: Dict[ErrorSeverity, int] = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    context: dict = field(default_factory=dict)

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


UiCallback = Callable[[str, ErrorSeverity], None]


class ErrorHandler:
    """Log, publish and optionally show an error.

    ``event_bus`` may be omitted for a handler that only logs.  UI
    callbacks receive ``(message, severity)`` for ERROR and CRITICAL only.
    """

    def __init__(self, logger: logging.Logger, event_bus: Optional[EventBus] = None):
        self._logger = logger
        self._events = event_bus
        self._ui_callbacks: List[UiCallback] = []
        self._lock = threading.Lock()

    def register_ui_callback(self, callback: UiCallback) -> Callable[[], None]:
        """Add *callback*; return a callable that removes it again."""
        with self._lock:
            self._ui_callbacks.append(callback)

        def _remove() -> None:
            with self._lock:
                if callback in self._ui_callbacks:
                    self._ui_callbacks.remove(callback)

        return _remove

    def handle(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[dict] = None,
    ) -> ErrorOccurredEvent:
        event = ErrorOccurredEvent(error=error, severity=severity, context=dict(context or {}))

        cause = error.__cause__
        if cause is not None and cause is not error:
            self._logger.log(
                severity.log_level,
                "%s: %s (caused by %s: %s)",
                type(error).__name__,
                event.message,
                type(cause).__name__,
                cause,
                extra={"context": event.context},
            )
        else:
            self._logger.log(
                severity.log_level,
                "%s: %s",
                type(error).__name__,
                event.message,
                extra={"context": event.context},
            )

        if self._events is not None:
            self._events.publish(event)

        if severity.user_visible:
            with self._lock:
                callbacks = list(self._ui_callbacks)
            for callback in callbacks:
                try:
                    callback(event.message, severity)
                except Exception:
                    self._logger.exception("Error UI callback %r failed", callback)
        return event
