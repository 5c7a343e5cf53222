"""Photo library authorization state."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    LIMITED = "limited"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def granted(self) -> bool:
        """Full and limited access both allow browsing."""
        return self in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED)


class PermissionService(Protocol):
    def authorization_status(self) -> AuthorizationStatus: ...

    def request_access(self) -> AuthorizationStatus: ...


class StaticPermissionService:
    """Permission service for hosts without an OS-level prompt.

    ``request_access`` resolves ``NOT_DETERMINED`` to *on_request*; any
    other status is returned unchanged, the same way a platform prompt is
    only ever shown once.
    """

    def __init__(
        self,
        status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
        *,
        on_request: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
    ) -> None:
        self._status = status
        self._on_request = on_request
        self._lock = threading.Lock()

    def authorization_status(self) -> AuthorizationStatus:
        with self._lock:
            return self._status

    def request_access(self) -> AuthorizationStatus:
        with self._lock:
            if self._status is AuthorizationStatus.NOT_DETERMINED:
                self._status = self._on_request
                LOGGER.info("Photo library access resolved to %s", self._status.value)
            return self._status

    def set_status(self, status: AuthorizationStatus) -> None:
        with self._lock:
            self._status = status
