import sys
import threading
from collections import deque
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from photoGallery.domain.models import AssetDescriptor, AssetMetadata  # noqa: E402


class InlineExecutor(Executor):
    """Runs every submitted call on the caller's thread before returning."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


class ManualExecutor(Executor):
    """Queues submitted calls until the test runs them."""

    def __init__(self):
        self._queue = deque()
        self._shutdown = False
        self._lock = threading.Lock()

    def submit(self, fn, /, *args, **kwargs):
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")
            future = Future()
            self._queue.append((future, fn, args, kwargs))
            return future

    @property
    def pending(self):
        with self._lock:
            return len(self._queue)

    def run_next(self):
        with self._lock:
            future, fn, args, kwargs = self._queue.popleft()
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def run_all(self):
        while self.pending:
            self.run_next()

    def shutdown(self, wait=True, *, cancel_futures=False):
        with self._lock:
            self._shutdown = True


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_descriptors(count, prefix="asset"):
    """Descriptors ordered newest first, one minute apart."""
    base = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return [
        AssetDescriptor(
            id=f"{prefix}-{index}",
            metadata=AssetMetadata(
                width=400,
                height=300,
                created_at=base - timedelta(minutes=index),
            ),
        )
        for index in range(count)
    ]


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def manual_executor():
    return ManualExecutor()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def descriptors():
    return make_descriptors
