"""
Soft deadlines for source calls.

Calls run on a shared thread pool. When a deadline passes the caller stops
waiting, but the call itself keeps running until it finishes on its own;
its result is then thrown away.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import config
from errors import SourceTimeout

_executor = None
_executor_lock = threading.Lock()


def get_executor():
    """Get or create the shared worker pool."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=config.SOURCE_WORKERS,
                thread_name_prefix="art-source",
            )
    return _executor


class PendingCall:
    """A submitted call plus the moment its deadline runs out."""

    def __init__(self, name, future, deadline_ms):
        self.name = name
        self.future = future
        self.deadline_ms = deadline_ms
        self.expires_at = time.monotonic() + deadline_ms / 1000.0

    def remaining(self):
        return max(0.0, self.expires_at - time.monotonic())

    def result(self):
        """Wait for the call's result until the deadline.

        Raises SourceTimeout if the deadline passes first. Exceptions raised
        by the call itself propagate unchanged.
        """
        try:
            return self.future.result(timeout=self.remaining())
        except FutureTimeout:
            raise SourceTimeout(self.name, self.deadline_ms) from None


def start_call(name, operation, deadline_ms, *args, **kwargs):
    """Submit `operation` to the pool; the deadline starts now."""
    future = get_executor().submit(operation, *args, **kwargs)
    return PendingCall(name, future, deadline_ms)


def with_timeout(operation, deadline_ms, *args, name=None, **kwargs):
    """Run `operation` and return its result, or raise SourceTimeout."""
    label = name or getattr(operation, "__name__", "call")
    return start_call(label, operation, deadline_ms, *args, **kwargs).result()
