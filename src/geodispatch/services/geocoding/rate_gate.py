"""Global admission gate for the external geocoding provider.

The provider enforces roughly one request per second for the whole
application, so a single gate instance is shared by every call site. Only one
permit is outstanding at a time and consecutive permits are spaced by at least
the minimum interval.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

_LOCK_POLL_SECONDS = 0.05

Sleeper = Callable[[float, Optional[threading.Event]], bool]


def wait_or_cancel(seconds: float, cancel: Optional[threading.Event] = None) -> bool:
    """Sleep for ``seconds``. Returns False if ``cancel`` fired before the delay elapsed."""
    if seconds <= 0:
        return not (cancel is not None and cancel.is_set())
    if cancel is None:
        time.sleep(seconds)
        return True
    return not cancel.wait(seconds)


class RateGate:
    def __init__(
        self,
        min_interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper = wait_or_cancel,
    ) -> None:
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_grant: Optional[float] = None

    def acquire(
        self,
        cancel: Optional[threading.Event] = None,
        min_interval_seconds: Optional[float] = None,
    ) -> bool:
        """Block until a permit is granted. Returns False if cancelled while waiting."""
        while not self._lock.acquire(timeout=_LOCK_POLL_SECONDS):
            if cancel is not None and cancel.is_set():
                return False

        interval = self.min_interval_seconds if min_interval_seconds is None else min_interval_seconds
        if self._last_grant is not None:
            wait = self._last_grant + interval - self._clock()
            if wait > 0:
                logger.debug("Rate gate waiting %.3fs before next provider call", wait)
                if not self._sleep(wait, cancel):
                    self._lock.release()
                    return False
        if cancel is not None and cancel.is_set():
            self._lock.release()
            return False

        self._last_grant = self._clock()
        return True

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def permit(
        self,
        cancel: Optional[threading.Event] = None,
        min_interval_seconds: Optional[float] = None,
    ) -> Iterator[bool]:
        """Context manager yielding whether the permit was granted; releases it on exit."""
        granted = self.acquire(cancel, min_interval_seconds)
        try:
            yield granted
        finally:
            if granted:
                self.release()
