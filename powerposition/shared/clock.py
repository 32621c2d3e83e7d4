"""
Time and cancellation primitives.

Every suspension in the service (the scheduler's wait for the next
cycle, the fetcher's pause between attempts) goes through
``CancellationToken.wait`` so a shutdown request ends it at once.
"""

import threading
from datetime import datetime, timedelta, timezone


class Clock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class CancellationToken:
    """Thread-safe cancellation flag with an interruptible wait."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and wake up any pending wait."""
        self._event.set()

    def wait(self, timeout: timedelta) -> bool:
        """Block for ``timeout`` or until cancelled, whichever comes first.

        Returns:
            True if cancellation was requested.
        """
        seconds = max(timeout.total_seconds(), 0.0)
        return self._event.wait(seconds)
