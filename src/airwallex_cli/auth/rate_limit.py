"""Fixed-window rate limiter keyed by client address and endpoint.

Each ``(client_address, endpoint)`` pair gets its own counter that resets
once its window has elapsed. This is a *fixed* window: a client can spend
its full budget just before a window rolls over and again just after. The
setup server only ever talks to one local user, so that inaccuracy is
accepted.

Expired entries are treated as absent by :meth:`RateLimiter.check`; the
background sweep started by :meth:`RateLimiter.start_cleanup` only bounds
memory and never changes what ``check`` returns.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from airwallex_cli.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "too many attempts, please try again later"


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Thread-safe fixed-window attempt counter.

    Args:
        max_attempts: Successful checks allowed per key per window. The
            ``max_attempts + 1``-th check inside a window fails.
        window: Window length in seconds.
        clock: Monotonic time source, injectable for tests.

    Example::

        limiter = RateLimiter(max_attempts=2, window=900)
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")
        limiter.check("127.0.0.1", "/validate")  # raises RateLimitExceededError
    """

    def __init__(
        self,
        max_attempts: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: dict[str, _Window] = {}

    def check(self, client_address: str, endpoint: str) -> None:
        """Record one attempt and raise if the key is over its budget.

        Args:
            client_address: Peer host of the request.
            endpoint: Logical endpoint name (e.g. ``"/submit"``).

        Raises:
            RateLimitExceededError: If this attempt exceeds ``max_attempts``
                within the current window. The attempt is still counted.
        """
        key = f"{client_address}:{endpoint}"
        with self._lock:
            now = self._clock()
            entry = self._attempts.get(key)
            if entry is None or now > entry.reset_at:
                self._attempts[key] = _Window(count=1, reset_at=now + self.window)
                return

            entry.count += 1
            if entry.count > self.max_attempts:
                logger.debug("Rate limit exceeded for %s (%d attempts)", key, entry.count)
                raise RateLimitExceededError(RATE_LIMIT_MESSAGE)

    def attempts(self, client_address: str, endpoint: str) -> int:
        """Return the live attempt count for a key (0 when absent or expired)."""
        key = f"{client_address}:{endpoint}"
        with self._lock:
            entry = self._attempts.get(key)
            if entry is None or self._clock() > entry.reset_at:
                return 0
            return entry.count

    def cleanup(self) -> int:
        """Remove every entry whose window has elapsed.

        Returns:
            The number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._attempts.items() if now > entry.reset_at]
            for key in expired:
                del self._attempts[key]
        if expired:
            logger.debug("Swept %d expired rate-limit entries", len(expired))
        return len(expired)

    def size(self) -> int:
        """Return the number of stored entries, expired or not."""
        with self._lock:
            return len(self._attempts)

    def start_cleanup(self, interval: float, stop: threading.Event) -> threading.Thread:
        """Run :meth:`cleanup` every *interval* seconds until *stop* is set.

        Args:
            interval: Seconds between sweeps.
            stop: Event that ends the sweep loop when set.

        Returns:
            The started daemon thread, so callers can join it on teardown.
        """

        def _sweep() -> None:
            while not stop.wait(interval):
                self.cleanup()

        thread = threading.Thread(target=_sweep, name="rate-limit-sweep", daemon=True)
        thread.start()
        return thread
