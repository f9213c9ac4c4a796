"""Circuit breaker implementation for HTTP requests.

This module provides a circuit breaker that protects callers from a
degraded upstream. After a configurable number of consecutive failures
the circuit opens and every outbound call is refused until the reset
interval has elapsed since the last failure.

There is no background timer: the reset is evaluated lazily by
:meth:`CircuitBreaker.is_open`. Once the interval has passed the very
next request is let through with a cleared failure counter.

Each client owns its own breaker, so separate client instances never
share failure state.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RESET_TIMEOUT = 30.0


@dataclass
class CircuitState:
    """Mutable breaker state, only touched under the breaker lock.

    :param consecutive_failures: Failures recorded since the last success
    :type consecutive_failures: int
    :param last_failure_time: Monotonic timestamp of the last failure
    :type last_failure_time: Optional[float]
    :param open: Whether outbound calls are currently refused
    :type open: bool
    """

    consecutive_failures: int = 0
    last_failure_time: Optional[float] = None
    open: bool = False


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    All operations are serialised by a single :class:`threading.Lock`.
    The critical sections never perform I/O, so the breaker is safe to
    consult from the event loop as well as from worker threads.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        reset_timeout: float = DEFAULT_RESET_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the circuit breaker with configuration.

        :param failure_threshold: Number of consecutive failures before
                                  opening the circuit
        :type failure_threshold: int
        :param reset_timeout: Seconds since the last failure after which
                              the circuit is allowed to close again
        :type reset_timeout: float
        :param clock: Monotonic time source, injectable for tests
        :type clock: Callable[[], float]
        :raises ValueError: If the threshold or timeout is not positive
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if reset_timeout <= 0:
            raise ValueError("reset_timeout must be greater than zero")
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._state = CircuitState()
        self._lock = threading.Lock()

    def record_failure(self) -> bool:
        """Record an upstream failure.

        :return: True only when this failure moved the circuit from
                 closed to open
        :rtype: bool
        """
        with self._lock:
            state = self._state
            state.consecutive_failures += 1
            state.last_failure_time = self._clock()
            if state.open or state.consecutive_failures < self.failure_threshold:
                return False
            state.open = True
            failures = state.consecutive_failures

        logger.warning(
            "Circuit breaker opened after %d consecutive failures; "
            "blocking requests for %.1fs",
            failures,
            self.reset_timeout,
        )
        return True

    def record_success(self) -> None:
        """Reset the failure counter and close the circuit."""
        with self._lock:
            was_open = self._state.open
            self._state.consecutive_failures = 0
            self._state.open = False

        if was_open:
            logger.info("Circuit breaker closed after successful request")

    def is_open(self) -> bool:
        """Return whether outbound calls must be refused.

        If the circuit is open but the reset interval has elapsed since the
        last failure, the circuit is closed here and False is returned so
        that the next request acts as the recovery probe. The failure
        counter is reset as well, so a fresh run of consecutive failures
        is needed to reopen it.

        :return: True while the circuit is open
        :rtype: bool
        """
        with self._lock:
            state = self._state
            if not state.open:
                return False
            elapsed = self._clock() - (state.last_failure_time or 0.0)
            if elapsed < self.reset_timeout:
                return True
            state.open = False
            state.consecutive_failures = 0

        logger.info(
            "Circuit breaker reset interval elapsed (%.1fs); allowing probe request",
            elapsed,
        )
        return False

    def snapshot(self) -> CircuitState:
        """Return a copy of the current state for inspection."""
        with self._lock:
            return replace(self._state)
