"""
Fault tolerance for database reads.

A list request fans out into seven queries; when the database is down every
one of them would otherwise sit on a pool timeout. Two guards sit in front of
each repository read:

``retry_with_backoff``
    Retries *transient* connection failures (see ``TRANSIENT_DB_ERRORS``)
    with exponentially growing, jittered delays. Reads are idempotent, so a
    retry is always safe.

``CircuitBreaker``
    Counts consecutive transient failures. At ``failure_threshold`` the
    circuit opens and every read fails immediately with
    :class:`CircuitBreakerError` (HTTP 503 + ``Retry-After``). After
    ``recovery_timeout`` a single call is let through as a probe while
    concurrent callers keep failing fast: success closes the circuit,
    failure re-opens it for another full timeout.

        CLOSED --threshold--> OPEN --timeout--> HALF_OPEN --ok--> CLOSED
                                ^                   |
                                +------failure------+
"""

import asyncio
import functools
import logging
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from fundscreener.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Connection-level failures only; a ProgrammingError is a bug, not an outage.
TRANSIENT_DB_ERRORS: Tuple[Type[BaseException], ...] = (
    ConnectionError,
    OSError,
    TimeoutError,
    OperationalError,
    InterfaceError,
)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """A call was rejected without being attempted because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit '{name}' is OPEN; retry in {retry_after:.1f}s")


class CircuitBreaker:
    """
    Async circuit breaker.

    Only exceptions listed in ``tracked_exceptions`` count as failures;
    anything else propagates without touching the breaker.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        tracked_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.tracked_exceptions = tracked_exceptions
        self.reset()

    def reset(self) -> None:
        """Forget all history and close the circuit."""
        self._state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.total_successes = 0
        self.opened_at: Optional[float] = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self.retry_after == 0:
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit '%s' half-open; letting a probe through", self.name)
        return self._state

    @property
    def retry_after(self) -> float:
        """Seconds until a probe will be allowed (0 unless OPEN)."""
        if self.opened_at is None:
            return 0.0
        return max(self.recovery_timeout - (time.monotonic() - self.opened_at), 0.0)

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s' closed after a successful probe", self.name)
        self._state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.opened_at = None
        self.total_successes += 1

    def _on_failure(self, exc: BaseException) -> None:
        self.consecutive_failures += 1
        probe_failed = self._state == CircuitState.HALF_OPEN
        if probe_failed or self.consecutive_failures >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self.opened_at = time.monotonic()
            logger.error(
                "Circuit '%s' OPEN after %d consecutive failure(s) (%s); failing fast for %.0fs",
                self.name,
                self.consecutive_failures,
                type(exc).__name__,
                self.recovery_timeout,
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d: %s",
                self.name,
                self.consecutive_failures,
                self.failure_threshold,
                exc,
            )

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await ``func(*args, **kwargs)``, or raise :class:`CircuitBreakerError`
        while OPEN or while another call is probing a HALF_OPEN circuit.
        """
        state = self.state
        if state == CircuitState.OPEN or (state == CircuitState.HALF_OPEN and self._probe_in_flight):
            raise CircuitBreakerError(self.name, self.retry_after)

        # Only one call may probe a half-open circuit; the rest fail fast until it settles.
        probing = state == CircuitState.HALF_OPEN
        if probing:
            self._probe_in_flight = True
        try:
            result = await func(*args, **kwargs)
        except self.tracked_exceptions as exc:
            self._on_failure(exc)
            raise
        finally:
            if probing:
                self._probe_in_flight = False
        self._on_success()
        return result

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "total_successes": self.total_successes,
            "retry_after_s": round(self.retry_after, 1),
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    tracked_exceptions=TRANSIENT_DB_ERRORS,
)


def backoff_delays(
    base_delay: float, max_delay: float, jitter: bool = True
) -> Iterator[float]:
    """
    Endless sequence of retry delays: ``base, 2*base, 4*base ...`` capped at
    ``max_delay``, each optionally stretched by up to 50% random jitter.
    """
    delay = base_delay
    while True:
        capped = min(delay, max_delay)
        yield capped + random.uniform(0, capped * 0.5) if jitter else capped
        delay *= 2


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[BaseException], ...] = TRANSIENT_DB_ERRORS,
) -> Callable:
    """
    Decorator for async callables: up to ``max_retries`` extra attempts on
    ``retryable_exceptions``. Anything else, including
    :class:`CircuitBreakerError`, propagates on the first raise.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = getattr(func, "__qualname__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delays = backoff_delays(base_delay, max_delay, jitter)
            for attempt in range(1, max_retries + 2):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt > max_retries:
                        logger.error("%s failed after %d attempt(s): %r", name, attempt, exc)
                        raise
                    delay = next(delays)
                    logger.warning(
                        "%s attempt %d/%d failed (%r); retrying in %.2fs",
                        name,
                        attempt,
                        max_retries + 1,
                        exc,
                        delay,
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
