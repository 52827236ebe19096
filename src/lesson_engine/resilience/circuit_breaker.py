"""
Circuit Breaker for lesson store operations.

Each store operation (credit fetch, booking persistence, lesson
persistence) gets its own breaker so that one failing endpoint does not
block the others.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Too many consecutive failures, calls are blocked
- HALF_OPEN: Reset timeout elapsed, the next call is a trial
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Any, Optional, Type

from ..models.result import FailureKind, Result


logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when a call is attempted while the breaker is OPEN."""
    pass


class CircuitBreaker:
    """
    Circuit breaker guarding one named store operation.

    Examples:
        >>> breaker = CircuitBreaker("fetch_credits", failure_threshold=3)
        >>> result = breaker.call_safe(store.fetch_credits)
        >>> if result.is_failure:
        ...     print(result.kind)  # FailureKind.UPSTREAM
    """

    def __init__(
        self,
        name: str = "store",
        failure_threshold: int = 5,
        timeout: timedelta = timedelta(seconds=60),
        expected_exception: Type[Exception] = Exception,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Operation name used in logs and results
            failure_threshold: Consecutive failures before opening
            timeout: Time to wait before a trial call (HALF_OPEN)
            expected_exception: Exception type counted as failure
            clock: Time source
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.expected_exception = expected_exception
        self._clock = clock

        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitState.CLOSED

        logger.debug(
            f"Circuit breaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: If circuit is OPEN
            Exception: Any exception raised by func
        """
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                logger.info(f"Circuit breaker '{self.name}': entering HALF_OPEN state")
                self.state = CircuitState.HALF_OPEN
            else:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker '{self.name}' is OPEN "
                    f"(failures: {self.failure_count})"
                )

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def call_safe(self, func: Callable, *args, **kwargs) -> Result[Any]:
        """
        Execute function and convert any failure into an UPSTREAM Result.

        Returns:
            Success with the function's return value, or an UPSTREAM
            failure naming the operation
        """
        try:
            value = self.call(func, *args, **kwargs)
        except CircuitBreakerOpenError as e:
            return Result.failure(
                str(e),
                e,
                kind=FailureKind.UPSTREAM,
                details={"operation": self.name, "circuit": self.state.value},
            )
        except Exception as e:
            logger.error(f"{self.name} failed: {e}")
            return Result.failure(
                f"{self.name} failed: {e}",
                e,
                kind=FailureKind.UPSTREAM,
                details={"operation": self.name, "circuit": self.state.value},
            )

        return Result.success(value)

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True

        return self._clock() - self.last_failure_time > self.timeout

    def _on_success(self):
        if self.state == CircuitState.HALF_OPEN:
            logger.info(f"Circuit breaker '{self.name}': back to CLOSED state")
            self.state = CircuitState.CLOSED

        self.failure_count = 0

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = self._clock()

        logger.warning(
            f"Circuit breaker '{self.name}': failure #{self.failure_count} "
            f"(threshold={self.failure_threshold})"
        )

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            logger.error(
                f"Circuit breaker '{self.name}': OPEN after {self.failure_count} failures"
            )
            self.state = CircuitState.OPEN

    def reset(self):
        """Manually reset circuit breaker to CLOSED state."""
        logger.info(f"Circuit breaker '{self.name}': manual reset to CLOSED")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None

    @property
    def is_open(self) -> bool:
        """Check if circuit is OPEN."""
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        """Check if circuit is CLOSED."""
        return self.state == CircuitState.CLOSED

    @property
    def is_half_open(self) -> bool:
        """Check if circuit is HALF_OPEN."""
        return self.state == CircuitState.HALF_OPEN

    def get_state_info(self) -> dict:
        """
        Get current circuit breaker state information.

        Returns:
            Dictionary with name, state, failure count and last failure time
        """
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_time": (
                self.last_failure_time.isoformat()
                if self.last_failure_time
                else None
            ),
            "failure_threshold": self.failure_threshold,
        }
