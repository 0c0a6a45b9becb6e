"""Circuit breaker guarding calls to an upstream service."""

import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from threadmind.domain.exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Call-gating state machine for one upstream dependency.

    Closed: calls pass and consecutive failures are counted.
    Open: once the count reaches the threshold, calls are rejected without
    touching the upstream until the cooldown has elapsed since the last failure.
    Half-open: exactly one trial call is let through. Success closes the
    circuit, failure reopens it.

    State is local to the instance. Share one instance between all call sites
    of the same upstream.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the breaker.

        Args:
            name: Name of the guarded service (used in errors and logs).
            failure_threshold: Consecutive failures that open the circuit.
            cooldown_seconds: Time the circuit stays open.
            clock: Monotonic clock returning seconds.
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self._name = name
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at: float | None = None
        self._trial_in_flight = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        """Current state.

        An open circuit whose cooldown has elapsed reports HALF_OPEN.
        """
        if self._state is CircuitState.OPEN and self._cooldown_elapsed():
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_at(self) -> float | None:
        return self._last_failure_at

    def is_open(self) -> bool:
        """Check if calls are currently rejected."""
        return not self._would_allow()

    def allow_request(self) -> bool:
        """Ask permission for one call.

        Moving from OPEN to HALF_OPEN reserves the single trial call, so a
        True result must be followed by record_success or record_failure.

        Returns:
            True if the call may proceed.
        """
        if self._state is CircuitState.CLOSED:
            return True

        if self._state is CircuitState.OPEN:
            if not self._cooldown_elapsed():
                return False
            logger.info("Circuit %s half-open, allowing a trial call", self._name)
            self._state = CircuitState.HALF_OPEN
            self._trial_in_flight = True
            return True

        # HALF_OPEN
        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        """Record a successful call."""
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit %s closed", self._name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._trial_in_flight = False

    def record_failure(self) -> None:
        """Record a failed call."""
        self._failure_count += 1
        self._last_failure_at = self._clock()
        self._trial_in_flight = False

        if self._state is CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning("Circuit %s trial call failed, reopening", self._name)
        elif (
            self._state is CircuitState.CLOSED
            and self._failure_count >= self._failure_threshold
        ):
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit %s opened after %d consecutive failures",
                self._name,
                self._failure_count,
            )

    def reset(self) -> None:
        """Force the circuit closed and clear the failure history."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_at = None
        self._trial_in_flight = False

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run an operation through the breaker.

        Args:
            operation: Factory returning the awaitable to run.

        Returns:
            The operation's result.

        Raises:
            UpstreamUnavailableError: If the circuit rejects the call.
                The operation is not started.
        """
        if not self.allow_request():
            raise UpstreamUnavailableError(
                self._name, f"{self._name} circuit is open, request rejected"
            )

        try:
            result = await operation()
        except Exception:
            self.record_failure()
            raise
        except BaseException:
            # Cancelled: the trial slot is released without a verdict.
            self._trial_in_flight = False
            raise

        self.record_success()
        return result

    def _cooldown_elapsed(self) -> bool:
        if self._last_failure_at is None:
            return True
        return self._clock() - self._last_failure_at >= self._cooldown_seconds

    def _would_allow(self) -> bool:
        if self._state is CircuitState.CLOSED:
            return True
        if self._state is CircuitState.OPEN:
            return self._cooldown_elapsed()
        return not self._trial_in_flight
