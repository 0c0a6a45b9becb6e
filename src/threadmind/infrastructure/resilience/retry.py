"""Bounded retry with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from threadmind.domain.exceptions import (
    GatewayNotConfiguredError,
    QueryValidationError,
    UpstreamUnavailableError,
)
from threadmind.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMBadRequestError,
    LLMModelNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    LLMAuthenticationError,
    LLMModelNotFoundError,
    LLMBadRequestError,
    QueryValidationError,
    UpstreamUnavailableError,
    GatewayNotConfiguredError,
)


def is_transient_error(error: Exception) -> bool:
    """Check if an error is worth retrying.

    Args:
        error: The raised exception.

    Returns:
        False for configuration, authentication and input errors and for
        open circuits, True otherwise.
    """
    return not isinstance(error, NON_RETRYABLE_ERRORS)


class RetryPolicy:
    """Retries an async operation a bounded number of times.

    The delay before retry number `attempt` (1-based count of the failed
    attempt) is `base_delay * 2 ** attempt`.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        is_retryable: Callable[[Exception], bool] = is_transient_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the policy.

        Args:
            max_attempts: Total attempts including the first one.
            base_delay: Base backoff delay in seconds.
            is_retryable: Predicate deciding whether an error is transient.
            sleep: Async sleep function.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._is_retryable = is_retryable
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given failed attempt (1-based)."""
        return self._base_delay * (2**attempt)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "operation",
    ) -> T:
        """Run an operation with retries.

        Args:
            operation: Factory returning a fresh awaitable per attempt.
            description: Label used in log messages.

        Returns:
            The first successful result.

        Raises:
            Exception: The last error when attempts are exhausted, or a
                non-retryable error immediately.
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if not self._is_retryable(e):
                    logger.debug("%s failed with non-retryable error: %s", description, e)
                    raise
                if attempt >= self._max_attempts:
                    logger.error(
                        "%s failed after %d attempts: %s",
                        description,
                        attempt,
                        e,
                    )
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    description,
                    attempt,
                    self._max_attempts,
                    delay,
                    e,
                )
                await self._sleep(delay)

        raise AssertionError("unreachable")
