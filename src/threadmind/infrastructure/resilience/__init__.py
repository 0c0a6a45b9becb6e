"""Resilience primitives (circuit breaker, retry, concurrency limit)."""

from threadmind.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)
from threadmind.infrastructure.resilience.concurrency import ConcurrencyLimiter
from threadmind.infrastructure.resilience.retry import (
    NON_RETRYABLE_ERRORS,
    RetryPolicy,
    is_transient_error,
)

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "ConcurrencyLimiter",
    "NON_RETRYABLE_ERRORS",
    "RetryPolicy",
    "is_transient_error",
]
