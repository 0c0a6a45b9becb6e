"""LLM-related exceptions."""

from litellm.exceptions import (
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    RateLimitError,
    Timeout,
)


class LLMError(Exception):
    """Base exception for LLM-related errors."""


class LLMRateLimitError(LLMError):
    """Rate limit exceeded error."""


class LLMAuthenticationError(LLMError):
    """Authentication error (invalid API key, etc.)."""


class LLMTimeoutError(LLMError):
    """Request timed out."""


class LLMModelNotFoundError(LLMError):
    """Configured model does not exist."""


class LLMBadRequestError(LLMError):
    """Request rejected by the provider (invalid payload, context too long)."""


def map_litellm_exception(e: Exception) -> LLMError:
    """Map LiteLLM exceptions to domain exceptions.

    Args:
        e: Exception raised by LiteLLM.

    Returns:
        Corresponding LLMError subclass.
    """
    if isinstance(e, LLMError):
        return e

    error_message = str(e)

    if isinstance(e, AuthenticationError):
        return LLMAuthenticationError(error_message)
    if isinstance(e, RateLimitError):
        return LLMRateLimitError(error_message)
    if isinstance(e, Timeout):
        return LLMTimeoutError(error_message)
    if isinstance(e, NotFoundError):
        return LLMModelNotFoundError(error_message)
    if isinstance(e, BadRequestError):
        return LLMBadRequestError(error_message)

    # Providers that do not raise typed errors
    error_message_lower = error_message.lower()
    if any(
        pattern in error_message_lower
        for pattern in ["rate limit", "too many requests"]
    ):
        return LLMRateLimitError(error_message)
    if any(pattern in error_message_lower for pattern in ["timeout", "timed out"]):
        return LLMTimeoutError(error_message)

    return LLMError(error_message)
