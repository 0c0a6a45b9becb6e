"""LLM integration."""

from threadmind.infrastructure.llm.client import (
    LiteLLMBackend,
    declarations_to_tools,
    turns_to_messages,
)
from threadmind.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMBadRequestError,
    LLMError,
    LLMModelNotFoundError,
    LLMRateLimitError,
    LLMTimeoutError,
    map_litellm_exception,
)
from threadmind.infrastructure.llm.prompts import PromptBuilder

__all__ = [
    "LLMAuthenticationError",
    "LLMBadRequestError",
    "LLMError",
    "LLMModelNotFoundError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "LiteLLMBackend",
    "PromptBuilder",
    "declarations_to_tools",
    "map_litellm_exception",
    "turns_to_messages",
]
