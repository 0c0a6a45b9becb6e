"""Token budget estimation."""

import logging
import math
from dataclasses import dataclass

from threadmind.domain.entities import ContentBlock, Message, Turn
from threadmind.domain.services import LanguageModelBackend
from threadmind.infrastructure.resilience import RetryPolicy

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
BASE64_CHARS_PER_TOKEN = 6
MESSAGE_OVERHEAD_TOKENS = 5

WARNING_THRESHOLD = 0.70
SUMMARIZATION_THRESHOLD = 0.80
EMERGENCY_THRESHOLD = 0.95


def estimate_text_tokens(text: str) -> int:
    """Heuristic token count of a text (4 characters per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_message_tokens(message: Message) -> int:
    """Heuristic token count of a chat message, author name included."""
    return (
        estimate_text_tokens(message.text)
        + estimate_text_tokens(message.user.name)
        + MESSAGE_OVERHEAD_TOKENS
    )


def estimate_messages_tokens(messages: list[Message]) -> int:
    """Heuristic token count of a list of messages."""
    return sum(estimate_message_tokens(m) for m in messages)


def estimate_block_tokens(block: ContentBlock) -> int:
    """Heuristic token count of a content block.

    Base64 payloads count 6 characters per token, everything else 4.
    """
    tokens = estimate_text_tokens(block.text) + estimate_text_tokens(block.url)
    if block.data:
        tokens += math.ceil(len(block.data) / BASE64_CHARS_PER_TOKEN)
    return tokens


def estimate_blocks_tokens(blocks: list[ContentBlock]) -> int:
    """Heuristic token count of a list of content blocks."""
    return sum(estimate_block_tokens(b) for b in blocks)


@dataclass(frozen=True)
class TokenUsageReport:
    """Context window usage.

    Attributes:
        used_tokens: Tokens used by the request.
        context_window_size: Model context window.
        percentage: used / window (0.0 - 1.0+).
        should_warn: Usage reached the warning threshold.
        should_summarize: Usage reached the summarization threshold.
        is_emergency: Usage reached the emergency threshold.
    """

    used_tokens: int
    context_window_size: int
    percentage: float
    should_warn: bool
    should_summarize: bool
    is_emergency: bool


class TokenBudgetEstimator:
    """Exact token counting with a character-based fallback.

    Stateless apart from its configuration.
    """

    def __init__(
        self,
        backend: LanguageModelBackend,
        model: str,
        retry_policy: RetryPolicy | None = None,
        context_window_size: int = 200000,
        reserve_tokens_for_response: int = 4000,
        reserve_tokens_for_system: int = 1000,
    ) -> None:
        """Initialize the estimator.

        Args:
            backend: Backend providing exact token counts.
            model: Model whose tokenizer is used.
            retry_policy: Retry policy for the count call (no retry if None).
            context_window_size: Model context window in tokens.
            reserve_tokens_for_response: Tokens kept free for the response.
            reserve_tokens_for_system: System prompt size assumed by estimates.
        """
        self._backend = backend
        self._model = model
        self._retry_policy = retry_policy or RetryPolicy(max_attempts=1)
        self.context_window_size = context_window_size
        self.reserve_tokens_for_response = reserve_tokens_for_response
        self.reserve_tokens_for_system = reserve_tokens_for_system

    async def count(self, system: str, turns: list[Turn]) -> int | None:
        """Ask the backend for the exact input token count.

        Args:
            system: System preamble that will be sent.
            turns: Turns that will be sent.

        Returns:
            Token count, or None if counting failed.
        """
        try:
            return await self._retry_policy.run(
                lambda: self._backend.count_tokens(system, turns, self._model),
                description="Token count",
            )
        except Exception as e:
            logger.warning("Exact token count unavailable, using estimates: %s", e)
            return None

    def available_for_response(self, total_tokens: int) -> int:
        """Tokens left for the response after the input and the reserve."""
        return max(
            0,
            self.context_window_size - total_tokens - self.reserve_tokens_for_response,
        )

    def usage(self, used_tokens: int) -> TokenUsageReport:
        """Compute the usage report for a token count."""
        percentage = used_tokens / self.context_window_size
        return TokenUsageReport(
            used_tokens=used_tokens,
            context_window_size=self.context_window_size,
            percentage=percentage,
            should_warn=percentage >= WARNING_THRESHOLD,
            should_summarize=percentage >= SUMMARIZATION_THRESHOLD,
            is_emergency=percentage >= EMERGENCY_THRESHOLD,
        )
