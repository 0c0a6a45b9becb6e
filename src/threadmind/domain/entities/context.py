"""Assembled context entity."""

from dataclasses import dataclass, field
from enum import Enum

from threadmind.domain.entities.channel import ChannelRef
from threadmind.domain.entities.content import ContentBlock
from threadmind.domain.entities.message import Message


class ContextStrategy(Enum):
    """Message fetching strategy."""

    FIXED = "fixed"
    ADAPTIVE = "adaptive"
    UNLIMITED = "unlimited"

    @classmethod
    def parse(cls, value: "str | ContextStrategy | None") -> "ContextStrategy | None":
        """Parse a strategy label.

        Returns:
            The matching strategy, or None for unknown labels.
        """
        if value is None or isinstance(value, ContextStrategy):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class TokenBreakdown:
    """Per-part token accounting of an assembled context.

    Attributes:
        summary_tokens: Tokens used by the summary prefix.
        message_tokens: Tokens used by recent messages.
        document_tokens: Tokens used by reference documents.
        system_tokens: Tokens used by the system prompt (without summaries).
        available_for_response: Tokens left for the response.
    """

    summary_tokens: int = 0
    message_tokens: int = 0
    document_tokens: int = 0
    system_tokens: int = 0
    available_for_response: int = 0


@dataclass(frozen=True)
class AssembledContext:
    """Token-bounded bundle sent to the model for one turn.

    This is a pure data class - converting it into model messages is the
    responsibility of the module that receives the context.

    Attributes:
        channel: Conversation the context was built for.
        summary_context: Rendered summaries of earlier conversation windows.
        recent_messages: Messages after the summary boundary, oldest first.
        context_documents: Deduplicated reference documents.
        total_token_estimate: Total input tokens (exact or heuristic).
        has_more_history: Whether older history exists beyond what was fetched.
        strategy: Strategy label, e.g. "adaptive (token-optimized)".
        token_breakdown: Per-part token accounting.
        degraded: True when token counts are heuristic estimates.
    """

    channel: ChannelRef
    summary_context: str = ""
    recent_messages: list[Message] = field(default_factory=list)
    context_documents: list[ContentBlock] = field(default_factory=list)
    total_token_estimate: int = 0
    has_more_history: bool = False
    strategy: str = ContextStrategy.FIXED.value
    token_breakdown: TokenBreakdown = field(default_factory=TokenBreakdown)
    degraded: bool = False

    @property
    def has_documents(self) -> bool:
        """Check if the context carries reference documents."""
        return len(self.context_documents) > 0
