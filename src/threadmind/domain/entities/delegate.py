"""Delegate query entities."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported by the backend.

    Attributes:
        input: Input tokens.
        output: Output tokens.
    """

    input: int = 0
    output: int = 0


@dataclass(frozen=True)
class DelegateQuery:
    """A validated, sanitized sub-question about one thread.

    Attributes:
        thread_id: Target thread ID (see ChannelRef.key).
        query: Question text.
        hint: Optional extra context for the question.
    """

    thread_id: str
    query: str
    hint: str | None = None


@dataclass(frozen=True)
class DelegateAnswer:
    """Answer of a delegate query.

    Attributes:
        answer: Answer text.
        thread_name: Name of the analyzed thread.
        thread_id: ID of the analyzed thread.
        source_message_count: Number of messages the answer is based on.
        has_documents: Whether reference documents were part of the context.
        token_usage: Tokens used by the delegate call.
    """

    answer: str
    thread_name: str
    thread_id: str
    source_message_count: int
    has_documents: bool
    token_usage: TokenUsage = field(default_factory=TokenUsage)
