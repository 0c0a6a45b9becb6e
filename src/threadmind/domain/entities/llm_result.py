"""LLM result entities."""

from dataclasses import dataclass, field

from threadmind.domain.entities.delegate import TokenUsage


@dataclass(frozen=True)
class CompletionResult:
    """Non-streaming completion result.

    Attributes:
        text: The generated text.
        usage: Token usage reported by the backend.
    """

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class SamplingParams:
    """Sampling parameters of one generation call.

    Attributes:
        model: Model identifier.
        temperature: Sampling temperature.
        max_tokens: Maximum output tokens.
    """

    model: str
    temperature: float = 0.7
    max_tokens: int = 4000
