"""Streaming generation events and per-round session state."""

from dataclasses import dataclass, field
from typing import Any

from threadmind.domain.entities.capability import (
    CapabilityInvocation,
    InvocationOrigin,
)


@dataclass(frozen=True)
class TextDelta:
    """Visible text fragment."""

    text: str


@dataclass(frozen=True)
class ReasoningDelta:
    """Hidden reasoning fragment. Never shown to users."""

    text: str


@dataclass(frozen=True)
class InvocationStart:
    """Start of a capability invocation block.

    Attributes:
        index: Block index within the stream.
        id: Provider-assigned call ID.
        name: Capability name.
        origin: Who executes the invocation.
        input: Input already known at start (rare), or None.
    """

    index: int
    id: str
    name: str
    origin: InvocationOrigin = InvocationOrigin.CLIENT
    input: dict[str, Any] | None = None


@dataclass(frozen=True)
class InvocationInputDelta:
    """Raw JSON fragment of an invocation's input."""

    index: int
    fragment: str


@dataclass(frozen=True)
class InvocationStop:
    """End of an invocation block."""

    index: int


StreamEvent = (
    TextDelta | ReasoningDelta | InvocationStart | InvocationInputDelta | InvocationStop
)


@dataclass
class StreamSession:
    """State accumulated during one streaming round.

    Attributes:
        round_number: 1-based round number.
        text: Accumulated visible text.
        reasoning: Accumulated hidden reasoning.
        invocations: Invocations in stream order.
        stop_reason: Why the round ended.
    """

    round_number: int
    text: str = ""
    reasoning: str = ""
    invocations: list[CapabilityInvocation] = field(default_factory=list)
    stop_reason: str = ""

    def invocation_at(self, index: int) -> CapabilityInvocation | None:
        """Find the invocation registered for a block index."""
        for invocation in self.invocations:
            if invocation.index == index:
                return invocation
        return None

    def placeholder(self, index: int) -> CapabilityInvocation:
        """Get the invocation for an index, creating a placeholder if absent."""
        invocation = self.invocation_at(index)
        if invocation is None:
            invocation = CapabilityInvocation(index=index)
            self.invocations.append(invocation)
        return invocation

    @property
    def client_invocations(self) -> list[CapabilityInvocation]:
        """Invocations this application has to execute."""
        return [i for i in self.invocations if i.is_client_side]

    @property
    def backend_invocations(self) -> list[CapabilityInvocation]:
        """Invocations already resolved by the provider."""
        return [i for i in self.invocations if not i.is_client_side]
