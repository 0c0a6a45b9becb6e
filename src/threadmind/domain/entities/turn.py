"""Transcript turn entity."""

from dataclasses import dataclass
from enum import Enum

from threadmind.domain.entities.capability import (
    CapabilityInvocation,
    InvocationResult,
)
from threadmind.domain.entities.content import ContentBlock


class Role(Enum):
    """Speaker of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One entry of the transcript sent to the model.

    Attributes:
        role: Speaker.
        content: Plain text or a list of content blocks.
        invocations: Invocations echoed by an assistant turn.
        results: Invocation results carried by a user turn.
    """

    role: Role
    content: str | list[ContentBlock] = ""
    invocations: tuple[CapabilityInvocation, ...] = ()
    results: tuple[InvocationResult, ...] = ()

    @classmethod
    def user(cls, content: str | list[ContentBlock]) -> "Turn":
        """Create a user turn."""
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        """Create an assistant turn."""
        return cls(role=Role.ASSISTANT, content=content)
