"""Capability (tool call) entities."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from threadmind.domain.entities.channel import ChannelRef
from threadmind.domain.entities.message import Message


class InvocationOrigin(Enum):
    """Who executes an invocation.

    CLIENT invocations are executed by this application; BACKEND invocations
    (e.g. hosted web search) are resolved by the model provider itself.
    """

    CLIENT = "client"
    BACKEND = "backend"


@dataclass
class CapabilityInvocation:
    """One tool call surfaced mid-stream.

    Created on an invocation-start event (or as a placeholder when an input
    delta arrives first), filled by input deltas and finalized on stop.

    Attributes:
        index: Block index within the stream.
        id: Provider-assigned call ID.
        name: Capability name.
        origin: Who executes the invocation.
        input_buffer: Raw JSON fragments received so far.
        input: Parsed input (set at finalization).
        started: Whether the start event has been seen.
        completed: Whether the stop event has been seen.
    """

    index: int
    id: str = ""
    name: str = ""
    origin: InvocationOrigin = InvocationOrigin.CLIENT
    input_buffer: str = ""
    input: dict[str, Any] = field(default_factory=dict)
    started: bool = False
    completed: bool = False

    @property
    def is_client_side(self) -> bool:
        """Check if this application has to execute the invocation."""
        return self.origin is InvocationOrigin.CLIENT

    def append_input(self, fragment: str) -> None:
        """Append a raw JSON fragment to the input buffer."""
        self.input_buffer += fragment

    def finalize(self) -> bool:
        """Parse the accumulated buffer into `input`.

        An empty buffer keeps the input given at start (or `{}`). A buffer
        that does not parse to a JSON object leaves `input` as `{}`.

        Returns:
            False if the buffer could not be parsed, True otherwise.
        """
        self.completed = True
        if not self.input_buffer.strip():
            return True
        try:
            parsed = json.loads(self.input_buffer)
        except json.JSONDecodeError:
            self.input = {}
            return False
        if not isinstance(parsed, dict):
            self.input = {}
            return False
        self.input = parsed
        return True


@dataclass(frozen=True)
class CapabilityDeclaration:
    """Capability advertised to the model.

    Attributes:
        name: Capability name.
        description: What the capability does.
        parameters: JSON schema of the input object.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


@dataclass(frozen=True)
class InvocationResult:
    """Result of executing one client-side invocation.

    Attributes:
        invocation_id: ID of the invocation this answers.
        name: Capability name.
        content: Result text re-injected into the transcript.
        is_error: True when the content describes a failure.
    """

    invocation_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class InvocationScope:
    """Conversation the capabilities act on.

    Attributes:
        channel: Current channel (or thread).
        message: Message that triggered the request, if any.
    """

    channel: ChannelRef
    message: Message | None = None
