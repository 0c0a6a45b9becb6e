"""Domain entities."""

from threadmind.domain.entities.capability import (
    CapabilityDeclaration,
    CapabilityInvocation,
    InvocationOrigin,
    InvocationResult,
    InvocationScope,
)
from threadmind.domain.entities.channel import ChannelRef, ThreadInfo
from threadmind.domain.entities.content import ContentBlock, ContentKind
from threadmind.domain.entities.context import (
    AssembledContext,
    ContextStrategy,
    TokenBreakdown,
)
from threadmind.domain.entities.conversation_window import (
    ConversationWindow,
    FileDescriptor,
)
from threadmind.domain.entities.delegate import DelegateAnswer, DelegateQuery, TokenUsage
from threadmind.domain.entities.llm_result import CompletionResult, SamplingParams
from threadmind.domain.entities.message import Attachment, Message
from threadmind.domain.entities.stream import (
    InvocationInputDelta,
    InvocationStart,
    InvocationStop,
    ReasoningDelta,
    StreamEvent,
    StreamSession,
    TextDelta,
)
from threadmind.domain.entities.turn import Role, Turn
from threadmind.domain.entities.user import User

__all__ = [
    "AssembledContext",
    "Attachment",
    "CapabilityDeclaration",
    "CapabilityInvocation",
    "ChannelRef",
    "CompletionResult",
    "ContentBlock",
    "ContentKind",
    "ContextStrategy",
    "ConversationWindow",
    "DelegateAnswer",
    "DelegateQuery",
    "FileDescriptor",
    "InvocationInputDelta",
    "InvocationOrigin",
    "InvocationResult",
    "InvocationScope",
    "InvocationStart",
    "InvocationStop",
    "Message",
    "ReasoningDelta",
    "Role",
    "SamplingParams",
    "StreamEvent",
    "StreamSession",
    "TextDelta",
    "ThreadInfo",
    "TokenBreakdown",
    "TokenUsage",
    "Turn",
    "User",
]
