"""Domain service protocols."""

from collections.abc import AsyncIterator
from typing import Protocol

from threadmind.domain.entities import (
    Attachment,
    CapabilityDeclaration,
    ChannelRef,
    CompletionResult,
    ContentBlock,
    Message,
    SamplingParams,
    StreamEvent,
    ThreadInfo,
    Turn,
)


class ChatTransport(Protocol):
    """Chat platform abstraction (platform-independent).

    This protocol defines what the core needs from a messaging platform
    (Slack, Discord, etc.): history pages and thread operations.
    """

    async def fetch_messages(
        self,
        channel: ChannelRef,
        limit: int,
        after: str | None = None,
        before: str | None = None,
    ) -> list[Message]:
        """Fetch one page of history.

        Args:
            channel: Channel or thread to read.
            limit: Maximum number of messages to return.
            after: Only messages strictly after this message ID.
            before: Only messages strictly before this message ID.

        Returns:
            Up to `limit` of the most recent matching messages,
            in chronological order (oldest first).
        """
        ...

    async def get_thread(self, thread_id: str) -> ThreadInfo:
        """Resolve a thread by its public ID.

        Raises:
            ThreadNotFoundError: If the thread does not exist.
        """
        ...

    async def list_threads(
        self,
        channel: ChannelRef,
        include_archived: bool = False,
    ) -> list[ThreadInfo]:
        """List threads of a channel."""
        ...

    async def create_thread(
        self,
        channel: ChannelRef,
        name: str,
        initial_message: str,
        reason: str = "",
        from_message: Message | None = None,
    ) -> ThreadInfo:
        """Create a thread and post its first message.

        Args:
            channel: Parent channel.
            name: Thread name.
            initial_message: First message posted in the thread.
            reason: Why the thread is created (audit text).
            from_message: Start the thread under this message instead of a
                new starter message.

        Returns:
            The created thread.
        """
        ...


class AttachmentResolver(Protocol):
    """Collects the reference documents relevant to a message."""

    async def resolve(self, message: Message, message_limit: int) -> list[ContentBlock]:
        """Resolve deduplicated, prioritized content blocks.

        Args:
            message: Current message.
            message_limit: How many recent messages to scan for attachments.

        Returns:
            Content blocks, current-message files first.
        """
        ...


class AttachmentDecoder(Protocol):
    """Turns one attachment into a content block."""

    async def decode(self, attachment: Attachment) -> ContentBlock | None:
        """Decode an attachment.

        Returns:
            A content block, or None if the format is unsupported.
        """
        ...


class LanguageModelBackend(Protocol):
    """Hosted language model abstraction."""

    def generate(
        self,
        system: str,
        turns: list[Turn],
        tools: list[CapabilityDeclaration],
        params: SamplingParams,
    ) -> AsyncIterator[StreamEvent]:
        """Start a streaming generation.

        Returns:
            Async iterator of stream events.

        Raises:
            LLMError: If the request fails.
        """
        ...

    async def count_tokens(self, system: str, turns: list[Turn], model: str) -> int:
        """Count input tokens of a request payload.

        Raises:
            LLMError: If counting fails.
        """
        ...

    async def complete(
        self,
        system: str,
        turns: list[Turn],
        params: SamplingParams,
    ) -> CompletionResult:
        """Run a non-streaming generation without tools.

        Raises:
            LLMError: If the request fails.
        """
        ...
