"""Respond with context use case."""

import logging

from threadmind.application.services.context_assembler import ContextAssembler
from threadmind.application.services.stream_orchestrator import StreamOrchestrator
from threadmind.domain.entities import (
    ChannelRef,
    ContextStrategy,
    InvocationScope,
    Message,
)
from threadmind.domain.services import AttachmentResolver

logger = logging.getLogger(__name__)


class RespondWithContextUseCase:
    """Use case for answering a prompt in a channel or thread.

    Builds the conversation context and runs the capability loop on it.
    """

    def __init__(
        self,
        assembler: ContextAssembler,
        orchestrator: StreamOrchestrator,
        attachment_resolver: AttachmentResolver | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            assembler: Context assembler.
            orchestrator: Stream orchestrator.
            attachment_resolver: Resolves reference documents of the message.
        """
        self._assembler = assembler
        self._orchestrator = orchestrator
        self._attachment_resolver = attachment_resolver

    async def execute(
        self,
        channel: ChannelRef,
        prompt: str,
        message: Message | None = None,
        strategy: ContextStrategy | str | None = None,
        limit: int | None = None,
    ) -> str:
        """Execute the use case.

        Processing flow:
        1. Validate the prompt
        2. Assemble the context (summaries, history, documents)
        3. Run the capability loop and return its text

        Args:
            channel: Conversation to answer in.
            prompt: User prompt.
            message: Message carrying the prompt, if it was posted.
            strategy: Context fetch strategy.
            limit: Explicit message limit.

        Returns:
            Answer text.

        Raises:
            ValueError: If the prompt is empty.
            Exception: History fetch errors propagate.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")

        context = await self._assembler.assemble(
            channel,
            strategy=strategy,
            limit=limit,
            current_message=message,
            attachment_resolver=self._attachment_resolver if message else None,
        )
        logger.debug(
            "Context for %s: strategy=%s, %d messages, more history=%s",
            channel.key,
            context.strategy,
            len(context.recent_messages),
            context.has_more_history,
        )

        scope = InvocationScope(channel=channel, message=message)
        return await self._orchestrator.run(context, prompt.strip(), scope)
