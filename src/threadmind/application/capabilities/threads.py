"""Thread capabilities (list / create)."""

import logging

from pydantic import BaseModel, Field

from threadmind.domain.entities import ChannelRef, InvocationScope, ThreadInfo
from threadmind.domain.services import ChatTransport

logger = logging.getLogger(__name__)

THREAD_NAME_MAX_LENGTH = 100


class ListThreadsInput(BaseModel):
    include_archived: bool = Field(
        default=False,
        description="OPTIONAL: Whether to include archived threads. Defaults to false.",
    )


class CreateThreadInput(BaseModel):
    name: str = Field(
        min_length=1,
        max_length=THREAD_NAME_MAX_LENGTH,
        description=(
            "REQUIRED: Name for the thread (max 100 characters). "
            "Example: 'Code Review Session' or 'Project Planning'"
        ),
    )
    purpose: str = Field(
        min_length=1,
        description=(
            "REQUIRED: Brief description of what this thread is for. "
            "Example: 'Reviewing the authentication code'"
        ),
    )
    initial_message: str = Field(
        min_length=1,
        description=(
            "REQUIRED: First message to post in the thread. "
            "This should provide context and start the discussion."
        ),
    )
    use_current_message: bool = Field(
        default=False,
        description=(
            "OPTIONAL: Whether to start the thread under the current message (true) "
            "or as a standalone thread (false). Defaults to false."
        ),
    )


def parent_channel(channel: ChannelRef) -> ChannelRef:
    """The channel a thread lives in (the channel itself for channels)."""
    return ChannelRef(id=channel.id, name=channel.name) if channel.is_thread() else channel


def format_thread_list(channel: ChannelRef, threads: list[ThreadInfo]) -> str:
    """Format a thread listing for the model."""
    lines = []
    for thread in threads:
        line = f"• **{thread.name}** (ID: {thread.id})"
        if thread.archived:
            line += " (archived)"
        if thread.reply_count:
            line += f" - {thread.reply_count} replies"
        if thread.last_activity is not None:
            line += f" - Last activity: {thread.last_activity:%Y-%m-%d %H:%M} UTC"
        lines.append(line)

    thread_ids = ", ".join(t.id for t in threads)
    title = f"#{channel.name}" if channel.name else channel.id
    return (
        f"**Available Threads in {title}:**\n\n"
        + "\n".join(lines)
        + f"\n\n**Thread IDs:** {thread_ids}\n\n"
        "**CRITICAL**: To read any thread, call query_thread_context with the "
        f"thread_id parameter. Use one of these exact IDs: {thread_ids}"
    )


class ListThreadsCapability:
    """Lists the threads of the current channel (read-only)."""

    name = "list_threads"
    description = (
        "Get a list of all available threads in the current channel. Use this when "
        "you need to find threads related to a topic or see what discussions are "
        "available."
    )
    input_model = ListThreadsInput

    def __init__(self, transport: ChatTransport) -> None:
        self._transport = transport

    async def run(self, arguments: ListThreadsInput, scope: InvocationScope) -> str:
        channel = parent_channel(scope.channel)
        threads = await self._transport.list_threads(
            channel, include_archived=arguments.include_archived
        )
        if not threads:
            return "No threads found in this channel."
        return format_thread_list(channel, threads)


class CreateThreadCapability:
    """Creates a thread and posts its initial message."""

    name = "create_thread"
    description = (
        "Create a new thread for focused discussion on a specific topic. Use this "
        "when a conversation would benefit from being separated into its own thread "
        "(e.g., detailed planning, code review, brainstorming). REQUIRED: You must "
        "provide name, purpose, and initial_message parameters."
    )
    input_model = CreateThreadInput

    def __init__(self, transport: ChatTransport) -> None:
        self._transport = transport

    async def run(self, arguments: CreateThreadInput, scope: InvocationScope) -> str:
        from_message = scope.message if arguments.use_current_message else None
        thread = await self._transport.create_thread(
            parent_channel(scope.channel),
            name=arguments.name,
            initial_message=arguments.initial_message,
            reason=f"Thread created for: {arguments.purpose}",
            from_message=from_message,
        )
        logger.info("Thread %s created: %s", thread.id, thread.name)
        return (
            "✅ **Thread Created Successfully!**\n\n"
            f"**Thread:** {thread.name} (ID: {thread.id})\n"
            f"**Purpose:** {arguments.purpose}\n\n"
            "I've posted the initial message there."
        )
