"""Message formatting utilities for model payloads."""

from threadmind.domain.entities import (
    AssembledContext,
    Attachment,
    ContentBlock,
    Message,
    Turn,
)

CONTEXT_DOCUMENTS_HEADER = "Context documents from conversation history:"


def message_to_turn(message: Message) -> Turn:
    """Convert a chat message to a transcript turn.

    Bot messages become assistant turns; user messages become user turns
    prefixed with the author's name.

    Args:
        message: The message to convert.

    Returns:
        Transcript turn.
    """
    if message.user.is_bot:
        return Turn.assistant(message.text)
    if message.user.name:
        return Turn.user(f"{message.user.name}: {message.text}")
    return Turn.user(message.text)


def build_context_turns(
    context: AssembledContext,
    prompt: str | None = None,
) -> list[Turn]:
    """Build the transcript sent to the model for a context.

    Reference documents come first as one user turn, then recent messages
    (blank messages skipped), then the prompt.

    Args:
        context: Assembled context.
        prompt: Current user prompt, if any.

    Returns:
        List of turns in send order.
    """
    turns: list[Turn] = []

    if context.context_documents:
        turns.append(
            Turn.user(
                [ContentBlock.of_text(CONTEXT_DOCUMENTS_HEADER)]
                + list(context.context_documents)
            )
        )

    for message in context.recent_messages:
        if not message.has_content():
            continue
        turns.append(message_to_turn(message))

    if prompt:
        turns.append(Turn.user(prompt))

    return turns


def format_transcript(messages: list[Message]) -> str:
    """Format messages as a plain transcript.

    Args:
        messages: Messages in chronological order.

    Returns:
        "author: text" blocks separated by blank lines.
    """
    lines = []
    for message in messages:
        if not message.has_content():
            continue
        author = message.user.name or ("Assistant" if message.user.is_bot else "User")
        lines.append(f"{author}: {message.text}")
    return "\n\n".join(lines)


def format_file_size(size: int) -> str:
    """Format a byte count, e.g. 1536 -> "1.5 KB"."""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


def describe_attachment(attachment: Attachment) -> str:
    """Fallback description for an attachment that could not be decoded."""
    size = format_file_size(attachment.size)
    return f"📎 **{attachment.name}** - Unsupported file type ({size})"
