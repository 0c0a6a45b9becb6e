"""Domain services."""

from threadmind.domain.services.message_formatter import (
    build_context_turns,
    describe_attachment,
    format_file_size,
    format_transcript,
    message_to_turn,
)
from threadmind.domain.services.protocols import (
    AttachmentDecoder,
    AttachmentResolver,
    ChatTransport,
    LanguageModelBackend,
)

__all__ = [
    "AttachmentDecoder",
    "AttachmentResolver",
    "ChatTransport",
    "LanguageModelBackend",
    "build_context_turns",
    "describe_attachment",
    "format_file_size",
    "format_transcript",
    "message_to_turn",
]
