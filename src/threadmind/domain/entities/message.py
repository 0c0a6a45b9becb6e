"""Message entity."""

from dataclasses import dataclass, field
from datetime import datetime

from threadmind.domain.entities.channel import ChannelRef
from threadmind.domain.entities.user import User


@dataclass(frozen=True)
class Attachment:
    """File attached to a message.

    Attributes:
        name: File name.
        size: Size in bytes.
        url: Download URL.
        content_type: MIME type (may be empty).
    """

    name: str
    size: int
    url: str = ""
    content_type: str = ""

    @property
    def file_type(self) -> str:
        """Coarse file type: image, document, text or unknown."""
        content_type = self.content_type.lower()
        name = self.name.lower()
        if content_type.startswith("image/") or name.endswith(
            (".png", ".jpg", ".jpeg", ".gif", ".webp")
        ):
            return "image"
        if content_type == "application/pdf" or name.endswith(".pdf"):
            return "document"
        if content_type.startswith("text/") or name.endswith(
            (".txt", ".md", ".csv", ".json", ".py", ".log")
        ):
            return "text"
        return "unknown"


@dataclass(frozen=True)
class Message:
    """Message entity.

    Attributes:
        id: Platform-specific message ID.
        channel: Conversation the message was posted to.
        user: User who sent the message.
        text: Message content.
        timestamp: When the message was sent.
        attachments: Files attached to the message.
    """

    id: str
    channel: ChannelRef
    user: User
    text: str
    timestamp: datetime
    attachments: list[Attachment] = field(default_factory=list)

    def has_content(self) -> bool:
        """Check if the message has non-blank text."""
        return bool(self.text and self.text.strip())
