"""Content block entity."""

from dataclasses import dataclass
from enum import Enum


class ContentKind(Enum):
    """Kind of a content block sent to the model."""

    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass(frozen=True)
class ContentBlock:
    """A reference document block (text, image or document).

    Attributes:
        kind: Block kind.
        text: Text content (TEXT blocks).
        url: Remote location (IMAGE / DOCUMENT blocks).
        data: Base64 payload (IMAGE / DOCUMENT blocks), alternative to url.
        media_type: MIME type of the payload.
        name: Source file name, if any.
    """

    kind: ContentKind
    text: str = ""
    url: str = ""
    data: str = ""
    media_type: str = ""
    name: str = ""

    @classmethod
    def of_text(cls, text: str, name: str = "") -> "ContentBlock":
        """Create a TEXT block."""
        return cls(kind=ContentKind.TEXT, text=text, name=name)
