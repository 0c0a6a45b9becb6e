"""Tests for Message entity."""

from datetime import datetime, timezone

import pytest

from threadmind.domain.entities import Attachment, ChannelRef, Message, User


class TestAttachment:
    """Attachment tests."""

    @pytest.mark.parametrize(
        ("name", "content_type", "expected"),
        [
            ("photo.PNG", "", "image"),
            ("blob", "image/webp", "image"),
            ("report.pdf", "", "document"),
            ("notes.md", "", "text"),
            ("data", "text/csv", "text"),
            ("archive.zip", "application/zip", "unknown"),
        ],
    )
    def test_file_type(self, name: str, content_type: str, expected: str) -> None:
        """Test coarse file type detection."""
        attachment = Attachment(name=name, size=1, content_type=content_type)

        assert attachment.file_type == expected


class TestMessage:
    """Message entity tests."""

    def _message(self, text: str) -> Message:
        return Message(
            id="1700000000.000100",
            channel=ChannelRef(id="C123"),
            user=User(id="U123", name="alice"),
            text=text,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def test_has_content(self) -> None:
        """Test that non-blank text counts as content."""
        assert self._message("hello").has_content() is True

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text(self, text: str) -> None:
        """Test that blank text does not count as content."""
        assert self._message(text).has_content() is False

    def test_default_attachments(self) -> None:
        """Test that attachments default to an empty list."""
        assert self._message("hello").attachments == []
