"""Common fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from threadmind.domain.entities import Attachment, ChannelRef, Message, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_user() -> User:
    """Create test user."""
    return User(id="U123", name="alice", is_bot=False)


@pytest.fixture
def sample_bot() -> User:
    """Create test bot."""
    return User(id="B123", name="threadmind", is_bot=True)


@pytest.fixture
def sample_channel() -> ChannelRef:
    """Create test channel."""
    return ChannelRef(id="C123", name="general")


@pytest.fixture
def make_message(
    sample_user: User, sample_channel: ChannelRef
) -> Callable[..., Message]:
    """Factory for messages whose ID and timestamp follow the sequence number."""

    def _make(
        seq: int,
        text: str | None = None,
        user: User | None = None,
        channel: ChannelRef | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Message:
        return Message(
            id=f"{1700000000 + seq}.000100",
            channel=channel or sample_channel,
            user=user or sample_user,
            text=f"message {seq}" if text is None else text,
            timestamp=BASE_TIME + timedelta(minutes=seq),
            attachments=attachments or [],
        )

    return _make
