"""Channel entities."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ChannelRef:
    """Reference to a conversation: a channel, or a thread inside a channel.

    Attributes:
        id: Platform-specific channel ID.
        thread_ts: Parent message timestamp when this refers to a thread.
        name: Channel or thread name (may be empty when unknown).
    """

    id: str
    thread_ts: str | None = None
    name: str = ""

    @property
    def key(self) -> str:
        """Key used by the summary store and as the public thread ID.

        Returns:
            "{channel_id}" for channels, "{channel_id}:{thread_ts}" for threads.
        """
        if self.thread_ts:
            return f"{self.id}:{self.thread_ts}"
        return self.id

    def is_thread(self) -> bool:
        """Check if this reference points to a thread."""
        return self.thread_ts is not None

    @classmethod
    def from_key(cls, key: str, name: str = "") -> "ChannelRef":
        """Parse a key produced by `key`.

        Args:
            key: "{channel_id}" or "{channel_id}:{thread_ts}".
            name: Optional display name.

        Returns:
            ChannelRef instance.

        Raises:
            ValueError: If the key is empty.
        """
        if not key:
            raise ValueError("Channel key must not be empty")
        channel_id, sep, thread_ts = key.partition(":")
        if not channel_id or (sep and not thread_ts):
            raise ValueError(f"Invalid channel key: {key}")
        return cls(id=channel_id, thread_ts=thread_ts or None, name=name)


@dataclass(frozen=True)
class ThreadInfo:
    """Thread listing entry.

    Attributes:
        id: Public thread ID (see ChannelRef.key).
        name: Thread name (first line of the parent message).
        channel: Reference to the thread.
        reply_count: Number of replies.
        last_activity: Timestamp of the latest reply, if known.
        archived: Whether the thread is archived.
    """

    id: str
    name: str
    channel: ChannelRef
    reply_count: int = 0
    last_activity: datetime | None = None
    archived: bool = False
