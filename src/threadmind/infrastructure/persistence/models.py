"""SQLModel table definitions."""

from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ConversationWindowModel(SQLModel, table=True):
    """会話ウィンドウ（要約）テーブル"""

    __tablename__ = "conversation_windows"

    id: int | None = Field(default=None, primary_key=True)
    channel_id: str = Field(index=True)
    window_number: int
    summary: str
    files_mentioned: str = "[]"  # JSON format: [{"name": ..., "size": ...}]
    last_message_id: str
    last_message_timestamp: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint(
            "channel_id", "window_number", name="uq_conversation_window_number"
        ),
    )
