"""Persistence infrastructure."""

from threadmind.infrastructure.persistence.conversation_window_repository import (
    SQLiteConversationWindowRepository,
)
from threadmind.infrastructure.persistence.database import DatabaseManager
from threadmind.infrastructure.persistence.exceptions import (
    CorruptRecordError,
    DatabaseError,
    PersistenceError,
)
from threadmind.infrastructure.persistence.models import ConversationWindowModel

__all__ = [
    "ConversationWindowModel",
    "CorruptRecordError",
    "DatabaseError",
    "DatabaseManager",
    "PersistenceError",
    "SQLiteConversationWindowRepository",
]
