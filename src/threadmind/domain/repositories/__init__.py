"""Domain repositories."""

from threadmind.domain.repositories.conversation_window_repository import (
    ConversationWindowRepository,
)

__all__ = ["ConversationWindowRepository"]
