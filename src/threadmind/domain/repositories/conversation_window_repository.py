"""Conversation window repository protocol."""

from datetime import datetime
from typing import Protocol

from threadmind.domain.entities.conversation_window import (
    ConversationWindow,
    FileDescriptor,
)


class ConversationWindowRepository(Protocol):
    """会話ウィンドウ（要約）リポジトリ"""

    async def latest_by_channel(self, channel_id: str) -> ConversationWindow | None:
        """チャンネルの最新ウィンドウを取得

        Args:
            channel_id: チャンネルキー

        Returns:
            window_number が最大のウィンドウ、存在しない場合は None
        """
        ...

    async def list_by_channel(self, channel_id: str) -> list[ConversationWindow]:
        """チャンネルの全ウィンドウを取得

        Args:
            channel_id: チャンネルキー

        Returns:
            window_number 昇順のウィンドウリスト
        """
        ...

    async def create_or_update(
        self,
        channel_id: str,
        window_number: int,
        summary: str,
        files_mentioned: list[FileDescriptor],
        last_message_id: str,
        last_message_timestamp: datetime,
    ) -> ConversationWindow:
        """ウィンドウを作成または更新（upsert）

        同じ (channel_id, window_number) が存在する場合は内容を更新する。

        Returns:
            保存されたウィンドウ
        """
        ...

    async def next_window_number(self, channel_id: str) -> int:
        """次のウィンドウ番号を計算（最大値 + 1、存在しない場合は 1）

        読み取りのみでロックは取らない。同一チャンネルへの並行書き込みでは
        同じ番号が返る可能性がある。
        """
        ...

    async def delete_by_channel(self, channel_id: str) -> int:
        """チャンネルの全ウィンドウを削除

        Returns:
            削除した件数
        """
        ...
