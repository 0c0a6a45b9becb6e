"""SQLite implementation of ConversationWindowRepository."""

import json
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from threadmind.domain.entities import ConversationWindow, FileDescriptor
from threadmind.infrastructure.persistence.datetime_utils import (
    normalize_to_utc,
    utc_now,
)
from threadmind.infrastructure.persistence.exceptions import (
    CorruptRecordError,
    DatabaseError,
)
from threadmind.infrastructure.persistence.models import ConversationWindowModel

logger = logging.getLogger(__name__)


class SQLiteConversationWindowRepository:
    """SQLite による会話ウィンドウリポジトリ実装"""

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
    ) -> None:
        """初期化

        Args:
            session_factory: 非同期セッション生成関数
        """
        self._session_factory = session_factory

    async def latest_by_channel(self, channel_id: str) -> ConversationWindow | None:
        """チャンネルの最新ウィンドウを取得

        Args:
            channel_id: チャンネルキー

        Returns:
            window_number が最大のウィンドウ、存在しない場合は None
        """
        async with self._session_factory() as session:
            stmt = (
                select(ConversationWindowModel)
                .where(ConversationWindowModel.channel_id == channel_id)
                .order_by(col(ConversationWindowModel.window_number).desc())
                .limit(1)
            )
            result = await session.exec(stmt)
            model = result.first()
            return self._to_entity(model) if model else None

    async def list_by_channel(self, channel_id: str) -> list[ConversationWindow]:
        """チャンネルの全ウィンドウを window_number 昇順で取得"""
        async with self._session_factory() as session:
            stmt = (
                select(ConversationWindowModel)
                .where(ConversationWindowModel.channel_id == channel_id)
                .order_by(col(ConversationWindowModel.window_number))
            )
            result = await session.exec(stmt)
            return [self._to_entity(m) for m in result.all()]

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

        同じ (channel_id, window_number) が存在する場合は要約・ファイル・境界を
        更新し、created_at は維持する。

        Returns:
            保存されたウィンドウ

        Raises:
            ValueError: window_number が 1 未満の場合
            DatabaseError: 書き込みに失敗した場合
        """
        if window_number < 1:
            raise ValueError("window_number must be >= 1")

        files_json = json.dumps(
            [f.to_dict() for f in files_mentioned], ensure_ascii=False
        )
        now = utc_now()

        try:
            async with self._session_factory() as session:
                stmt = select(ConversationWindowModel).where(
                    ConversationWindowModel.channel_id == channel_id,
                    ConversationWindowModel.window_number == window_number,
                )
                result = await session.exec(stmt)
                model = result.first()

                if model:
                    model.summary = summary
                    model.files_mentioned = files_json
                    model.last_message_id = last_message_id
                    model.last_message_timestamp = last_message_timestamp
                    model.updated_at = now
                else:
                    model = ConversationWindowModel(
                        channel_id=channel_id,
                        window_number=window_number,
                        summary=summary,
                        files_mentioned=files_json,
                        last_message_id=last_message_id,
                        last_message_timestamp=last_message_timestamp,
                        created_at=now,
                        updated_at=now,
                    )
                session.add(model)
                await session.commit()
                await session.refresh(model)
                return self._to_entity(model)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to save conversation window %s#%d: %s",
                channel_id,
                window_number,
                e,
            )
            raise DatabaseError(f"Failed to save conversation window: {e}") from e

    async def next_window_number(self, channel_id: str) -> int:
        """次のウィンドウ番号を計算（最大値 + 1、存在しない場合は 1）

        読み取りのみでロックは取らない。
        """
        async with self._session_factory() as session:
            stmt = select(
                func.coalesce(func.max(ConversationWindowModel.window_number), 0)
            ).where(ConversationWindowModel.channel_id == channel_id)
            result = await session.exec(stmt)
            current = result.one()
            return int(current) + 1

    async def delete_by_channel(self, channel_id: str) -> int:
        """チャンネルの全ウィンドウを削除

        Returns:
            削除した件数
        """
        async with self._session_factory() as session:
            stmt = select(ConversationWindowModel).where(
                ConversationWindowModel.channel_id == channel_id
            )
            result = await session.exec(stmt)
            models = result.all()
            for model in models:
                await session.delete(model)
            await session.commit()
            return len(models)

    def _to_entity(self, model: ConversationWindowModel) -> ConversationWindow:
        """ConversationWindowModel を ConversationWindow エンティティに変換"""
        try:
            raw_files = json.loads(model.files_mentioned or "[]")
            files = [FileDescriptor.from_dict(f) for f in raw_files]
        except (json.JSONDecodeError, TypeError, AttributeError, ValueError) as e:
            raise CorruptRecordError(
                f"Invalid files_mentioned for {model.channel_id}#{model.window_number}"
            ) from e

        return ConversationWindow(
            channel_id=model.channel_id,
            window_number=model.window_number,
            summary=model.summary,
            last_message_id=model.last_message_id,
            last_message_timestamp=normalize_to_utc(model.last_message_timestamp),
            files_mentioned=files,
            created_at=normalize_to_utc(model.created_at),
            updated_at=normalize_to_utc(model.updated_at),
        )
