"""Conversation window entity (persisted rolling summary)."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class FileDescriptor:
    """ファイル情報（要約に記録される参照ファイル）

    Attributes:
        name: ファイル名
        size: サイズ（バイト）
        type: ファイル種別
        description: 内容の説明
        message_id: 添付されていたメッセージの ID
        uploaded_at: アップロード日時（ISO 8601 文字列）
    """

    name: str
    size: int
    type: str
    description: str = ""
    message_id: str = ""
    uploaded_at: str = ""

    def to_dict(self) -> dict:
        """dict に変換する"""
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "description": self.description,
            "message_id": self.message_id,
            "uploaded_at": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileDescriptor":
        """dict から生成する"""
        return cls(
            name=data.get("name", ""),
            size=int(data.get("size", 0)),
            type=data.get("type", ""),
            description=data.get("description", ""),
            message_id=data.get("message_id", ""),
            uploaded_at=data.get("uploaded_at", ""),
        )


@dataclass(frozen=True)
class ConversationWindow:
    """会話ウィンドウ（チャンネルの一区間の要約）

    (channel_id, window_number) の組み合わせで一意に識別される。
    外部の要約プロセスが作成・更新し、コンテキスト構築では読み取り専用。

    Attributes:
        channel_id: チャンネルキー（スレッドの場合 "{channel_id}:{thread_ts}"）
        window_number: ウィンドウ番号（チャンネル内で一意、1 始まり）
        summary: 要約テキスト
        last_message_id: 要約に含まれる最後のメッセージ ID（境界）
        last_message_timestamp: 境界メッセージの日時
        files_mentioned: 要約内で言及されたファイル
        created_at: 作成日時
        updated_at: 更新日時
    """

    channel_id: str
    window_number: int
    summary: str
    last_message_id: str
    last_message_timestamp: datetime
    files_mentioned: list[FileDescriptor] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.window_number < 1:
            raise ValueError("window_number must be >= 1")
