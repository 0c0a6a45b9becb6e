"""Slack chat transport."""

import logging
from datetime import datetime, timezone
from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from threadmind.domain.entities import Attachment, ChannelRef, Message, ThreadInfo, User
from threadmind.domain.exceptions import MessageNotFoundError, ThreadNotFoundError

logger = logging.getLogger(__name__)

# Error codes that mean the thread (or its channel) cannot be found
_THREAD_NOT_FOUND_ERRORS = frozenset(
    {
        "thread_not_found",
        "channel_not_found",
        "message_not_found",
        "not_in_channel",
    }
)

THREAD_NAME_MAX_LENGTH = 80


def ts_to_datetime(ts: str) -> datetime:
    """Convert a Slack timestamp ("1700000000.000100") to a UTC datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


class SlackChatTransport:
    """Slack implementation of ChatTransport.

    Message IDs are Slack timestamps, so "after" / "before" bounds map to
    the `oldest` / `latest` API parameters. A thread is addressed by
    "{channel_id}:{thread_ts}".
    """

    EXCLUDED_SUBTYPES = frozenset(
        {
            "message_changed",
            "message_deleted",
            "channel_join",
            "channel_leave",
        }
    )

    def __init__(self, client: AsyncWebClient) -> None:
        """Initialize the transport.

        Args:
            client: Slack AsyncWebClient.
        """
        self._client = client
        self._user_cache: dict[str, User] = {}

    async def fetch_messages(
        self,
        channel: ChannelRef,
        limit: int,
        after: str | None = None,
        before: str | None = None,
    ) -> list[Message]:
        """Fetch the most recent `limit` messages between two bounds.

        Uses conversations.history for channels and conversations.replies
        for threads (including the parent message).

        Returns:
            Messages in chronological order (oldest first).
        """
        if limit <= 0:
            return []

        bounds: dict[str, Any] = {"inclusive": False}
        if after:
            bounds["oldest"] = after
        if before:
            bounds["latest"] = before

        if channel.thread_ts:
            raw_messages = [
                msg
                for msg in await self._fetch_replies(channel, bounds)
                if self._is_visible(msg)
            ]
        else:
            raw_messages = await self._fetch_history(channel, limit, bounds)

        return [await self._to_message(msg, channel) for msg in raw_messages[-limit:]]

    async def get_message(self, channel: ChannelRef, message_id: str) -> Message:
        """Fetch a single message by its timestamp.

        Raises:
            MessageNotFoundError: If no visible message has that timestamp.
        """
        bounds = {"oldest": message_id, "latest": message_id, "inclusive": True}
        if channel.thread_ts:
            # The parent message is always returned first
            response = await self._client.conversations_replies(
                channel=channel.id, ts=channel.thread_ts, limit=2, **bounds
            )
        else:
            response = await self._client.conversations_history(
                channel=channel.id, limit=1, **bounds
            )

        for msg in response.get("messages", []):
            if msg.get("ts") == message_id and self._is_visible(msg):
                return await self._to_message(msg, channel)
        raise MessageNotFoundError(message_id, channel.key)

    async def get_thread(self, thread_id: str) -> ThreadInfo:
        """Resolve a thread by "{channel_id}:{thread_ts}".

        Raises:
            ThreadNotFoundError: If the ID is malformed or the thread is gone.
        """
        try:
            ref = ChannelRef.from_key(thread_id)
        except ValueError as e:
            raise ThreadNotFoundError(thread_id, f"Invalid thread ID: {thread_id}") from e
        if not ref.thread_ts:
            raise ThreadNotFoundError(thread_id, f"{thread_id} is not a thread ID")

        try:
            response = await self._client.conversations_replies(
                channel=ref.id,
                ts=ref.thread_ts,
                limit=1,
            )
        except SlackApiError as e:
            error_code = (
                e.response.get("error", "") if e.response is not None else ""
            )
            if error_code in _THREAD_NOT_FOUND_ERRORS:
                raise ThreadNotFoundError(thread_id) from e
            raise

        messages = response.get("messages", [])
        if not messages:
            raise ThreadNotFoundError(thread_id)
        return self._to_thread_info(messages[0], ref.id)

    async def list_threads(
        self,
        channel: ChannelRef,
        include_archived: bool = False,
    ) -> list[ThreadInfo]:
        """List threads started in a channel's recent history.

        Slack threads are never archived, so `include_archived` has no effect.

        Returns:
            Threads, most recent activity first.
        """
        response = await self._client.conversations_history(
            channel=channel.id,
            limit=200,
        )
        threads = [
            self._to_thread_info(msg, channel.id)
            for msg in response.get("messages", [])
            if msg.get("reply_count", 0) > 0
        ]
        if not include_archived:
            threads = [t for t in threads if not t.archived]
        threads.sort(
            key=lambda t: t.last_activity or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return threads

    async def create_thread(
        self,
        channel: ChannelRef,
        name: str,
        initial_message: str,
        reason: str = "",
        from_message: Message | None = None,
    ) -> ThreadInfo:
        """Create a thread and post its first message.

        Without `from_message` a starter message carrying the thread name is
        posted to the channel and the thread hangs off it.
        """
        if from_message is not None:
            parent_ts = from_message.channel.thread_ts or from_message.id
        else:
            starter = f"🧵 *{name}*"
            if reason:
                starter += f"\n{reason}"
            response = await self._client.chat_postMessage(
                channel=channel.id,
                text=starter,
            )
            parent_ts = response["ts"]

        await self._client.chat_postMessage(
            channel=channel.id,
            thread_ts=parent_ts,
            text=initial_message,
        )
        logger.info("Created thread %s:%s (%s)", channel.id, parent_ts, name)

        ref = ChannelRef(id=channel.id, thread_ts=parent_ts, name=name)
        return ThreadInfo(
            id=ref.key,
            name=name,
            channel=ref,
            reply_count=1,
            last_activity=datetime.now(timezone.utc),
        )

    async def _fetch_history(
        self,
        channel: ChannelRef,
        limit: int,
        bounds: dict[str, Any],
    ) -> list[dict]:
        """Fetch the most recent `limit` visible channel messages (oldest first).

        Excluded subtypes do not count towards `limit`; further pages are
        requested until enough messages are collected or history runs out.
        """
        collected: list[dict] = []
        cursor: str | None = None
        while len(collected) < limit:
            kwargs: dict[str, Any] = {"channel": channel.id, "limit": limit, **bounds}
            if cursor:
                kwargs["cursor"] = cursor
            response = await self._client.conversations_history(**kwargs)
            collected.extend(
                msg for msg in response.get("messages", []) if self._is_visible(msg)
            )
            metadata = response.get("response_metadata") or {}
            cursor = metadata.get("next_cursor")
            if not response.get("has_more") or not cursor:
                break
        # API returns newest first
        return list(reversed(collected[:limit]))

    async def _fetch_replies(
        self,
        channel: ChannelRef,
        bounds: dict[str, Any],
    ) -> list[dict]:
        """Fetch all thread replies within bounds (oldest first)."""
        raw_messages: list[dict] = []
        cursor: str | None = None
        while True:
            kwargs: dict[str, Any] = {
                "channel": channel.id,
                "ts": channel.thread_ts,
                "limit": 200,
                **bounds,
            }
            if cursor:
                kwargs["cursor"] = cursor
            response = await self._client.conversations_replies(**kwargs)
            raw_messages.extend(response.get("messages", []))
            metadata = response.get("response_metadata") or {}
            cursor = metadata.get("next_cursor")
            if not response.get("has_more") or not cursor:
                break
        return raw_messages

    def _is_visible(self, msg: dict) -> bool:
        return msg.get("subtype") not in self.EXCLUDED_SUBTYPES

    async def _to_message(self, msg: dict, channel: ChannelRef) -> Message:
        """Convert Slack API response to Message entity."""
        user_id = msg.get("user", "")
        if msg.get("bot_id") and not user_id:
            user = User(
                id=msg["bot_id"],
                name=msg.get("username", "") or "bot",
                is_bot=True,
            )
        elif user_id:
            user = await self._get_user_info(user_id)
        else:
            user = User(id="", name="Unknown", is_bot=True)

        attachments = [
            Attachment(
                name=f.get("name", ""),
                size=int(f.get("size", 0)),
                url=f.get("url_private", ""),
                content_type=f.get("mimetype", ""),
            )
            for f in msg.get("files", [])
        ]

        return Message(
            id=msg["ts"],
            channel=channel,
            user=user,
            text=msg.get("text", ""),
            timestamp=ts_to_datetime(msg["ts"]),
            attachments=attachments,
        )

    async def _get_user_info(self, user_id: str) -> User:
        """Get user information (cached per transport)."""
        if user_id in self._user_cache:
            return self._user_cache[user_id]

        user_info = await self._client.users_info(user=user_id)
        user_data = user_info["user"]
        profile = user_data.get("profile") or {}

        user = User(
            id=user_data["id"],
            name=profile.get("display_name") or user_data["name"],
            is_bot=user_data.get("is_bot", False),
        )
        self._user_cache[user_id] = user
        return user

    def _to_thread_info(self, msg: dict, channel_id: str) -> ThreadInfo:
        """Convert a thread parent message to ThreadInfo."""
        thread_ts = msg.get("thread_ts") or msg["ts"]
        text = msg.get("text", "").strip()
        name = text.splitlines()[0] if text else f"Thread {thread_ts}"
        if len(name) > THREAD_NAME_MAX_LENGTH:
            name = name[: THREAD_NAME_MAX_LENGTH - 3] + "..."
        latest_reply = msg.get("latest_reply")

        ref = ChannelRef(id=channel_id, thread_ts=thread_ts, name=name)
        return ThreadInfo(
            id=ref.key,
            name=name,
            channel=ref,
            reply_count=msg.get("reply_count", 0),
            last_activity=ts_to_datetime(latest_reply) if latest_reply else None,
        )
