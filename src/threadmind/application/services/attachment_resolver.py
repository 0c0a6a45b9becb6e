"""Attachment collection, deduplication and prioritization."""

import logging
from dataclasses import dataclass
from datetime import datetime

from threadmind.domain.entities import Attachment, ContentBlock, Message
from threadmind.domain.services import (
    AttachmentDecoder,
    ChatTransport,
    describe_attachment,
)

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 21

# Lower sorts first
_TYPE_PRIORITY = {"image": 0, "document": 1, "text": 2, "unknown": 3}


@dataclass(frozen=True)
class _Candidate:
    attachment: Attachment
    message_id: str
    timestamp: datetime
    is_current_message: bool


class DeduplicatingAttachmentResolver:
    """AttachmentResolver over a chat transport.

    Collects attachments from the current message and a bounded scan of
    recent history, keeps one attachment per (name, size) and orders them:
    current-message files first, then images, documents, text, and the
    newest first within the same type.
    """

    def __init__(self, transport: ChatTransport, decoder: AttachmentDecoder) -> None:
        self._transport = transport
        self._decoder = decoder

    async def resolve(
        self,
        message: Message,
        message_limit: int = DEFAULT_SCAN_LIMIT,
    ) -> list[ContentBlock]:
        """Resolve reference documents for a message.

        Args:
            message: Current message.
            message_limit: Number of recent messages to scan.

        Returns:
            Content blocks in priority order. Attachments the decoder cannot
            handle are described as text.
        """
        candidates = await self._collect(message, message_limit)
        unique = self._deduplicate(candidates)
        ordered = self._sort_by_priority(unique)

        blocks: list[ContentBlock] = []
        for candidate in ordered:
            attachment = candidate.attachment
            try:
                block = await self._decoder.decode(attachment)
            except Exception as e:
                logger.error("Error processing %s: %s", attachment.name, e)
                block = None

            if block is None:
                blocks.append(
                    ContentBlock.of_text(describe_attachment(attachment), name=attachment.name)
                )
                continue

            blocks.append(block)
            logger.debug(
                "Processed: %s (%s)",
                attachment.name,
                "current" if candidate.is_current_message else "history",
            )

        if blocks:
            logger.info("Resolved %d reference documents", len(blocks))
        return blocks

    async def _collect(self, message: Message, message_limit: int) -> list[_Candidate]:
        candidates = [
            _Candidate(
                attachment=attachment,
                message_id=message.id,
                timestamp=message.timestamp,
                is_current_message=True,
            )
            for attachment in message.attachments
        ]

        try:
            history = await self._transport.fetch_messages(
                message.channel, message_limit or DEFAULT_SCAN_LIMIT
            )
        except Exception as e:
            logger.error("Error fetching message history for attachments: %s", e)
            return candidates

        for past in history:
            if past.id == message.id:
                continue
            for attachment in past.attachments:
                candidates.append(
                    _Candidate(
                        attachment=attachment,
                        message_id=past.id,
                        timestamp=past.timestamp,
                        is_current_message=False,
                    )
                )
        return candidates

    def _deduplicate(self, candidates: list[_Candidate]) -> list[_Candidate]:
        """Keep one candidate per (name, size): current message, then newest."""
        best: dict[tuple[str, int], _Candidate] = {}
        for candidate in candidates:
            key = (candidate.attachment.name, candidate.attachment.size)
            existing = best.get(key)
            if existing is None or self._preferred(candidate, existing):
                if existing is not None:
                    logger.debug("Skipping duplicate: %s", existing.attachment.name)
                best[key] = candidate
        return list(best.values())

    @staticmethod
    def _preferred(candidate: _Candidate, existing: _Candidate) -> bool:
        if candidate.is_current_message != existing.is_current_message:
            return candidate.is_current_message
        return candidate.timestamp > existing.timestamp

    @staticmethod
    def _sort_by_priority(candidates: list[_Candidate]) -> list[_Candidate]:
        return sorted(
            candidates,
            key=lambda c: (
                not c.is_current_message,
                _TYPE_PRIORITY[c.attachment.file_type],
                -c.timestamp.timestamp(),
            ),
        )
