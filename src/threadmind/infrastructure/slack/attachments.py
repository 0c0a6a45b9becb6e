"""Attachment decoding for Slack files."""

import asyncio
import base64
import logging

import aiohttp

from threadmind.domain.entities import Attachment, ContentBlock, ContentKind
from threadmind.domain.services import format_file_size
from threadmind.infrastructure.slack.files import FileDownloadError, SlackFileDownloader

logger = logging.getLogger(__name__)

MAX_INLINE_BYTES = 5 * 1024 * 1024


class SlackAttachmentDecoder:
    """AttachmentDecoder for Slack files.

    Images and PDFs are downloaded with the bot token and inlined as base64.
    When that is not possible (no downloader, too large, download failure)
    they degrade to a descriptive text block. Private URLs never end up in
    image or document blocks. Text files become a short descriptive block.
    """

    def __init__(
        self,
        downloader: SlackFileDownloader | None = None,
        max_inline_bytes: int = MAX_INLINE_BYTES,
    ) -> None:
        self._downloader = downloader
        self._max_inline_bytes = max_inline_bytes

    async def decode(self, attachment: Attachment) -> ContentBlock | None:
        match attachment.file_type:
            case "image":
                return await self._inline(
                    attachment, ContentKind.IMAGE, attachment.content_type or "image/png"
                )
            case "document":
                return await self._inline(
                    attachment,
                    ContentKind.DOCUMENT,
                    attachment.content_type or "application/pdf",
                )
            case "text":
                size = format_file_size(attachment.size)
                return ContentBlock.of_text(
                    f"📄 **{attachment.name}** ({size}): {attachment.url}",
                    name=attachment.name,
                )
            case _:
                return None

    async def _inline(
        self,
        attachment: Attachment,
        kind: ContentKind,
        media_type: str,
    ) -> ContentBlock:
        data = await self._download(attachment)
        if data is None:
            size = format_file_size(attachment.size)
            return ContentBlock.of_text(
                f"📎 **{attachment.name}** ({size}, {attachment.file_type}): "
                "content not available",
                name=attachment.name,
            )
        return ContentBlock(
            kind=kind,
            data=base64.b64encode(data).decode("ascii"),
            media_type=media_type,
            name=attachment.name,
        )

    async def _download(self, attachment: Attachment) -> bytes | None:
        if self._downloader is None or not attachment.url:
            return None
        if attachment.size > self._max_inline_bytes:
            logger.info(
                "Not inlining %s: %d bytes exceeds %d",
                attachment.name,
                attachment.size,
                self._max_inline_bytes,
            )
            return None
        try:
            return await self._downloader.download(
                attachment.url, self._max_inline_bytes
            )
        except (FileDownloadError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Could not download %s: %s", attachment.name, e)
            return None
