"""Slack integration."""

from threadmind.infrastructure.slack.attachments import SlackAttachmentDecoder
from threadmind.infrastructure.slack.files import FileDownloadError, SlackFileDownloader
from threadmind.infrastructure.slack.transport import SlackChatTransport

__all__ = [
    "FileDownloadError",
    "SlackAttachmentDecoder",
    "SlackChatTransport",
    "SlackFileDownloader",
]
