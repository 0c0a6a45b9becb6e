"""Authenticated download of Slack files."""

import logging

import aiohttp

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileDownloadError(Exception):
    """A Slack file could not be downloaded."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class SlackFileDownloader:
    """Downloads `url_private` files with the bot token.

    Private file URLs only serve the file to authenticated requests, so
    they cannot be handed to the model provider as-is.
    """

    def __init__(self, token: str, timeout_seconds: float = 30.0) -> None:
        """Initialize the downloader.

        Args:
            token: Slack bot token.
            timeout_seconds: Total timeout of one download.
        """
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def download(self, url: str, max_bytes: int) -> bytes:
        """Download a file.

        Args:
            url: Private file URL.
            max_bytes: Largest accepted body.

        Returns:
            File body.

        Raises:
            FileDownloadError: On a non-200 response, a login page instead of
                the file, or a body larger than `max_bytes`.
            aiohttp.ClientError: On connection errors.
        """
        session = self._get_session()
        headers = {"Authorization": f"Bearer {self._token}"}
        async with session.get(url, headers=headers) as response:
            if response.status != 200:
                raise FileDownloadError(url, f"HTTP {response.status}")
            # Slack answers unauthorized file requests with its sign-in page
            if response.content_type == "text/html":
                raise FileDownloadError(url, "received an HTML page")
            if response.content_length is not None and response.content_length > max_bytes:
                raise FileDownloadError(url, f"{response.content_length} bytes")

            body = bytearray()
            async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise FileDownloadError(url, f"more than {max_bytes} bytes")

        logger.debug("Downloaded %s (%d bytes)", url, len(body))
        return bytes(body)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
