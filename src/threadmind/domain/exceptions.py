"""Domain exceptions."""


class QueryValidationError(ValueError):
    """Invalid delegate query input.

    Raised before any network call is attempted.
    """


class UpstreamUnavailableError(Exception):
    """Upstream dependency unavailable (circuit open or retries exhausted).

    Attributes:
        service: Name of the guarded service.
    """

    def __init__(self, service: str, message: str = "") -> None:
        self.service = service
        super().__init__(message or f"{service} is temporarily unavailable")


class GatewayNotConfiguredError(RuntimeError):
    """A capability was invoked without its required collaborators."""


class ThreadNotFoundError(LookupError):
    """スレッドが見つからない場合に発生する例外"""

    def __init__(self, thread_id: str, message: str = "") -> None:
        """初期化

        Args:
            thread_id: 見つからなかったスレッドのID
            message: エラーメッセージ（オプション）
        """
        self.thread_id = thread_id
        super().__init__(message or f"Thread {thread_id} not found")


class MessageNotFoundError(LookupError):
    """メッセージが見つからない場合に発生する例外"""

    def __init__(self, message_id: str, channel_key: str) -> None:
        self.message_id = message_id
        self.channel_key = channel_key
        super().__init__(f"Message {message_id} not found in {channel_key}")
