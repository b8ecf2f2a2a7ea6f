"""
Exception hierarchy for streambot.

Recoverable chat API errors (invalid cursor, network) are retried by the
ingestion engine. Configuration errors are raised at connect time and never
defaulted away.
"""


class StreambotError(Exception):
    """Base class for all streambot errors."""


class ConfigurationError(StreambotError):
    """Missing or unusable configuration (no chat target, no credentials)."""


class ValidationError(StreambotError):
    """Invalid input for a stored record."""


class ChatAPIError(StreambotError):
    """A live chat API call failed."""

    def __init__(self, message: str, reason: str = "", status_code: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class InvalidCursorError(ChatAPIError):
    """The stored page token was rejected; the feed must be primed again."""


class LiveChatEndedError(ChatAPIError):
    """The live chat has ended, was removed, or chat is disabled."""


class TransportError(StreambotError):
    """Sending a message through a transport failed."""


class YouTubeAPIError(ChatAPIError):
    """Any other YouTube Data API failure."""
