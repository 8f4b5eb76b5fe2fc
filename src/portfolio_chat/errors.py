"""Exception hierarchy for the chat client.

Every failure of a turn resolves to one of these, and each carries the
message shown to the user on the failed bot record.
"""

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again later."
RATE_LIMITED_MESSAGE = "You're sending messages too fast. Please wait a moment."
STREAM_UNSUPPORTED_MESSAGE = "Streaming not supported by the server."
EMPTY_TURN_MESSAGE = "No response received. Please try again."
TIMEOUT_MESSAGE = "Request timed out. The server took too long to respond."
UNREACHABLE_MESSAGE = "Can't reach the server right now. The backend may be offline."
CANCELLED_MESSAGE = "Request cancelled."


class ChatError(Exception):
    """Base exception for all chat client errors."""

    default_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimitedError(ChatError):
    """Backend answered 429."""

    default_message = RATE_LIMITED_MESSAGE


class ServerError(ChatError):
    """Backend answered with a non-success status or an unusable body."""

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RequestTimeoutError(ChatError):
    """The single-shot request exceeded its time bound."""

    default_message = TIMEOUT_MESSAGE


class NetworkUnreachableError(ChatError):
    """Low-level connection fault (DNS, refused, reset mid-read).

    Raised by the stream transport, this is the one failure that makes the
    session fall back to the single-shot endpoint.
    """

    default_message = UNREACHABLE_MESSAGE
