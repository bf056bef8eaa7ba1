"""Error taxonomy for the alert-to-order pipeline.

None of these messages may carry API keys or secrets; callers pass only
vendor codes/messages and human-readable reasons.
"""


class RelayError(Exception):
    """Base class for all relay failures."""


class NotFoundError(RelayError):
    """Webhook token unknown, expired or orphaned. Deliberately opaque."""

    def __init__(self, message: str = "Invalid or expired webhook"):
        super().__init__(message)
        self.message = message


class ValidationError(RelayError):
    """Missing credentials or a malformed alert payload."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(RelayError):
    """The exchange could not be reached or returned an unreadable response."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ExchangeError(RelayError):
    """The exchange rejected the request with a non-zero return code."""

    def __init__(self, code, message: str):
        super().__init__(f"Bybit API error {code}: {message}")
        self.code = code
        self.message = message


class PersistenceWarning(UserWarning):
    """Trade log or bot counter update failed after the order went through."""
