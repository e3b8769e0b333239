"""
Domain exceptions raised by the chat-recall core.

These carry no HTTP semantics; ``ErrorHandler`` maps them onto responses at
the API edge.
"""

from typing import Optional


class ChatRecallError(Exception):
    """Base class for all errors raised by the service core."""

    error_code = "chat_recall_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChatRecallError):
    """Malformed or missing request input. The caller has to fix the input."""

    error_code = "invalid_request"


class ConfigError(ChatRecallError):
    """A required credential or parameter is missing after settings resolution."""

    error_code = "config_error"


class UpstreamError(ChatRecallError):
    """The selected provider failed: non-2xx status, bad payload, network error or timeout."""

    error_code = "upstream_error"

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: Optional[int] = None,
        is_timeout: bool = False,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.provider_name = provider_name
        self.status_code = status_code
        self.is_timeout = is_timeout
        self.original_exception = original_exception


class LogStoreConnectionError(ChatRecallError):
    """The log store could not be reached or queried."""

    error_code = "log_store_connection_error"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception


class LogStoreWriteError(ChatRecallError):
    """A log record could not be inserted."""

    error_code = "log_store_write_error"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message)
        self.original_exception = original_exception
