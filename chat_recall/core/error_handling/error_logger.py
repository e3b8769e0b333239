"""
Error Logging Utility

Consistent error logging for the chat-recall service.
"""

from typing import Dict, Any, Optional
from .error_types import ErrorType, ErrorContext
from ..logging import logger


class ErrorLogger:
    """Error logger built on the shared service logger."""

    @staticmethod
    def log_error(
        error_type: ErrorType,
        context: ErrorContext,
        original_exception: Optional[Exception] = None,
        additional_data: Optional[Dict[str, Any]] = None,
        **format_kwargs
    ):
        log_extra = context.to_log_extra()
        log_extra["error_code"] = error_type.code
        log_extra["http_status_code"] = error_type.status_code

        if additional_data:
            log_extra.update(additional_data)

        log_message = error_type.format_message(**{**context.__dict__, **format_kwargs})

        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__

        # Client errors are expected traffic and do not deserve a traceback.
        if error_type.status_code < 500:
            logger.warning(log_message, **log_extra)
        else:
            logger.error(log_message, exc_info=original_exception is not None, **log_extra)

    @staticmethod
    def log_provider_error(
        provider_name: str,
        error_details: str,
        status_code: Optional[int],
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ):
        """Log provider-specific errors."""
        log_extra = context.to_log_extra()
        log_extra.update({
            "provider_name": provider_name,
            "provider_error_details": error_details,
            "provider_status_code": status_code,
            "error_code": "upstream_error",
        })

        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__

        logger.error(
            f"Provider '{provider_name}' returned error {status_code}: {error_details}",
            exc_info=original_exception is not None,
            **log_extra
        )
