"""
Main Error Handler

Creates standardized HTTPExceptions with proper logging from the domain
exceptions raised by the chat-recall core.
"""

from typing import Optional
from fastapi import HTTPException

from .error_types import ErrorType, ErrorContext
from .error_logger import ErrorLogger
from ..exceptions import (
    ConfigError,
    UpstreamError,
    ValidationError,
)


class ErrorHandler:
    """Centralized error handling utility."""

    @staticmethod
    def create_http_exception(
        error_type: ErrorType,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
        log_error: bool = True,
        **format_kwargs
    ) -> HTTPException:
        """
        Create a standardized HTTPException with proper logging.

        Args:
            error_type: The type of error to create
            context: Error context information
            original_exception: Original exception that caused this error
            log_error: Whether to log the error
            **format_kwargs: Additional kwargs for message formatting

        Returns:
            HTTPException whose detail is the response body
        """
        if context is None:
            context = ErrorContext()

        format_dict = {**context.__dict__, **format_kwargs}
        error_detail = error_type.create_error_detail(**format_dict)

        if log_error:
            ErrorLogger.log_error(
                error_type=error_type,
                context=context,
                original_exception=original_exception,
                **format_kwargs
            )

        return HTTPException(
            status_code=error_type.status_code,
            detail=error_detail
        )

    @staticmethod
    def handle_validation_error(exc: ValidationError, context: ErrorContext) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.INVALID_REQUEST,
            context=context,
            original_exception=exc,
            error_details=exc.message
        )

    @staticmethod
    def handle_config_error(exc: ConfigError, context: ErrorContext) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.CONFIG_ERROR,
            context=context,
            original_exception=exc,
            error_details=exc.message
        )

    @staticmethod
    def handle_upstream_error(exc: UpstreamError, context: ErrorContext) -> HTTPException:
        """Handle provider failures, including timeouts."""
        context.provider_name = exc.provider_name
        ErrorLogger.log_provider_error(
            provider_name=exc.provider_name,
            error_details=exc.message,
            status_code=exc.status_code,
            context=context,
            original_exception=exc.original_exception
        )

        error_type = ErrorType.UPSTREAM_TIMEOUT if exc.is_timeout else ErrorType.UPSTREAM_ERROR
        return ErrorHandler.create_http_exception(
            error_type=error_type,
            context=context,
            original_exception=exc,
            log_error=False,  # Already logged above
            error_details=exc.message
        )

    @staticmethod
    def handle_internal_server_error(
        error_details: str,
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.INTERNAL_SERVER_ERROR,
            context=context,
            original_exception=original_exception,
            error_details=error_details
        )

    @staticmethod
    def from_exception(exc: Exception, context: ErrorContext) -> HTTPException:
        """Map any exception raised by the core onto an HTTPException."""
        if isinstance(exc, ValidationError):
            return ErrorHandler.handle_validation_error(exc, context)
        if isinstance(exc, ConfigError):
            return ErrorHandler.handle_config_error(exc, context)
        if isinstance(exc, UpstreamError):
            return ErrorHandler.handle_upstream_error(exc, context)
        return ErrorHandler.handle_internal_server_error(
            error_details=str(exc) or "Unexpected error",
            context=context,
            original_exception=exc
        )
