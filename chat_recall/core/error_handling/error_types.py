"""
Error Types and Context Definitions

Standardized error types and context information used when turning core
failures into API responses.
"""

from enum import Enum
from typing import Dict, Any, Optional
from fastapi import status


class ErrorType(Enum):
    """Enumeration of standard error types in the system."""

    # Validation Errors (400)
    INVALID_REQUEST = ("invalid_request", status.HTTP_400_BAD_REQUEST, "{error_details}")

    # Server Errors (500)
    CONFIG_ERROR = ("config_error", status.HTTP_500_INTERNAL_SERVER_ERROR, "{error_details}")
    UPSTREAM_ERROR = ("upstream_error", status.HTTP_500_INTERNAL_SERVER_ERROR, "{error_details}")
    UPSTREAM_TIMEOUT = ("upstream_timeout", status.HTTP_500_INTERNAL_SERVER_ERROR, "{error_details}")
    INTERNAL_SERVER_ERROR = ("internal_server_error", status.HTTP_500_INTERNAL_SERVER_ERROR, "{error_details}")

    def __init__(self, code: str, status_code: int, message_template: str):
        self.code = code
        self.status_code = status_code
        self.message_template = message_template

    def format_message(self, **kwargs) -> str:
        """Format the error message with provided parameters."""
        try:
            return self.message_template.format(**kwargs)
        except KeyError:
            return self.message_template

    def create_error_detail(self, **kwargs) -> Dict[str, Any]:
        """Create the response body for this error."""
        return {
            "error": self.format_message(**kwargs),
            "code": self.code
        }


class ErrorContext:
    """Context information for error handling."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        session_id: Optional[str] = None,
        model_id: Optional[str] = None,
        endpoint_path: Optional[str] = None,
        provider_name: Optional[str] = None,
        **additional_context
    ):
        self.request_id = request_id
        self.session_id = session_id
        self.model_id = model_id
        self.endpoint_path = endpoint_path
        self.provider_name = provider_name
        self.additional_context = additional_context

    def to_log_extra(self) -> Dict[str, Any]:
        """Convert context to logging extra dictionary."""
        extra = {
            "log_type": "error"
        }

        if self.request_id:
            extra["request_id"] = self.request_id
        if self.session_id:
            extra["session_id"] = self.session_id
        if self.model_id:
            extra["model_id"] = self.model_id
        if self.endpoint_path:
            extra["endpoint_path"] = self.endpoint_path
        if self.provider_name:
            extra["provider_name"] = self.provider_name

        extra.update(self.additional_context)
        return extra
