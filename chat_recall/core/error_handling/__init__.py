"""
Error Handling Module

Centralized error handling utilities for the chat-recall service: standard
error types, context information, logging, and conversion of domain
exceptions into HTTP responses.

Components:
- ErrorType: Enumeration of standard error types
- ErrorContext: Context information for error handling
- ErrorHandler: Main error handling utility
- ErrorLogger: Centralized error logging utility
"""

from .error_types import ErrorType, ErrorContext
from .error_handler import ErrorHandler
from .error_logger import ErrorLogger

__all__ = [
    'ErrorType',
    'ErrorContext',
    'ErrorHandler',
    'ErrorLogger'
]
