"""
Error Handling Module

Centralized error handling utilities for the chat relay.

Components:
- ErrorType: Enumeration of standard error types
- ErrorContext: Context information for error handling
- ErrorHandler: Builds HTTPExceptions for rejections issued before any upstream call
- ErrorLogger: Centralized error logging utility

The mapping of upstream failures into the caller-visible completion shape lives
in ``error_mapper`` and is imported from there directly.
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
