"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

This package provides:
- Custom exception handling with consistent error responses
- Scanner error taxonomy (ErrorKind, RetryAction, ScannerError)
- FastAPI dependencies for the scanner controller

Modules:
--------
- exceptions: AppException, ScannerError and error factory functions
- dependencies: FastAPI dependency injection functions

Usage:
------
    from livescan.core import AppException, get_controller

    # Or use exception factory functions via module
    from livescan.core import exceptions
    raise exceptions.permission_denied()

==============================================================================
"""

from .exceptions import (
    AppException,
    ErrorKind,
    RetryAction,
    RetryKind,
    ScannerError,
    ScannerErrorInfo,
    register_exception_handlers,
)
from .dependencies import get_controller, get_controller_ws

__all__ = [
    # Exceptions
    "AppException",
    "ErrorKind",
    "RetryAction",
    "RetryKind",
    "ScannerError",
    "ScannerErrorInfo",
    "register_exception_handlers",
    # Dependencies
    "get_controller",
    "get_controller_ws",
]
