"""Shared domain exceptions and error codes.

This module defines the base exception hierarchy and error codes for the
entire domain layer. All domain exceptions should inherit from DomainException
so callers can handle every adapter failure in one place.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for callers.

    These codes are part of the public contract. Should not be changed.
    """

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FORMAT = "INVALID_FORMAT"

    # Not Found Errors
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    BANK_NOT_FOUND = "BANK_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NO_ACCOUNTS_FOUND = "NO_ACCOUNTS_FOUND"

    # Banking Errors
    BANK_AUTHENTICATION_FAILED = "BANK_AUTHENTICATION_FAILED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"

    # Document Errors
    EMPTY_DOCUMENT = "EMPTY_DOCUMENT"
    UNEXPECTED_CONTENT_TYPE = "UNEXPECTED_CONTENT_TYPE"

    # General Errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainException(Exception):  # NOQA: N818
    """Base exception for all domain-related errors.

    Attributes
    ----------
    message
        Human-readable error message
    code
        Stable error code for programmatic handling
    details
        Optional additional context (status codes, urls, missing fields)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code.value!r}, "
            f"details={self.details!r})"
        )


class EntityNotFoundError(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(
        self,
        message: str = "Entity not found",
        code: ErrorCode = ErrorCode.ENTITY_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, details=details)
