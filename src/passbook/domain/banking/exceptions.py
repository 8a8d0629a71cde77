"""Banking domain exceptions.

This module defines the exceptions raised by bank adapters: missing
sessions, classified request failures, empty account lists and rejected
documents.

Request failures are split three ways so callers can tell whether an
auth-refresh retry applies:

- AuthenticationError: the bank answered 401/403
- UpstreamError: the bank answered, but with another non-2xx status or a
  body that does not have the expected shape
- NetworkError: no response was received at all
"""

from passbook.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)

# =============================================================================
# Base Banking Exception
# =============================================================================


class BankingDomainError(DomainException):
    """Base exception for banking domain errors.

    All adapter exceptions inherit from this class to enable consistent
    handling of bank integration issues.
    """


# =============================================================================
# Session Exceptions
# =============================================================================


class SessionNotFoundError(BankingDomainError):
    """Raised when no recognizable session credential exists.

    This is fatal and never retried: the user is not logged in.
    """

    def __init__(
        self,
        bank_id: str,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message or f"No session found for {bank_id}. Please log in first.",
            code=ErrorCode.SESSION_NOT_FOUND,
            details={"bank_id": bank_id},
        )
        self.bank_id = bank_id


# =============================================================================
# Request Exceptions
# =============================================================================


class BankRequestError(BankingDomainError):
    """Base exception for classified request failures."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        url: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            details={"url": url, "status_code": status_code, "reason": reason},
        )
        self.url = url
        self.status_code = status_code
        self.reason = reason


class AuthenticationError(BankRequestError):
    """Raised when the bank rejects the session credential (401/403)."""

    def __init__(
        self,
        message: str = "Bank rejected the session credential",
        url: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.BANK_AUTHENTICATION_FAILED,
            url=url,
            status_code=status_code,
            reason=reason,
        )


class UpstreamError(BankRequestError):
    """Raised on a non-2xx status or a malformed response body.

    The offending status, or a description of the missing field, is kept
    in ``reason`` so causes can be told apart without retrying.
    """

    def __init__(
        self,
        message: str = "Unexpected response from bank",
        url: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.UPSTREAM_ERROR,
            url=url,
            status_code=status_code,
            reason=reason,
        )


class NetworkError(BankRequestError):
    """Raised when the request failed before any response was received."""

    def __init__(
        self,
        message: str = "Network failure while contacting bank",
        url: str | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.NETWORK_ERROR,
            url=url,
            reason=reason,
        )


# =============================================================================
# Account Exceptions
# =============================================================================


class NoAccountsFoundError(BankingDomainError):
    """Raised when the bank reports zero eligible accounts.

    An empty statement list is NOT an error; an empty account list is.
    """

    def __init__(self, bank_id: str, message: str | None = None) -> None:
        super().__init__(
            message=message or f"No accounts found for {bank_id}",
            code=ErrorCode.NO_ACCOUNTS_FOUND,
            details={"bank_id": bank_id},
        )
        self.bank_id = bank_id


# =============================================================================
# Document Exceptions
# =============================================================================


class DocumentValidationError(BankingDomainError):
    """Base exception for post-decode document validation failures."""


class EmptyDocumentError(DocumentValidationError):
    """Raised when the decoded document has zero length."""

    def __init__(self, statement_id: str | None = None) -> None:
        super().__init__(
            message="Downloaded document is empty",
            code=ErrorCode.EMPTY_DOCUMENT,
            details={"statement_id": statement_id} if statement_id else None,
        )


class UnexpectedContentTypeError(DocumentValidationError):
    """Raised when a small response does not look like a document."""

    def __init__(self, content_type: str, size: int) -> None:
        super().__init__(
            message=(
                f"Download failed: received {content_type or 'unknown type'} "
                f"({size} bytes) instead of a document"
            ),
            code=ErrorCode.UNEXPECTED_CONTENT_TYPE,
            details={"content_type": content_type, "size": size},
        )
        self.content_type = content_type
        self.size = size


# =============================================================================
# Registry Exceptions
# =============================================================================


class UnknownBankError(EntityNotFoundError):
    """Raised when no adapter is registered for a bank id."""

    def __init__(self, bank_id: str) -> None:
        super().__init__(
            message=f"No adapter registered for bank '{bank_id}'",
            code=ErrorCode.BANK_NOT_FOUND,
            details={"bank_id": bank_id},
        )
        self.bank_id = bank_id
