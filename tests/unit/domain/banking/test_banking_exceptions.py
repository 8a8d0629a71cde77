"""Unit tests for the banking exception hierarchy."""

from passbook.domain.banking.exceptions import (
    AuthenticationError,
    BankingDomainError,
    BankRequestError,
    DocumentValidationError,
    EmptyDocumentError,
    NetworkError,
    NoAccountsFoundError,
    SessionNotFoundError,
    UnexpectedContentTypeError,
    UnknownBankError,
    UpstreamError,
)
from passbook.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)


class TestErrorCodes:
    """Every failure kind carries a stable code."""

    def test_codes(self):
        assert SessionNotFoundError("td_bank").code == ErrorCode.SESSION_NOT_FOUND
        assert AuthenticationError().code == ErrorCode.BANK_AUTHENTICATION_FAILED
        assert UpstreamError().code == ErrorCode.UPSTREAM_ERROR
        assert NetworkError().code == ErrorCode.NETWORK_ERROR
        assert NoAccountsFoundError("fidelity").code == ErrorCode.NO_ACCOUNTS_FOUND
        assert EmptyDocumentError().code == ErrorCode.EMPTY_DOCUMENT
        assert (
            UnexpectedContentTypeError("text/html", 10).code
            == ErrorCode.UNEXPECTED_CONTENT_TYPE
        )
        assert UnknownBankError("nope").code == ErrorCode.BANK_NOT_FOUND


class TestHierarchy:
    """Callers can catch failures at several levels."""

    def test_request_errors_share_base(self):
        for error in (AuthenticationError(), UpstreamError(), NetworkError()):
            assert isinstance(error, BankRequestError)
            assert isinstance(error, BankingDomainError)
            assert isinstance(error, DomainException)

    def test_document_errors_share_base(self):
        assert isinstance(EmptyDocumentError(), DocumentValidationError)
        assert isinstance(UnexpectedContentTypeError("", 0), DocumentValidationError)

    def test_unknown_bank_is_not_found(self):
        assert isinstance(UnknownBankError("nope"), EntityNotFoundError)


class TestDetails:
    """Errors keep the context needed to tell causes apart."""

    def test_upstream_error_keeps_status_and_reason(self):
        error = UpstreamError(
            "API request failed",
            url="https://bank.example/api",
            status_code=500,
            reason="Internal Server Error",
        )

        assert error.status_code == 500
        assert error.url == "https://bank.example/api"
        assert error.details == {
            "url": "https://bank.example/api",
            "status_code": 500,
            "reason": "Internal Server Error",
        }
        assert str(error) == "API request failed"

    def test_session_not_found_names_bank(self):
        error = SessionNotFoundError("bank_of_america")

        assert error.bank_id == "bank_of_america"
        assert error.details == {"bank_id": "bank_of_america"}
        assert "bank_of_america" in error.message

    def test_repr_includes_code(self):
        assert "UPSTREAM_ERROR" in repr(UpstreamError("boom"))
