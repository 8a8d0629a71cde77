"""Shared pytest fixtures for all test domains."""

from tests.shared.fixtures.factories import (
    PDF_BASE64,
    PDF_BYTES,
    make_account,
    make_profile,
    make_statement,
)
from tests.shared.fixtures.mock_bank import MockBank, request_json

__all__ = [
    "MockBank",
    "PDF_BASE64",
    "PDF_BYTES",
    "make_account",
    "make_profile",
    "make_statement",
    "request_json",
]
