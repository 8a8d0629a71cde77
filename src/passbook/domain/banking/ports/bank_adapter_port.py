"""Bank adapter port interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from passbook.domain.banking.value_objects import (
        Account,
        BinaryContent,
        Profile,
        Statement,
    )


class BankAdapterPort(ABC):
    """
    Interface every bank adapter satisfies.

    Callers drive all banks through the same sequence:
    get_session_id -> get_profile -> get_accounts -> get_statements
    -> download_statement. Adapters differ only internally.
    """

    @property
    @abstractmethod
    def bank_id(self) -> str:
        """Stable bank identifier (e.g. ``"td_bank"``)."""

    @property
    @abstractmethod
    def bank_name(self) -> str:
        """Human-readable bank name."""

    @abstractmethod
    def get_session_id(self) -> str:
        """
        Read the session credential from ambient storage.

        Returns
        -------
        The raw session credential

        Raises
        ------
        SessionNotFoundError
            If no recognizable credential exists
        """

    @abstractmethod
    async def get_profile(self, session_id: str) -> Profile:
        """
        Resolve the identity behind a session.

        Optional fields degrade to placeholder values instead of failing.

        Parameters
        ----------
        session_id
            Credential returned by ``get_session_id``

        Returns
        -------
        Profile for the session

        Raises
        ------
        AuthenticationError
            If the bank rejects the session outright
        """

    @abstractmethod
    async def get_accounts(self, profile: Profile) -> list[Account]:
        """
        List the accounts visible to a profile.

        Parameters
        ----------
        profile
            Profile returned by ``get_profile``

        Returns
        -------
        Accounts with unique ``account_id`` values

        Raises
        ------
        NoAccountsFoundError
            If the bank reports zero eligible accounts
        UpstreamError
            If the response is malformed
        """

    @abstractmethod
    async def get_statements(self, account: Account) -> list[Statement]:
        """
        List available statements for an account.

        Parameters
        ----------
        account
            Account returned by ``get_accounts``

        Returns
        -------
        Statements sorted newest first with unique ids; empty when the bank
        has none

        Raises
        ------
        UpstreamError
            If the response is malformed
        """

    @abstractmethod
    async def download_statement(self, statement: Statement) -> BinaryContent:
        """
        Download and decode one statement document.

        Parameters
        ----------
        statement
            Statement returned by ``get_statements``

        Returns
        -------
        Non-empty document content

        Raises
        ------
        EmptyDocumentError
            If the decoded content is empty
        UnexpectedContentTypeError
            If a small response does not look like a document
        """
