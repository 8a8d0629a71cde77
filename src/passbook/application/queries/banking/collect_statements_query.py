"""Collect statements - walk one bank session end to end."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from passbook.domain.banking.ports import BankAdapterPort
from passbook.domain.banking.value_objects import (
    Account,
    BinaryContent,
    Profile,
    Statement,
)

logger = logging.getLogger(__name__)


@dataclass
class StatementCollectionResult:
    """Profile, accounts and statement listings of one session."""

    bank_id: str
    profile: Profile
    accounts: list[Account]
    statements_by_account: dict[str, list[Statement]] = field(default_factory=dict)

    @property
    def statement_count(self) -> int:
        return sum(len(s) for s in self.statements_by_account.values())

    def all_statements(self) -> list[Statement]:
        return [s for account in self.accounts for s in self.statements_by_account.get(account.account_id, [])]


class CollectStatementsQuery:
    """Query listing every statement available through one adapter."""

    def __init__(self, bank_adapter: BankAdapterPort):
        self._adapter = bank_adapter

    async def execute(self) -> StatementCollectionResult:
        session_id = self._adapter.get_session_id()
        profile = await self._adapter.get_profile(session_id)
        accounts = await self._adapter.get_accounts(profile)

        listings = await self._list_statements(accounts)
        result = StatementCollectionResult(
            bank_id=self._adapter.bank_id,
            profile=profile,
            accounts=accounts,
            statements_by_account={
                account.account_id: statements
                for account, statements in zip(accounts, listings)
            },
        )
        logger.info(
            "Collected %d statements across %d %s accounts",
            result.statement_count,
            len(accounts),
            self._adapter.bank_name,
        )
        return result

    async def _list_statements(self, accounts: list[Account]) -> list[list[Statement]]:
        """List every account concurrently.

        The first failure cancels the listings still in flight and is raised
        as is.
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(self._adapter.get_statements(account)) for account in accounts]
        except ExceptionGroup as eg:
            raise eg.exceptions[0] from None
        return [task.result() for task in tasks]

    async def download(self, statement: Statement) -> BinaryContent:
        return await self._adapter.download_statement(statement)
