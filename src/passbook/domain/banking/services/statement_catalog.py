"""Statement and account catalog rules shared by every adapter."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from passbook.domain.banking.value_objects import Account, Statement

logger = logging.getLogger(__name__)


class StatementCatalog:
    """
    Collects statements from one or more source pages.

    Records without a usable date are dropped. Duplicate ids across
    overlapping pages keep their first occurrence. The final list is sorted
    newest first; ties keep insertion order.
    """

    def __init__(self, account: Account):
        self._account = account
        self._statements: dict[str, Statement] = {}
        self._dropped = 0

    def add(self, statement_id: str | None, statement_date: datetime | None) -> bool:
        """Add one record. Returns False when it was dropped or duplicated."""
        if not statement_id:
            self._dropped += 1
            return False
        if statement_date is None:
            logger.debug("Dropping statement %s without usable date", statement_id)
            self._dropped += 1
            return False
        if statement_id in self._statements:
            return False

        self._statements[statement_id] = Statement(
            account=self._account,
            statement_id=statement_id,
            statement_date=statement_date,
        )
        return True

    @property
    def dropped(self) -> int:
        return self._dropped

    def __len__(self) -> int:
        return len(self._statements)

    def statements(self) -> list[Statement]:
        # sorted() is stable, so equal dates keep page order
        return sorted(
            self._statements.values(),
            key=lambda s: s.statement_date,
            reverse=True,
        )


def dedupe_accounts(accounts: Iterable[Account]) -> list[Account]:
    """Keep the first account for each ``account_id``."""
    seen: dict[str, Account] = {}
    for account in accounts:
        if account.account_id in seen:
            logger.debug("Skipping duplicate account %s", account.account_id)
            continue
        seen[account.account_id] = account
    return list(seen.values())
