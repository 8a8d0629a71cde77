"""Domain services for statement cataloguing."""

from passbook.domain.banking.services.statement_catalog import (
    StatementCatalog,
    dedupe_accounts,
)
from passbook.domain.banking.services.statement_dates import (
    month_end,
    parse_statement_date,
)

__all__ = [
    "StatementCatalog",
    "dedupe_accounts",
    "month_end",
    "parse_statement_date",
]
