"""Banking queries."""

from passbook.application.queries.banking.collect_statements_query import (
    CollectStatementsQuery,
    StatementCollectionResult,
)

__all__ = [
    "CollectStatementsQuery",
    "StatementCollectionResult",
]
