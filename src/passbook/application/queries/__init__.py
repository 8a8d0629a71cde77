"""Application queries."""

from passbook.application.queries.banking import (
    CollectStatementsQuery,
    StatementCollectionResult,
)

__all__ = [
    "CollectStatementsQuery",
    "StatementCollectionResult",
]
