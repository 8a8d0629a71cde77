"""Banking infrastructure adapters."""

from passbook.infrastructure.banking.adapters import (
    AmericanExpressAdapter,
    BankOfAmericaAdapter,
    FidelityAdapter,
    QuestradeAdapter,
    TdBankAdapter,
)
from passbook.infrastructure.banking.auth_refresh import AuthRefreshPolicy
from passbook.infrastructure.banking.content_decoder import DocumentPolicy
from passbook.infrastructure.banking.http_client import BankHttpClient
from passbook.infrastructure.banking.registry import (
    BankAdapterRegistry,
    default_registry,
)

__all__ = [
    "AmericanExpressAdapter",
    "AuthRefreshPolicy",
    "BankAdapterRegistry",
    "BankHttpClient",
    "BankOfAmericaAdapter",
    "DocumentPolicy",
    "FidelityAdapter",
    "QuestradeAdapter",
    "TdBankAdapter",
    "default_registry",
]
