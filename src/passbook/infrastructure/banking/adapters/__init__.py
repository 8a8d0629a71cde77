"""Bank adapters, one module per institution."""

from passbook.infrastructure.banking.adapters.american_express import (
    AmericanExpressAdapter,
)
from passbook.infrastructure.banking.adapters.bank_of_america import (
    BankOfAmericaAdapter,
)
from passbook.infrastructure.banking.adapters.fidelity import FidelityAdapter
from passbook.infrastructure.banking.adapters.questrade import QuestradeAdapter
from passbook.infrastructure.banking.adapters.td_bank import TdBankAdapter

__all__ = [
    "AmericanExpressAdapter",
    "BankOfAmericaAdapter",
    "FidelityAdapter",
    "QuestradeAdapter",
    "TdBankAdapter",
]
