"""Port interfaces for banking operations.

These interfaces define what callers need from a bank adapter.
Implementations (adapters) are provided in the infrastructure layer.
"""

from passbook.domain.banking.ports.bank_adapter_port import BankAdapterPort

__all__ = [
    "BankAdapterPort",
]
