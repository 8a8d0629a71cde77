"""Value objects for banking domain."""

from passbook.domain.banking.value_objects.account import (
    Account,
    AccountType,
    mask_from,
)
from passbook.domain.banking.value_objects.binary_content import BinaryContent
from passbook.domain.banking.value_objects.browser_context import BrowserContext
from passbook.domain.banking.value_objects.profile import Profile
from passbook.domain.banking.value_objects.statement import Statement

__all__ = [
    "Account",
    "AccountType",
    "BinaryContent",
    "BrowserContext",
    "Profile",
    "Statement",
    "mask_from",
]
