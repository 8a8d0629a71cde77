"""Account value object."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from passbook.domain.banking.value_objects.profile import Profile


class AccountType(str, Enum):
    """Normalized account-type taxonomy shared by every bank."""

    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT_CARD = "CreditCard"
    INVESTMENT = "Investment"
    LOAN = "Loan"


class Account(BaseModel):
    """
    Value object representing one financial account at a bank.

    The account references exactly one profile; ``account_id`` is unique
    within a single ``get_accounts`` result.
    """

    profile: Profile
    account_id: str = Field(..., min_length=1, description="Bank account identifier")
    account_name: str = Field(..., description="Display name")
    account_mask: str = Field(
        default="",
        max_length=5,
        description="Tail of the account number as displayed by the bank",
    )
    account_type: AccountType

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        mask = f" ({self.account_mask})" if self.account_mask else ""
        return f"{self.account_name}{mask}"


def mask_from(raw_number: str | None, length: int = 4) -> str:
    """Return the tail of a raw account number for display."""
    if not raw_number:
        return ""
    return str(raw_number).strip()[-length:]
