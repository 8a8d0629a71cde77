"""Statement value object."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from passbook.domain.banking.value_objects.account import Account
from passbook.domain.shared.clock import as_utc_aware


class Statement(BaseModel):
    """
    Metadata identifying one downloadable statement document.

    ``statement_id`` is opaque per bank but must be enough for a later
    ``download_statement`` call.
    """

    account: Account
    statement_id: str = Field(..., min_length=1)
    statement_date: datetime = Field(..., description="Zone-aware statement date")

    model_config = ConfigDict(frozen=True)

    @field_validator("statement_date")
    @classmethod
    def validate_statement_date(cls, v: datetime) -> datetime:
        return as_utc_aware(v)

    @field_serializer("statement_date", when_used="json")
    def serialize_statement_date(self, value: datetime) -> str:
        return value.isoformat()

    @property
    def statement_date_iso(self) -> str:
        return self.statement_date.isoformat()

    def __str__(self) -> str:
        return f"{self.account.account_name} {self.statement_date.date().isoformat()}"
