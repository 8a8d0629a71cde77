"""Profile value object."""

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """
    Minimal identity record for one logged-in bank session.

    ``profile_id`` may equal ``session_id`` when the bank has no separate
    identifier; ``profile_name`` falls back to adapter-defined text.
    """

    session_id: str = Field(..., description="Raw credential for authenticated calls")
    profile_id: str = Field(default="", description="Bank-assigned identifier")
    profile_name: str = Field(..., description="Human display name")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.profile_name
