"""Binary content value object."""

from pydantic import BaseModel, ConfigDict, Field

PDF_MAGIC = b"%PDF-"


class BinaryContent(BaseModel):
    """Immutable byte buffer plus MIME type returned by a download."""

    data: bytes
    mime_type: str = Field(default="application/pdf")

    model_config = ConfigDict(frozen=True)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_pdf(self) -> bool:
        return "pdf" in self.mime_type.lower() or self.data.startswith(PDF_MAGIC)

    def __str__(self) -> str:
        return f"{self.mime_type} ({self.size} bytes)"
