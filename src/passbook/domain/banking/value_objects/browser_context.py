"""Browser context value object.

The host environment owns cookies and token storage. Adapters only ever
see this read-only snapshot, which keeps session discovery deterministic.
"""

from pydantic import BaseModel, ConfigDict, Field


class BrowserContext(BaseModel):
    """Read-only snapshot of ambient session storage."""

    cookie_string: str = Field(default="", description="document.cookie style string")
    token_store: dict[str, str] = Field(
        default_factory=dict,
        description="Key-value token storage (e.g. sessionStorage)",
    )

    model_config = ConfigDict(frozen=True)

    def cookies(self) -> dict[str, str]:
        """Parse the semicolon-delimited cookie string.

        The first occurrence of a name wins; values may contain ``=``.
        """
        parsed: dict[str, str] = {}
        for part in self.cookie_string.split(";"):
            name, sep, value = part.strip().partition("=")
            if not sep or not name:
                continue
            parsed.setdefault(name, value.strip())
        return parsed

    def get_cookie(self, name: str) -> str | None:
        return self.cookies().get(name)

    def keys(self) -> list[str]:
        return list(self.token_store.keys())

    def get_item(self, key: str) -> str | None:
        return self.token_store.get(key)
