"""Session locators - find a bank credential in the browser context.

Two strategies are provided:

- CookieSessionLocator: named cookies in priority order
- OidcTokenLocator: OIDC user records cached in the token store
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

from passbook.domain.banking.exceptions import SessionNotFoundError
from passbook.domain.banking.value_objects import BrowserContext

logger = logging.getLogger(__name__)


class CookieSessionLocator:
    """Return the first present cookie out of a priority-ordered list."""

    def __init__(self, bank_id: str, cookie_names: Sequence[str]):
        if not cookie_names:
            msg = "At least one cookie name is required"
            raise ValueError(msg)
        self._bank_id = bank_id
        self._cookie_names = tuple(cookie_names)

    @property
    def cookie_names(self) -> tuple[str, ...]:
        return self._cookie_names

    def locate(self, context: BrowserContext) -> str:
        cookies = context.cookies()
        for name in self._cookie_names:
            value = cookies.get(name)
            if value:
                return value

        names = " or ".join(self._cookie_names)
        msg = f"{names} cookie not found. Please ensure you are logged in."
        raise SessionNotFoundError(self._bank_id, msg)


@dataclass(frozen=True)
class OidcToken:
    """One decoded OIDC user record from the token store."""

    key: str
    access_token: str
    scopes: frozenset[str]
    id_token: str | None = None
    profile: dict[str, Any] | None = None

    def has_scopes(self, required: Sequence[str]) -> bool:
        # Partial matches count, e.g. "document-centre-statement.read"
        return all(any(req in scope for scope in self.scopes) for req in required)


class OidcTokenLocator:
    """
    Scan the token store for OIDC user records of one institution.

    Keys look like ``oidc.user:<authority>:<client-id>``; some clients store
    the authority with a trailing slash, so every configured prefix is
    checked.
    """

    def __init__(
        self,
        bank_id: str,
        key_prefixes: Sequence[str],
        preferred_scopes: Sequence[str] = (),
    ):
        self._bank_id = bank_id
        self._key_prefixes = tuple(key_prefixes)
        self._preferred_scopes = tuple(preferred_scopes)

    def _matching_keys(self, context: BrowserContext) -> list[str]:
        return [
            key
            for key in context.keys()
            if any(key.startswith(prefix) for prefix in self._key_prefixes)
        ]

    def tokens(self, context: BrowserContext) -> list[OidcToken]:
        """Decode every matching record that carries an access token."""
        tokens: list[OidcToken] = []
        for key in self._matching_keys(context):
            raw = context.get_item(key)
            if not raw:
                continue
            try:
                record = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring undecodable token record %s", key)
                continue
            if not isinstance(record, dict):
                continue
            access_token = record.get("access_token")
            if not access_token or not isinstance(access_token, str):
                continue
            scope = record.get("scope") or ""
            profile = record.get("profile")
            tokens.append(
                OidcToken(
                    key=key,
                    access_token=access_token,
                    scopes=frozenset(str(scope).split()),
                    id_token=record.get("id_token") if isinstance(record.get("id_token"), str) else None,
                    profile=profile if isinstance(profile, dict) else None,
                )
            )
        return tokens

    def locate(self, context: BrowserContext) -> str:
        """Return the access token with the broadest access."""
        if not self._matching_keys(context):
            msg = (
                f"{self._bank_id} session not found. Please ensure you are "
                "logged in so the OIDC token is available."
            )
            raise SessionNotFoundError(self._bank_id, msg)

        tokens = self.tokens(context)
        if not tokens:
            msg = f"{self._bank_id} token records contain no access token"
            raise SessionNotFoundError(self._bank_id, msg)

        preferred = [t for t in tokens if t.has_scopes(self._preferred_scopes)]
        candidates = preferred or tokens
        best = max(candidates, key=lambda t: len(t.scopes))
        logger.debug("Using token %s (%d scopes)", best.key, len(best.scopes))
        return best.access_token

    def find_token_with_scopes(
        self,
        context: BrowserContext,
        required_scopes: Sequence[str],
    ) -> str | None:
        """Return a token granting every required scope, or None."""
        for token in self.tokens(context):
            if token.scopes and token.has_scopes(required_scopes):
                return token.access_token
        return None
