"""Questrade adapter.

Authentication is an OIDC bearer token cached by the portal in session
storage. Several client registrations coexist there with different scopes,
so the statement endpoints look for a token carrying the document-centre
scope and fall back to the profile's session token.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from passbook.domain.banking.exceptions import (
    AuthenticationError,
    BankRequestError,
    NoAccountsFoundError,
    UpstreamError,
)
from passbook.domain.banking.ports import BankAdapterPort
from passbook.domain.banking.services import (
    StatementCatalog,
    dedupe_accounts,
    parse_statement_date,
)
from passbook.domain.banking.value_objects import (
    Account,
    AccountType,
    BinaryContent,
    BrowserContext,
    Profile,
    Statement,
    mask_from,
)
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_binary_response,
)
from passbook.infrastructure.banking.http_client import BankHttpClient, require_records
from passbook.infrastructure.banking.session_locators import OidcTokenLocator
from passbook_config.settings import get_settings

logger = logging.getLogger(__name__)

LOGIN_BASE_URL = "https://login.questrade.com"
API_BASE_URL = "https://api.questrade.com"

TOKEN_KEY_PREFIXES = (
    "oidc.user:https://login.questrade.com:",
    "oidc.user:https://login.questrade.com/:",
)
BROAD_SCOPES = ("brokerage.accounts",)
STATEMENT_SCOPES = ("enterprise.document-centre-statement.read",)

DEFAULT_PROFILE_NAME = "User"


def profile_from_claims(claims: dict[str, Any]) -> tuple[str, str] | None:
    """Return ``(profile_id, profile_name)`` from OIDC claims, if named."""
    full_name = f"{claims.get('given_name') or ''} {claims.get('family_name') or ''}".strip()
    name = full_name or claims.get("preferred_username") or claims.get("name")
    if not name:
        return None
    return str(claims.get("user-profile-id") or claims.get("sub") or ""), str(name)


class QuestradeAdapter(BankAdapterPort):
    """Adapter for Questrade brokerage accounts."""

    def __init__(
        self,
        context: BrowserContext,
        http: BankHttpClient | None = None,
        policy: DocumentPolicy | None = None,
    ):
        self._context = context
        self._http = http or BankHttpClient.for_context(context)
        self._policy = policy or DocumentPolicy()
        self._locator = OidcTokenLocator(
            self.bank_id,
            TOKEN_KEY_PREFIXES,
            preferred_scopes=BROAD_SCOPES,
        )

    @property
    def bank_id(self) -> str:
        return "questrade"

    @property
    def bank_name(self) -> str:
        return "Questrade"

    def get_session_id(self) -> str:
        return self._locator.locate(self._context)

    def _statement_token(self, account: Account) -> str:
        token = self._locator.find_token_with_scopes(self._context, STATEMENT_SCOPES)
        if token is None:
            logger.debug("No document-centre token found, using session token")
            return account.profile.session_id
        return token

    @staticmethod
    def _bearer(token: str, accept: str = "application/json") -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": accept}

    def _profile_from_tokens(self) -> tuple[str, str] | None:
        for token in self._locator.tokens(self._context):
            if token.profile:
                found = profile_from_claims(token.profile)
                if found:
                    return found
            if token.id_token:
                try:
                    claims = jwt.decode(token.id_token, options={"verify_signature": False})
                except jwt.PyJWTError as e:
                    logger.debug("Could not decode id_token of %s: %s", token.key, e)
                    continue
                found = profile_from_claims(claims)
                if found:
                    return found
        return None

    async def get_profile(self, session_id: str) -> Profile:
        found = self._profile_from_tokens()
        if found is None:
            try:
                data = await self._http.request_json(
                    "GET",
                    f"{LOGIN_BASE_URL}/connect/userinfo",
                    headers=self._bearer(session_id),
                )
                if isinstance(data, list):
                    data = data[0] if data else {}
                found = profile_from_claims(data) if isinstance(data, dict) else None
            except AuthenticationError:
                raise
            except BankRequestError as e:
                logger.warning("Questrade userinfo unavailable: %s", e.message)

        if found is None:
            return Profile(session_id=session_id, profile_id="", profile_name=DEFAULT_PROFILE_NAME)
        profile_id, profile_name = found
        return Profile(session_id=session_id, profile_id=profile_id, profile_name=profile_name)

    async def get_accounts(self, profile: Profile) -> list[Account]:
        url = f"{API_BASE_URL}/v3/brokerage-accounts"
        data = await self._http.request_json(
            "GET",
            url,
            headers=self._bearer(profile.session_id),
        )
        records = data.get("accounts") if isinstance(data, dict) else None
        if not isinstance(records, list):
            msg = "Invalid response format from brokerage accounts API"
            raise UpstreamError(msg, url=url, reason="missing field: accounts")

        accounts = [
            Account(
                profile=profile,
                account_id=record["key"],
                account_name=(
                    record.get("nickname") or record.get("name") or f"Account {record['number']}"
                ),
                account_mask=mask_from(record["number"]),
                account_type=AccountType.INVESTMENT,
            )
            for record in require_records(records, "accounts", url)
            if record.get("key") and record.get("number")
        ]
        accounts = dedupe_accounts(accounts)
        if not accounts:
            raise NoAccountsFoundError(self.bank_id)
        return accounts

    async def get_statements(self, account: Account) -> list[Statement]:
        url = f"{API_BASE_URL}/v2/document-centre/statement"
        data = await self._http.request_json(
            "GET",
            url,
            params={
                "take": get_settings().questrade_statement_page_size,
                "businessLine": "Brokerage",
            },
            headers=self._bearer(self._statement_token(account)),
        )
        if not isinstance(data, list):
            msg = "Invalid response format from statement API, expected array"
            raise UpstreamError(msg, url=url, reason="body is not an array")

        catalog = StatementCatalog(account)
        for group in require_records(data, "statement groups", url):
            account_uuid = group.get("accountUuid")
            if account_uuid and account_uuid != account.account_id:
                logger.debug("Skipping statements of other account %s", account_uuid)
                continue
            for doc in require_records(group.get("documents"), "documents", url):
                catalog.add(doc.get("id"), parse_statement_date(doc.get("date")))

        if not len(catalog):
            logger.info("No statements found for Questrade account %s", account.account_mask)
        return catalog.statements()

    async def download_statement(self, statement: Statement) -> BinaryContent:
        response = await self._http.get(
            f"{API_BASE_URL}/v2/document-centre/statement/{statement.statement_id}/file",
            headers=self._bearer(self._statement_token(statement.account), "application/pdf"),
        )
        return decode_binary_response(response, self._policy, statement.statement_id)
