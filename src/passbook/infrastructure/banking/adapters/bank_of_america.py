"""Bank of America adapter.

Account identifiers (``adx``) are scraped from the accounts overview page;
everything else goes through the ``gatherDocuments`` endpoint, which only
answers one calendar year per call.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from passbook.domain.banking.exceptions import (
    BankingDomainError,
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
)
from passbook.domain.shared.clock import statement_years, today_utc
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_binary_response,
)
from passbook.infrastructure.banking.http_client import BankHttpClient, require_records
from passbook.infrastructure.banking.session_locators import CookieSessionLocator
from passbook.infrastructure.banking.transit_state import first_of
from passbook_config.settings import get_settings

logger = logging.getLogger(__name__)

BASE_URL = "https://secure.bankofamerica.com"
OVERVIEW_URL = f"{BASE_URL}/myaccounts/brain/redirect.go"
GATHER_DOCUMENTS_URL = f"{BASE_URL}/mycommunications/omni/statements/rest/v1/gatherDocuments"
DOWNLOAD_URL = f"{BASE_URL}/mycommunications/omni/statements/rest/v1/docViewDownload"

STATEMENT_CATEGORY_ID = "DISPFLD001"
STATEMENT_ID_SEPARATOR = "|"
DEFAULT_PROFILE_NAME = "Bank of America User"

# Error pages are small; real statements rarely are
DOCUMENT_POLICY = DocumentPolicy(min_plausible_size=100_000)

_ADX_PATTERNS = (
    re.compile(r'data-adx="([0-9a-f]{64})"', re.IGNORECASE),
    re.compile(r"[?&]adx=([0-9a-f]{64})", re.IGNORECASE),
    re.compile(r'"adx"\s*:\s*"([0-9a-f]{64})"', re.IGNORECASE),
)
_ELIGIBILITY_PATTERN = re.compile(r"profile\.eligibility=([A-Z0-9]+)")
_NAME_PATTERNS = (
    re.compile(r'<span[^>]*class="[^"]*name[^"]*"[^>]*>([^<]+)<', re.IGNORECASE),
    re.compile(r"Hello,?\s+([^<]+)<", re.IGNORECASE),
)
_TRAILING_DIGITS = re.compile(r"(\d{4})$")


def extract_account_adx(html: str) -> list[str]:
    """Collect unique ``adx`` identifiers in page order."""
    found: dict[str, None] = {}
    for pattern in _ADX_PATTERNS:
        for match in pattern.finditer(html):
            found.setdefault(match.group(1))
    return list(found)


def map_account_type(record: dict[str, Any]) -> AccountType:
    if record.get("creditCardAccountIndicator") is True:
        return AccountType.CREDIT_CARD
    if record.get("productCode") == "PER" and record.get("groupCode") == "SAV":
        return AccountType.SAVINGS
    return AccountType.CHECKING


def split_statement_id(statement_id: str, default_adx: str) -> tuple[str, str]:
    """Split ``adx|docId`` back into its parts."""
    adx, sep, doc_id = statement_id.partition(STATEMENT_ID_SEPARATOR)
    if not sep:
        return default_adx, statement_id
    return adx, doc_id


class BankOfAmericaAdapter(BankAdapterPort):
    """Adapter for Bank of America deposit and card accounts."""

    def __init__(
        self,
        context: BrowserContext,
        http: BankHttpClient | None = None,
        policy: DocumentPolicy | None = None,
    ):
        self._context = context
        self._http = http or BankHttpClient.for_context(context)
        self._policy = policy or DOCUMENT_POLICY
        self._locator = CookieSessionLocator(self.bank_id, ["CSID"])

    @property
    def bank_id(self) -> str:
        return "bank_of_america"

    @property
    def bank_name(self) -> str:
        return "Bank of America"

    def get_session_id(self) -> str:
        return self._locator.locate(self._context)

    async def _overview_html(self) -> str:
        return await self._http.get_text(
            OVERVIEW_URL,
            params={"target": "accountsoverview"},
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*",
                "Accept-Language": "en-US",
                "Upgrade-Insecure-Requests": "1",
            },
        )

    async def _gather_documents(self, adx: str, year: int) -> dict[str, Any]:
        data = await self._http.request_json(
            "POST",
            GATHER_DOCUMENTS_URL,
            json={"adx": adx, "year": str(year), "docCategoryId": STATEMENT_CATEGORY_ID},
            headers={
                "Accept": "*/*",
                "Content-Type": "application/json;charset=UTF-8",
                "Origin": BASE_URL,
                "X-Requested-With": "XMLHttpRequest",
            },
        )
        if not isinstance(data, dict):
            msg = f"Invalid response format from gatherDocuments for year {year}"
            raise UpstreamError(msg, url=GATHER_DOCUMENTS_URL, reason="body is not an object")
        if data.get("status") != "SUCCESS":
            error_info = data.get("errorInfo")
            first_error = error_info[0] if isinstance(error_info, list) and error_info else None
            detail = first_of(first_error, "message") or "Unknown error"
            msg = f"gatherDocuments returned error status for year {year}: {detail}"
            raise UpstreamError(msg, url=GATHER_DOCUMENTS_URL, reason=str(data.get("status")))
        return data

    async def get_profile(self, session_id: str) -> Profile:
        html = await self._overview_html()

        eligibility = _ELIGIBILITY_PATTERN.search(html)
        if eligibility is None:
            logger.warning("Profile eligibility not found on overview page")
        profile_name = DEFAULT_PROFILE_NAME
        for pattern in _NAME_PATTERNS:
            match = pattern.search(html)
            if match:
                profile_name = match.group(1).strip()
                break

        return Profile(
            session_id=session_id,
            profile_id=eligibility.group(1) if eligibility else session_id,
            profile_name=profile_name,
        )

    async def get_accounts(self, profile: Profile) -> list[Account]:
        adx_values = extract_account_adx(await self._overview_html())
        if not adx_values:
            raise NoAccountsFoundError(self.bank_id, "No accounts found in accounts overview page")

        data = await self._gather_documents(adx_values[0], today_utc().year)
        accounts: list[Account] = []
        for record in require_records(data.get("accountList"), "accountList", GATHER_DOCUMENTS_URL):
            adx = record.get("adx")
            if not adx:
                continue
            display_name = record.get("accountDisplayName") or ""
            digits = _TRAILING_DIGITS.search(display_name)
            accounts.append(
                Account(
                    profile=profile,
                    account_id=adx,
                    account_name=display_name,
                    account_mask=digits.group(1) if digits else adx[-4:],
                    account_type=map_account_type(record),
                )
            )

        accounts = dedupe_accounts(accounts)
        if not accounts:
            raise NoAccountsFoundError(self.bank_id)
        return accounts

    async def get_statements(self, account: Account) -> list[Statement]:
        catalog = StatementCatalog(account)

        for year in statement_years(get_settings().statement_lookback_years):
            data = await self._gather_documents(account.account_id, year)
            for doc in require_records(data.get("documentList"), "documentList", GATHER_DOCUMENTS_URL):
                doc_adx = doc.get("adx")
                if doc_adx and doc_adx != account.account_id:
                    continue
                if (
                    doc.get("docCategoryId") != STATEMENT_CATEGORY_ID
                    and doc.get("docCategory") != "Statements"
                ):
                    continue
                if not doc.get("docId"):
                    continue

                statement_date = parse_statement_date(doc.get("date"))
                if statement_date is None:
                    statement_date = parse_statement_date(doc.get("dateString"))
                statement_id = f"{doc_adx or account.account_id}{STATEMENT_ID_SEPARATOR}{doc['docId']}"
                catalog.add(statement_id, statement_date)

        return catalog.statements()

    async def download_statement(self, statement: Statement) -> BinaryContent:
        adx, document_id = split_statement_id(statement.statement_id, statement.account.account_id)

        # Rotates session cookies and entitlement; the download may work without it
        try:
            await self._gather_documents(adx, statement.statement_date.year)
        except BankingDomainError as e:
            logger.warning("Pre-download refresh failed, proceeding anyway: %s", e.message)

        response = await self._http.get(
            DOWNLOAD_URL,
            params={
                "adx": adx,
                "documentId": document_id,
                "adaDocumentFlag": "N",
                "menuFlag": "download",
                "request_locale": "en-US",
            },
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
                "Cache-Control": "no-cache",
                "Upgrade-Insecure-Requests": "1",
            },
        )
        return decode_binary_response(response, self._policy, statement.statement_id)
