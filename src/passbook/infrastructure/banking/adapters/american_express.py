"""American Express adapter.

Accounts and profile come from the nested-array state embedded in the
overview page. Card statements are listed over REST and downloaded as raw
PDF; checking statements go through GraphQL and arrive base64-encoded.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from passbook.domain.banking.exceptions import NoAccountsFoundError, UpstreamError
from passbook.domain.banking.ports import BankAdapterPort
from passbook.domain.banking.services import (
    StatementCatalog,
    dedupe_accounts,
    month_end,
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
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_binary_response,
    decode_graphql_field,
)
from passbook.infrastructure.banking.http_client import BankHttpClient, require_records
from passbook.infrastructure.banking.session_locators import CookieSessionLocator
from passbook.infrastructure.banking.transit_state import (
    TransitDecodeError,
    find_first,
    first_of,
    parse_initial_state,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://global.americanexpress.com"
FUNCTIONS_URL = "https://functions.americanexpress.com"
GRAPHQL_URL = "https://graph.americanexpress.com/graphql"

DEFAULT_PROFILE_NAME = "American Express"

CHECKING_DOCUMENTS_QUERY = """query bankingAccountDocuments($accountFilter: ProductAccountByAccountNumberProxyInput!, $documentFilter: CheckingAccountStatementInput) {
  productAccountByAccountNumberProxy(filter: $accountFilter) {
    ... on CheckingAccount {
      statements(filter: $documentFilter) {
        document
        identifier
        type
        year
        month
        __typename
      }
      __typename
    }
    __typename
  }
}"""

CHECKING_STATEMENT_QUERY = """query accountDocument($filter: CheckingAccountStatementFilterInput!) {
  checkingAccountStatement(filter: $filter) {
    name
    contentType
    content
    __typename
  }
}"""


@dataclass(frozen=True)
class _RegistryEntry:
    account_id: str
    account_key: str
    product_type: str

    @property
    def is_checking(self) -> bool:
        return "CHECKING" in self.product_type.upper()


class AmericanExpressAdapter(BankAdapterPort):
    """Adapter for American Express cards and checking accounts."""

    def __init__(
        self,
        context: BrowserContext,
        http: BankHttpClient | None = None,
        policy: DocumentPolicy | None = None,
    ):
        self._context = context
        self._http = http or BankHttpClient.for_context(context)
        self._policy = policy or DocumentPolicy()
        self._locator = CookieSessionLocator(self.bank_id, ["JSESSIONID"])
        self._account_keys: dict[str, str] = {}

    @property
    def bank_id(self) -> str:
        return "american_express"

    @property
    def bank_name(self) -> str:
        return "American Express"

    def get_session_id(self) -> str:
        return self._locator.locate(self._context)

    async def _load_state(self) -> Any:
        html = await self._http.get_text(
            f"{BASE_URL}/overview",
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*",
                "Accept-Language": "en-US,en;q=0.9",
            },
        )
        try:
            return parse_initial_state(html)
        except TransitDecodeError as e:
            msg = f"Failed to read overview page state: {e}"
            raise UpstreamError(msg, url=f"{BASE_URL}/overview", reason=str(e)) from e

    async def get_profile(self, session_id: str) -> Profile:
        state = await self._load_state()
        name = find_first(state, "embossed_name")
        return Profile(
            session_id=session_id,
            profile_id=session_id,
            profile_name=name if isinstance(name, str) and name else DEFAULT_PROFILE_NAME,
        )

    @staticmethod
    def _registry_entries(state: Any) -> list[_RegistryEntry]:
        registry = find_first(state, "registry")
        types = registry.get("types") if isinstance(registry, dict) else None
        if not isinstance(types, dict):
            return []

        entries: list[_RegistryEntry] = []
        for product_type, records in types.items():
            if not isinstance(records, list):
                continue
            for record in records:
                account_id = first_of(record, "accountToken", "opaqueAccountId")
                if not account_id:
                    continue
                entries.append(
                    _RegistryEntry(
                        account_id=str(account_id),
                        account_key=str(first_of(record, "accountKey") or ""),
                        product_type=str(product_type),
                    )
                )
        return entries

    async def get_accounts(self, profile: Profile) -> list[Account]:
        state = await self._load_state()
        products = find_first(state, "productsList")
        if not isinstance(products, dict):
            products = {}

        accounts: list[Account] = []
        for entry in self._registry_entries(state):
            details = products.get(entry.account_id)
            if not isinstance(details, dict):
                details = {}
            mask = first_of(
                details.get("account"),
                "display_account_number",
                "displayAccountNumber",
            )
            name = first_of(details.get("product"), "description", "productDisplayName")
            mask = str(mask or "")[-5:]

            if entry.is_checking:
                account_type = AccountType.CHECKING
                default_name = "Checking Account"
            else:
                account_type = AccountType.CREDIT_CARD
                default_name = f"Card ending in {mask}" if mask else "American Express Card"
                self._account_keys.setdefault(entry.account_id, entry.account_key)

            accounts.append(
                Account(
                    profile=profile,
                    account_id=entry.account_id,
                    account_name=str(name or default_name),
                    account_mask=mask,
                    account_type=account_type,
                )
            )

        accounts = dedupe_accounts(accounts)
        if not accounts:
            raise NoAccountsFoundError(self.bank_id)
        logger.info("Found %d American Express accounts", len(accounts))
        return accounts

    async def get_statements(self, account: Account) -> list[Statement]:
        if account.account_type == AccountType.CHECKING:
            return await self._get_checking_statements(account)
        return await self._get_card_statements(account)

    async def _get_card_statements(self, account: Account) -> list[Statement]:
        url = f"{FUNCTIONS_URL}/ReadAccountActivity.web.v1"
        payload = await self._http.request_json(
            "POST",
            url,
            json={
                "accountToken": account.account_id,
                "axplocale": "en-US",
                "view": "STATEMENTS",
            },
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Origin": BASE_URL,
                "ce-source": "WEB",
                "one-data-correlation-id": f"CSR-{uuid.uuid4()}",
            },
        )

        billing = payload.get("billingStatements") if isinstance(payload, dict) else None
        if not isinstance(billing, dict):
            msg = "Invalid response format from ReadAccountActivity API"
            raise UpstreamError(msg, url=url, reason="missing field: billingStatements")

        catalog = StatementCatalog(account)
        for record in [
            *require_records(billing.get("recentStatements"), "billingStatements.recentStatements", url),
            *require_records(billing.get("olderStatements"), "billingStatements.olderStatements", url),
        ]:
            end_date = record.get("statementEndDate")
            pdf_url = first_of(record.get("downloadOptions"), "STATEMENT_PDF") or ""
            statement_id = _encrypted_statement_id(pdf_url)
            if not statement_id and end_date:
                statement_id = f"{account.account_id}-{end_date}"
            catalog.add(statement_id, parse_statement_date(end_date))
        return catalog.statements()

    async def _get_checking_statements(self, account: Account) -> list[Statement]:
        data = await self._graphql(
            "bankingAccountDocuments",
            CHECKING_DOCUMENTS_QUERY,
            {
                "accountFilter": {
                    "productClass": "PERSONAL_CHECKING_ACCOUNT",
                    "accountNumberProxy": account.account_id,
                },
                "documentFilter": {"type": "FINANCIAL"},
            },
        )

        product = data.get("productAccountByAccountNumberProxy")
        records = product.get("statements") if isinstance(product, dict) else None
        catalog = StatementCatalog(account)
        for record in require_records(records, "statements", GRAPHQL_URL):
            catalog.add(record.get("identifier"), _statement_month_end(record))
        return catalog.statements()

    async def download_statement(self, statement: Statement) -> BinaryContent:
        if statement.account.account_type == AccountType.CHECKING:
            data = await self._graphql(
                "accountDocument",
                CHECKING_STATEMENT_QUERY,
                {
                    "filter": {
                        "identifier": statement.statement_id,
                        "accountNumberProxy": statement.account.account_id,
                    }
                },
            )
            return decode_graphql_field(
                data,
                "checkingAccountStatement",
                policy=self._policy,
                statement_id=statement.statement_id,
            )

        account_key = await self._account_key(statement.account)
        response = await self._http.get(
            f"{BASE_URL}/api/servicing/v1/documents/statements/{statement.statement_id}",
            params={"account_key": account_key, "client_id": "OneAmex"},
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
        )
        return decode_binary_response(response, self._policy, statement.statement_id)

    async def _account_key(self, account: Account) -> str:
        if account.account_id not in self._account_keys:
            # The key is only published in the overview state
            for entry in self._registry_entries(await self._load_state()):
                if not entry.is_checking:
                    self._account_keys.setdefault(entry.account_id, entry.account_key)

        account_key = self._account_keys.get(account.account_id)
        if not account_key:
            msg = f"Could not find account key for account {account.account_id}"
            raise UpstreamError(msg, reason="missing field: accountKey")
        return account_key

    async def _graphql(
        self,
        operation_name: str,
        query: str,
        variables: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._http.graphql(
            GRAPHQL_URL,
            operation_name,
            query,
            variables,
            headers={
                "Accept": "*/*",
                "Origin": BASE_URL,
                "ce-source": "WEB",
                "correlation-id": str(uuid.uuid4()),
            },
        )


def _encrypted_statement_id(pdf_url: str) -> str:
    marker = "/statements/"
    if marker not in pdf_url:
        return ""
    tail = pdf_url.split(marker, 1)[1]
    return tail.split("?", 1)[0]


def _statement_month_end(record: dict[str, Any]) -> datetime | None:
    """Month end for a ``year``/``month`` pair; numeric strings are accepted."""
    try:
        year, month = int(record.get("year")), int(record.get("month"))
    except (TypeError, ValueError):
        return None
    if not 1 <= month <= 12:
        return None
    return month_end(year, month)
