"""Fidelity Investments adapter.

Brokerage statements are listed over GraphQL and fetched as PDF over REST;
credit card statements live behind a separate GraphQL service that returns
the document base64-encoded.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timezone
from typing import Any

from passbook.domain.banking.exceptions import NoAccountsFoundError, UpstreamError
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
from passbook.domain.shared.clock import today_utc
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_binary_response,
    decode_graphql_field,
)
from passbook.infrastructure.banking.http_client import BankHttpClient, require_records
from passbook.infrastructure.banking.session_locators import CookieSessionLocator
from passbook_config.settings import get_settings

logger = logging.getLogger(__name__)

BASE_URL = "https://digital.fidelity.com"
PORTFOLIO_GRAPHQL_URL = f"{BASE_URL}/ftgw/digital/portfolio/api/graphql"
DOCUMENTS_GRAPHQL_URL = f"{BASE_URL}/ftgw/digital/documents/api/graphql"
CREDIT_CARD_GRAPHQL_URL = f"{BASE_URL}/ftgw/digital/credit-card/api/graphql"
PDF_BASE_URL = f"{BASE_URL}/ftgw/digital/documents/PDFStatement"

CREDIT_CARD_TYPE = "Fidelity Credit Card"
DEFAULT_PROFILE_NAME = "Fidelity Customer"

_CREDIT_CARD_HEADERS = {
    "apollographql-client-name": "credit-card",
    "apollographql-client-version": "0.0.1",
    "Referer": f"{BASE_URL}/ftgw/digital/portfolio/creditstatements",
}

DELIVERY_PREF_QUERY = """query GetDeliveryPref {
  deliveryPrefData {
    deliveryPrefInquiry {
      deliveryPref {
        custInformation {
          emailAddr
          __typename
        }
        __typename
      }
      __typename
    }
    __typename
  }
}"""

CONTEXT_QUERY = """query GetContext {
  getContext {
    person {
      assets {
        acctNum
        acctType
        acctSubType
        acctSubTypeDesc
        preferenceDetail {
          name
          isHidden
          acctGroupId
        }
        creditCardDetail {
          creditCardAcctNumber
        }
      }
    }
  }
}"""

BROKERAGE_STATEMENTS_QUERY = """query GetStatements($docType: String, $startDate: String, $endDate: String) {
  getStatement(docType: $docType, startDate: $startDate, endDate: $endDate) {
    statement {
      docDetails {
        docDetail {
          id
          type
          acctNum
          periodStartDate
          periodEndDate
          generatedDate
          isHouseholded
          formatTypes {
            formatType {
              isPDF
            }
          }
        }
      }
    }
  }
}"""

CREDIT_CARD_STATEMENTS_QUERY = """query GetStatementsList($accountId: String!, $dateRange: DateRange, $year: String) {
  getStatementsList(accountId: $accountId, dateRange: $dateRange, year: $year) {
    statements {
      statementName
      statementStartDate
      statementEndDate
    }
  }
}"""

CREDIT_CARD_STATEMENT_QUERY = """query GetStatement($accountId: String!, $statementDate: String!) {
  getStatement(accountId: $accountId, statementDate: $statementDate) {
    statement {
      statementDate
      pageContent
      __typename
    }
    __typename
  }
}"""


def parse_fidelity_date(value: Any) -> datetime | None:
    """Parse ``MDDYYYY`` / ``MMDDYYYY`` (e.g. ``9302025``, ``10312025``)."""
    if value is None:
        return None
    text = str(value).strip()
    if not text.isdigit() or len(text) not in (7, 8):
        return None

    year = int(text[-4:])
    month_day = text[:-4]
    month, day = int(month_day[:-2]), int(month_day[-2:])
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def months_before(anchor: date, months: int) -> date:
    """Step back whole months, clamping to the target month's last day."""
    index = anchor.year * 12 + anchor.month - 1 - months
    year, month = divmod(index, 12)
    month += 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def dig(data: Any, *path: str) -> Any:
    """Walk nested GraphQL objects, returning None at the first gap."""
    node = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def map_account_type(acct_type: str | None) -> AccountType:
    if acct_type == CREDIT_CARD_TYPE:
        return AccountType.CREDIT_CARD
    return AccountType.INVESTMENT


class FidelityAdapter(BankAdapterPort):
    """Adapter for Fidelity brokerage and credit card accounts."""

    def __init__(
        self,
        context: BrowserContext,
        http: BankHttpClient | None = None,
        policy: DocumentPolicy | None = None,
    ):
        self._context = context
        self._http = http or BankHttpClient.for_context(context)
        self._policy = policy or DocumentPolicy()
        self._locator = CookieSessionLocator(self.bank_id, ["FC", "MC", "RC", "SC"])

    @property
    def bank_id(self) -> str:
        return "fidelity"

    @property
    def bank_name(self) -> str:
        return "Fidelity"

    def get_session_id(self) -> str:
        return self._locator.locate(self._context)

    def _date_range(self) -> tuple[str, str]:
        end = today_utc()
        start = months_before(end, get_settings().fidelity_statement_lookback_months)
        return start.isoformat(), end.isoformat()

    async def get_profile(self, session_id: str) -> Profile:
        data = await self._http.graphql(
            DOCUMENTS_GRAPHQL_URL,
            "GetDeliveryPref",
            DELIVERY_PREF_QUERY,
        )
        email = dig(
            data,
            "deliveryPrefData",
            "deliveryPrefInquiry",
            "deliveryPref",
            "custInformation",
            "emailAddr",
        )
        if not email:
            logger.warning("Fidelity delivery preferences carry no email address")
            return Profile(session_id=session_id, profile_id=session_id, profile_name=DEFAULT_PROFILE_NAME)
        return Profile(session_id=session_id, profile_id=email, profile_name=email)

    async def get_accounts(self, profile: Profile) -> list[Account]:
        data = await self._http.graphql(
            PORTFOLIO_GRAPHQL_URL,
            "GetContext",
            CONTEXT_QUERY,
            headers={"Referer": f"{BASE_URL}/ftgw/digital/portfolio/summary"},
        )
        assets = dig(data, "getContext", "person", "assets")
        if not isinstance(assets, list):
            msg = "GetContext response has no asset list"
            raise UpstreamError(msg, url=PORTFOLIO_GRAPHQL_URL, reason="missing field: assets")

        accounts: list[Account] = []
        for asset in require_records(assets, "assets", PORTFOLIO_GRAPHQL_URL):
            if dig(asset, "preferenceDetail", "isHidden"):
                continue

            acct_num = asset.get("acctNum")
            # Card statements are keyed by the full card number
            account_id = dig(asset, "creditCardDetail", "creditCardAcctNumber") or acct_num
            if not account_id:
                continue

            accounts.append(
                Account(
                    profile=profile,
                    account_id=str(account_id),
                    account_name=(
                        dig(asset, "preferenceDetail", "name")
                        or asset.get("acctSubTypeDesc")
                        or f"Account {acct_num}"
                    ),
                    account_mask=mask_from(str(acct_num or account_id)),
                    account_type=map_account_type(asset.get("acctType")),
                )
            )

        accounts = dedupe_accounts(accounts)
        if not accounts:
            raise NoAccountsFoundError(self.bank_id)
        return accounts

    async def get_statements(self, account: Account) -> list[Statement]:
        if account.account_type == AccountType.CREDIT_CARD:
            return await self._get_credit_card_statements(account)
        return await self._get_brokerage_statements(account)

    async def _get_brokerage_statements(self, account: Account) -> list[Statement]:
        start, end = self._date_range()
        data = await self._http.graphql(
            DOCUMENTS_GRAPHQL_URL,
            "GetStatements",
            BROKERAGE_STATEMENTS_QUERY,
            {"docType": "STMT", "startDate": start, "endDate": end},
            headers={"Referer": f"{BASE_URL}/ftgw/digital/documents"},
        )
        details = dig(data, "getStatement", "statement", "docDetails", "docDetail")

        catalog = StatementCatalog(account)
        for doc in require_records(details, "docDetail", DOCUMENTS_GRAPHQL_URL):
            # One response covers every brokerage account of the person
            acct_num = doc.get("acctNum")
            if acct_num and account.account_mask and not str(acct_num).endswith(account.account_mask):
                continue
            if dig(doc, "formatTypes", "formatType", "isPDF") is not True:
                continue
            catalog.add(
                doc.get("id"),
                parse_fidelity_date(doc.get("periodEndDate") or doc.get("generatedDate")),
            )
        return catalog.statements()

    async def _get_credit_card_statements(self, account: Account) -> list[Statement]:
        start, end = self._date_range()
        data = await self._http.graphql(
            CREDIT_CARD_GRAPHQL_URL,
            "GetStatementsList",
            CREDIT_CARD_STATEMENTS_QUERY,
            {
                "accountId": account.account_id,
                "dateRange": {"startDate": start, "endDate": end},
            },
            headers=_CREDIT_CARD_HEADERS,
        )
        records = dig(data, "getStatementsList", "statements")

        catalog = StatementCatalog(account)
        for record in require_records(records, "statements", CREDIT_CARD_GRAPHQL_URL):
            end_date = record.get("statementEndDate")
            catalog.add(end_date, parse_statement_date(end_date))
        return catalog.statements()

    async def download_statement(self, statement: Statement) -> BinaryContent:
        statement_date = statement.statement_date.date()

        if statement.account.account_type == AccountType.CREDIT_CARD:
            data = await self._http.graphql(
                CREDIT_CARD_GRAPHQL_URL,
                "GetStatement",
                CREDIT_CARD_STATEMENT_QUERY,
                {
                    "accountId": statement.account.account_id,
                    "statementDate": statement_date.isoformat(),
                },
                headers=_CREDIT_CARD_HEADERS,
            )
            return decode_graphql_field(
                data,
                "getStatement.statement",
                field="pageContent",
                policy=self._policy,
                statement_id=statement.statement_id,
            )

        filename = f"Statement{statement_date:%m%d%Y}.pdf"
        response = await self._http.get(
            f"{PDF_BASE_URL}/STMT/pdf/{filename}",
            params={"id": statement.statement_id},
            headers={
                "Accept": "application/pdf",
                "Referer": f"{BASE_URL}/ftgw/digital/documents",
            },
        )
        return decode_binary_response(response, self._policy, statement.statement_id)
