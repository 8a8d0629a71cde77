"""TD Bank (EasyWeb) adapter.

EasyWeb runs two session systems side by side. The ``/ms/`` endpoints use
the login session directly; the ``/waw/api/`` e-statement endpoints need a
separate session established through an SSO hand-off. That hand-off is
replayed whenever an e-statement call is rejected.
"""

from __future__ import annotations

import logging
import uuid
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
from passbook.domain.shared.clock import utc_now
from passbook.infrastructure.banking.auth_refresh import AuthRefreshPolicy
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_json_field,
)
from passbook.infrastructure.banking.http_client import BankHttpClient, require_records
from passbook.infrastructure.banking.session_locators import CookieSessionLocator

logger = logging.getLogger(__name__)

BASE_URL = "https://easyweb.td.com"
ESTATEMENT_SERVLET_URL = (
    f"{BASE_URL}/waw/ezw/servlet/com.td.estatement.servlet.EStatementAccountRepositoryServlet"
)
SSO_LOGIN_URL = f"{BASE_URL}/waw/api/ssologin"

_HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def map_account_type(account_type: str | None, product_code: str | None) -> AccountType:
    if account_type == "VSA":
        return AccountType.CREDIT_CARD
    if account_type == "PDA" and product_code == "IBA":
        return AccountType.SAVINGS
    return AccountType.CHECKING


class TdBankAdapter(BankAdapterPort):
    """Adapter for TD Bank EasyWeb."""

    def __init__(
        self,
        context: BrowserContext,
        http: BankHttpClient | None = None,
        policy: DocumentPolicy | None = None,
    ):
        self._context = context
        self._http = http or BankHttpClient.for_context(context)
        self._policy = policy or DocumentPolicy()
        self._locator = CookieSessionLocator(self.bank_id, ["HD4bjx6N", "JESSIONID"])
        self._estatement_session = AuthRefreshPolicy(
            self._initialize_estatement_session,
            name="e-statement session",
        )

    @property
    def bank_id(self) -> str:
        return "td_bank"

    @property
    def bank_name(self) -> str:
        return "TD Bank (EasyWeb)"

    def get_session_id(self) -> str:
        return self._locator.locate(self._context)

    async def _initialize_estatement_session(self) -> None:
        """Two-step SSO hand-off; only the cookies it sets matter."""
        logger.info("Initializing TD e-statement session")
        await self._http.get(
            ESTATEMENT_SERVLET_URL,
            headers={"Accept": _HTML_ACCEPT, "Upgrade-Insecure-Requests": "1"},
        )
        await self._http.post(
            SSO_LOGIN_URL,
            headers={
                "Accept": _HTML_ACCEPT,
                "Referer": ESTATEMENT_SERVLET_URL,
                "Upgrade-Insecure-Requests": "1",
            },
            data={
                "applicationUrl": f"{BASE_URL}/waw/ezw/",
                "goto": "EZW_OCA",
                "channelID": "EasyWeb",
                "language": "en",
                "applicationId": "EZW:PRODBDC",
            },
        )

    async def _ms_json(self, path: str) -> Any:
        is_accounts = path.startswith("/ms/uainq/v1/accounts")
        headers = {
            "Accept": "application/json",
            "Accept-Language": "en_CA",
            "Content-Type": "application/json",
            "Referer": f"{BASE_URL}/ui/ew/fs?fsType=PFS&kyc=Y",
            "messageid": str(uuid.uuid4()),
            "originating-app-name": "RWUI-uu-accounts" if is_accounts else "RWUI-unav-ew",
            "originating-app-version-num": "25.7.1" if is_accounts else "25.9.1",
            "originating-channel-name": "EWP",
            "timestamp": utc_now().isoformat(),
            "traceabilityid": str(uuid.uuid4()),
        }
        if path.endswith("/accounts/list"):
            headers["accept-secondary-language"] = "fr_CA"
        return await self._http.request_json("GET", f"{BASE_URL}{path}", headers=headers)

    async def _waw_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        url = f"{BASE_URL}{path}"

        async def call() -> Any:
            return await self._http.request_json(
                "GET",
                url,
                params=params,
                headers={
                    "Accept": "application/json, text/plain, */*",
                    "Referer": f"{BASE_URL}/waw/webui/acct/",
                },
            )

        payload = await self._estatement_session.run(call)
        if not isinstance(payload, dict):
            msg = f"Unexpected e-statement response from {path}"
            raise UpstreamError(msg, url=url, reason="body is not an object")

        status = payload.get("status") or {}
        if status.get("severity") != "SUCCESS":
            msg = f"E-statement request failed: {status.get('statusCode') or 'unknown'}"
            raise UpstreamError(msg, url=url, reason=f"severity {status.get('severity')}")
        return payload

    async def get_profile(self, session_id: str) -> Profile:
        data = await self._ms_json("/ms/mpref/v1/preferences/displayname")
        display_name = data.get("displayName") if isinstance(data, dict) else None
        if not display_name:
            logger.warning("TD profile has no display name, using default")
            return Profile(session_id=session_id, profile_id=session_id, profile_name="TD Customer")
        return Profile(
            session_id=session_id,
            profile_id=display_name,
            profile_name=display_name,
        )

    async def get_accounts(self, profile: Profile) -> list[Account]:
        data = await self._ms_json("/ms/uainq/v1/accounts/list")
        records = data.get("accountList") if isinstance(data, dict) else None
        if not isinstance(records, list):
            msg = "Invalid account list data received"
            raise UpstreamError(msg, reason="missing field: accountList")

        accounts = [
            Account(
                profile=profile,
                account_id=record["accountKey"],
                account_name=record.get("accountDisplayName") or record.get("accountName") or "",
                account_mask=mask_from(record.get("accountNumber")),
                account_type=map_account_type(record.get("accountType"), record.get("productCd")),
            )
            for record in require_records(records, "accountList")
            if record.get("accountKey")
        ]
        accounts = dedupe_accounts(accounts)
        if not accounts:
            raise NoAccountsFoundError(self.bank_id)
        return accounts

    async def get_statements(self, account: Account) -> list[Statement]:
        payload = await self._waw_json(
            "/waw/api/edelivery/estmt/documentlist",
            {
                "accountKey": account.account_id,
                "period": "Last_12_Months",
                "documentType": "ESTMT",
            },
        )
        documents = payload.get("documentList")
        if not isinstance(documents, list):
            msg = "E-statement response has no document list"
            raise UpstreamError(msg, reason="missing field: documentList")

        catalog = StatementCatalog(account)
        for doc in require_records(documents, "documentList"):
            raw_date = doc.get("endDate") or doc.get("documentDate") or doc.get("startDate")
            catalog.add(doc.get("documentId"), parse_statement_date(raw_date))
        return catalog.statements()

    async def download_statement(self, statement: Statement) -> BinaryContent:
        payload = await self._waw_json(
            "/waw/api/edelivery/estmt/documentdetail",
            {"documentKey": statement.statement_id},
        )
        return decode_json_field(
            payload,
            "document",
            "content",
            policy=self._policy,
            statement_id=statement.statement_id,
        )
