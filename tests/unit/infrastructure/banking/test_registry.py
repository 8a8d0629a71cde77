"""Contract tests run against every registered adapter."""

import inspect

import httpx
import pytest

from passbook.domain.banking.exceptions import SessionNotFoundError, UnknownBankError
from passbook.domain.banking.ports import BankAdapterPort
from passbook.domain.banking.value_objects import BrowserContext
from passbook.domain.shared.exceptions import ErrorCode
from passbook.infrastructure.banking.adapters import (
    american_express,
    bank_of_america,
    fidelity,
    questrade,
    td_bank,
)
from passbook.infrastructure.banking.registry import BankAdapterRegistry, default_registry
from tests.shared.fixtures import MockBank
from tests.shared.fixtures.factories import amex_overview_html, amex_state

REGISTRY = default_registry()
EMPTY_CONTEXT = BrowserContext()

# One profile route per bank, answered the same way on every call
PROFILE_ROUTES = {
    "american_express": (
        "GET",
        f"{american_express.BASE_URL}/overview",
        httpx.Response(
            200,
            text=amex_overview_html(amex_state([["^ ", "accountToken", "TOKEN1", "accountKey", "KEY1"]], [])),
        ),
    ),
    "bank_of_america": (
        "GET",
        bank_of_america.OVERVIEW_URL,
        httpx.Response(
            200,
            text='<span class="customer-name">Jane Doe</span><script>"profile.eligibility=ELIG42"</script>',
        ),
    ),
    "fidelity": (
        "POST",
        fidelity.DOCUMENTS_GRAPHQL_URL,
        httpx.Response(
            200,
            json={
                "data": {
                    "deliveryPrefData": {
                        "deliveryPrefInquiry": {
                            "deliveryPref": {"custInformation": {"emailAddr": "jane@example.com"}}
                        }
                    }
                }
            },
        ),
    ),
    "questrade": (
        "GET",
        f"{questrade.LOGIN_BASE_URL}/connect/userinfo",
        httpx.Response(200, json={"sub": "s-1", "given_name": "Jane", "family_name": "Doe"}),
    ),
    "td_bank": (
        "GET",
        f"{td_bank.BASE_URL}/ms/mpref/v1/preferences/displayname",
        httpx.Response(200, json={"displayName": "JANE DOE"}),
    ),
}


class TestRegistry:
    """Lookup and registration."""

    def test_builtin_banks(self):
        assert REGISTRY.bank_ids() == [
            "american_express",
            "bank_of_america",
            "fidelity",
            "questrade",
            "td_bank",
        ]

    def test_unknown_bank(self):
        with pytest.raises(UnknownBankError) as exc_info:
            REGISTRY.create("chase", EMPTY_CONTEXT)

        assert exc_info.value.code == ErrorCode.BANK_NOT_FOUND
        assert "chase" not in REGISTRY

    def test_duplicate_registration(self):
        registry = BankAdapterRegistry()
        registry.register("fidelity", lambda context, http: None)

        with pytest.raises(ValueError, match="already registered"):
            registry.register("fidelity", lambda context, http: None)


@pytest.mark.parametrize("bank_id", REGISTRY.bank_ids())
class TestAdapterContract:
    """Every adapter honours the port the same way."""

    def test_is_port(self, bank_id):
        adapter = REGISTRY.create(bank_id, EMPTY_CONTEXT, http=MockBank().client())

        assert isinstance(adapter, BankAdapterPort)

    def test_identity(self, bank_id):
        adapter = REGISTRY.create(bank_id, EMPTY_CONTEXT, http=MockBank().client())

        assert adapter.bank_id == bank_id
        assert adapter.bank_name.strip()

    def test_operations_are_coroutines(self, bank_id):
        adapter = REGISTRY.create(bank_id, EMPTY_CONTEXT, http=MockBank().client())

        for name in ("get_profile", "get_accounts", "get_statements", "download_statement"):
            assert inspect.iscoroutinefunction(getattr(adapter, name))

    def test_missing_session_is_reported(self, bank_id):
        adapter = REGISTRY.create(bank_id, EMPTY_CONTEXT, http=MockBank().client())

        with pytest.raises(SessionNotFoundError) as exc_info:
            adapter.get_session_id()

        assert exc_info.value.bank_id == bank_id

    @pytest.mark.asyncio
    async def test_profile_is_stable_across_calls(self, bank_id):
        """Asking twice against an unchanged session yields the same profile."""
        method, url, reply = PROFILE_ROUTES[bank_id]
        bank = MockBank().add(method, url, reply)
        adapter = REGISTRY.create(bank_id, EMPTY_CONTEXT, http=bank.client())

        first = await adapter.get_profile("session-1")
        second = await adapter.get_profile("session-1")

        assert first == second
        assert first.session_id == "session-1"
        assert first.profile_name.strip()
        assert len(bank.requests) == 2
