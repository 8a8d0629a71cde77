"""Unit tests for BankHttpClient response classification."""

import httpx
import pytest

from passbook.domain.banking.exceptions import (
    AuthenticationError,
    NetworkError,
    UpstreamError,
)
from passbook.domain.banking.value_objects import BrowserContext
from passbook.infrastructure.banking.http_client import BankHttpClient, decode_json, require_records
from tests.shared.fixtures import MockBank, request_json

URL = "https://bank.example/api/data"
GRAPHQL_URL = "https://bank.example/graphql"


class TestClassification:
    """Non-success outcomes map onto the banking error kinds."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_statuses(self, status):
        """401 and 403 mean the session was rejected."""
        bank = MockBank().add("GET", URL, httpx.Response(status))

        async with bank.client() as http:
            with pytest.raises(AuthenticationError) as exc_info:
                await http.get(URL)

        assert exc_info.value.status_code == status
        assert exc_info.value.url == URL

    @pytest.mark.asyncio
    async def test_server_error_is_upstream(self):
        bank = MockBank().add("GET", URL, httpx.Response(503, text="maintenance"))

        async with bank.client() as http:
            with pytest.raises(UpstreamError) as exc_info:
                await http.get(URL)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        bank = MockBank().add("GET", URL, fail)

        async with bank.client() as http:
            with pytest.raises(NetworkError) as exc_info:
                await http.get(URL)

        assert exc_info.value.reason == "ConnectError"
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_upstream(self):
        bank = MockBank().add("GET", URL, httpx.Response(200, text="<html>login</html>"))

        async with bank.client() as http:
            with pytest.raises(UpstreamError) as exc_info:
                await http.request_json("GET", URL)

        assert exc_info.value.reason == "body is not valid JSON"

    @pytest.mark.asyncio
    async def test_success_returns_response(self):
        bank = MockBank().add("GET", URL, httpx.Response(200, json={"ok": True}))

        async with bank.client() as http:
            payload = await http.request_json("GET", URL)

        assert payload == {"ok": True}


class TestGraphQL:
    """GraphQL request shape and error handling."""

    @pytest.mark.asyncio
    async def test_request_body_and_data(self):
        bank = MockBank().add(
            "POST",
            GRAPHQL_URL,
            httpx.Response(200, json={"data": {"thing": {"id": 1}}}),
        )

        async with bank.client() as http:
            data = await http.graphql(
                GRAPHQL_URL,
                "GetThing",
                "query GetThing { thing { id } }",
                {"id": 1},
            )

        assert data == {"thing": {"id": 1}}
        body = request_json(bank.requests[0])
        assert body == {
            "operationName": "GetThing",
            "query": "query GetThing { thing { id } }",
            "variables": {"id": 1},
        }
        assert bank.requests[0].headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_errors_member_is_upstream(self):
        bank = MockBank().add(
            "POST",
            GRAPHQL_URL,
            httpx.Response(200, json={"errors": [{"message": "denied"}], "data": None}),
        )

        async with bank.client() as http:
            with pytest.raises(UpstreamError) as exc_info:
                await http.graphql(GRAPHQL_URL, "GetThing", "query { x }")

        assert "denied" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_data_is_upstream(self):
        bank = MockBank().add("POST", GRAPHQL_URL, httpx.Response(200, json={}))

        async with bank.client() as http:
            with pytest.raises(UpstreamError) as exc_info:
                await http.graphql(GRAPHQL_URL, "GetThing", "query { x }")

        assert exc_info.value.reason == "missing field: data"

    @pytest.mark.asyncio
    async def test_variables_omitted_when_none(self):
        bank = MockBank().add("POST", GRAPHQL_URL, httpx.Response(200, json={"data": {}}))

        async with bank.client() as http:
            await http.graphql(GRAPHQL_URL, "GetThing", "query { x }")

        assert "variables" not in request_json(bank.requests[0])


class TestForContext:
    """Cookies from the browser context travel with every request."""

    @pytest.mark.asyncio
    async def test_cookie_and_user_agent_headers(self):
        bank = MockBank().add("GET", URL, httpx.Response(200, json={}))
        context = BrowserContext(cookie_string="JSESSIONID=abc; other=1")
        http = BankHttpClient.for_context(
            context,
            client=httpx.AsyncClient(transport=httpx.MockTransport(bank.handle)),
        )

        await http.get(URL, headers={"Accept": "application/json"})

        sent = bank.requests[0]
        assert sent.headers["cookie"] == "JSESSIONID=abc; other=1"
        assert "Mozilla" in sent.headers["user-agent"]
        assert sent.headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_user_agent_from_settings(self, monkeypatch):
        monkeypatch.setenv("HTTP_USER_AGENT", "passbook-tests/1.0")
        bank = MockBank().add("GET", URL, httpx.Response(200, json={}))
        http = BankHttpClient.for_context(
            BrowserContext(),
            client=httpx.AsyncClient(transport=httpx.MockTransport(bank.handle)),
        )

        await http.get(URL)

        assert bank.requests[0].headers["user-agent"] == "passbook-tests/1.0"
        assert "cookie" not in bank.requests[0].headers


class TestLifecycle:
    """Client ownership."""

    @pytest.mark.asyncio
    async def test_external_client_left_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(MockBank().handle))
        http = BankHttpClient(client=client, timeout=1.0)

        await http.aclose()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        http = BankHttpClient(timeout=1.0)
        client = http._get_client()

        await http.aclose()

        assert client.is_closed is True


class TestDecodeJson:
    """decode_json outside of a client call."""

    def test_response_without_request(self):
        response = httpx.Response(200, text="not json")

        with pytest.raises(UpstreamError) as exc_info:
            decode_json(response)

        assert exc_info.value.url is None


class TestRequireRecords:
    """Arrays of objects pulled out of decoded bodies."""

    def test_missing_is_empty(self):
        assert require_records(None, "documents") == []

    def test_objects_pass_through(self):
        records = [{"id": "D1"}, {"id": "D2"}]

        assert require_records(records, "documents") is records

    @pytest.mark.parametrize("value", [["oops"], [{"id": "D1"}, 7], {"id": "D1"}, "D1"])
    def test_malformed_is_upstream(self, value):
        with pytest.raises(UpstreamError) as exc_info:
            require_records(value, "documents", URL)

        assert exc_info.value.reason == "malformed field: documents"
        assert exc_info.value.url == URL
