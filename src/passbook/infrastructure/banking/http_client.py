"""HTTP client shared by all bank adapters.

Wraps ``httpx.AsyncClient`` and turns every non-success outcome into one of
the classified banking errors:

- 401/403 -> AuthenticationError
- any other non-2xx -> UpstreamError
- transport failure before a response -> NetworkError
- body that is not the expected JSON shape -> UpstreamError
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from passbook.domain.banking.exceptions import (
    AuthenticationError,
    NetworkError,
    UpstreamError,
)
from passbook.domain.banking.value_objects import BrowserContext
from passbook_config.settings import get_settings

logger = logging.getLogger(__name__)

AUTH_REJECTED_STATUSES = frozenset({401, 403})


class BankHttpClient:
    """HTTP client wrapper issuing classified bank requests."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        self._timeout = timeout if timeout is not None else get_settings().http_timeout
        self._headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None

    @classmethod
    def for_context(
        cls,
        context: BrowserContext,
        client: httpx.AsyncClient | None = None,
    ) -> BankHttpClient:
        """Build a client that replays the context's cookies on every call."""
        settings = get_settings()
        headers = {"User-Agent": settings.http_user_agent}
        if context.cookie_string:
            headers["Cookie"] = context.cookie_string
        return cls(client=client, timeout=settings.http_timeout, headers=headers)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BankHttpClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue a request and classify the outcome.

        Returns the response only for 2xx statuses.
        """
        merged_headers = {**self._headers, **(headers or {})}
        client = self._get_client()

        try:
            response = await client.request(
                method,
                url,
                headers=merged_headers,
                params=params,
                json=json,
                data=data,
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed before a response: %s", method, url, e)
            msg = f"Request to {url} failed: {e}"
            raise NetworkError(msg, url=url, reason=type(e).__name__) from e

        if response.status_code in AUTH_REJECTED_STATUSES:
            logger.info("%s %s rejected with %d", method, url, response.status_code)
            msg = f"Bank rejected request: {response.status_code} at {url}"
            raise AuthenticationError(
                msg,
                url=url,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        if not response.is_success:
            logger.warning(
                "%s %s returned error %d: %s",
                method,
                url,
                response.status_code,
                response.text[:200] if response.text else "no body",
            )
            msg = f"API request failed: {response.status_code} {response.reason_phrase} at {url}"
            raise UpstreamError(
                msg,
                url=url,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def get_text(self, url: str, **kwargs: Any) -> str:
        response = await self.get(url, **kwargs)
        return response.text

    async def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Issue a request and decode the JSON body."""
        response = await self.request(method, url, **kwargs)
        return decode_json(response)

    async def graphql(
        self,
        url: str,
        operation_name: str,
        query: str,
        variables: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST a GraphQL operation and return its ``data`` member."""
        body: dict[str, Any] = {"operationName": operation_name, "query": query}
        if variables is not None:
            body["variables"] = dict(variables)

        payload = await self.request_json(
            "POST",
            url,
            json=body,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                **(headers or {}),
            },
        )

        if not isinstance(payload, dict):
            msg = f"GraphQL {operation_name} returned a non-object body"
            raise UpstreamError(msg, url=url, reason="body is not an object")
        if payload.get("errors"):
            msg = f"GraphQL {operation_name} error: {payload['errors']}"
            raise UpstreamError(msg, url=url, reason="graphql errors")

        data = payload.get("data")
        if not isinstance(data, dict):
            msg = f"GraphQL {operation_name} returned no data"
            raise UpstreamError(msg, url=url, reason="missing field: data")
        return data


def require_records(value: Any, field: str, url: str | None = None) -> list[dict[str, Any]]:
    """Return a JSON array of objects; a missing array counts as empty.

    Raises UpstreamError when the value is not an array or any element is
    not an object.
    """
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        msg = f"Malformed {field} in bank response"
        raise UpstreamError(msg, url=url, reason=f"malformed field: {field}")
    return value


def decode_json(response: httpx.Response) -> Any:
    """Decode a response body as JSON, classifying failures as upstream."""
    try:
        return response.json()
    except ValueError as e:
        try:
            url: str | None = str(response.request.url)
        except RuntimeError:  # response built without a request
            url = None
        msg = f"Expected JSON from {url}"
        raise UpstreamError(
            msg,
            url=url,
            status_code=response.status_code,
            reason="body is not valid JSON",
        ) from e
