"""Tests for the Triple API client."""

import json

import httpx
import pytest

from conftest import TOKEN, echo_handler, triple_payload
from trx_enricher.config import TripleEnvironment
from trx_enricher.fetchers.triple import ENRICH_PATH, REDACTED, TripleClient
from trx_enricher.models import EnrichFailure, EnrichSuccess, Transaction, TransactionType


def _transaction(transaction_id: str = "T1") -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        merchant_name="Acme",
        transaction_type=TransactionType.CARD_TRANSACTION,
    )


def _client(handler, **kwargs) -> TripleClient:
    return TripleClient(TOKEN, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
class TestTripleClient:
    """Test enrichment calls against a mocked Triple API."""

    async def test_success(self):
        """A 2xx JSON object is returned as the enrichment payload."""
        async with _client(echo_handler) as client:
            result = await client.enrich(_transaction())

        assert isinstance(result, EnrichSuccess)
        assert result.payload == triple_payload("T1")
        assert result.response["status"] == 200
        assert result.request["body"]["transaction_id"] == "T1"
        assert result.request["timestamp"].endswith("Z")

    async def test_request_shape(self):
        """POST to the enrich endpoint with token auth and a JSON body."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=triple_payload("T1"))

        async with _client(handler) as client:
            await client.enrich(_transaction())

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == f"https://api.sandbox.tripledev.app/api{ENRICH_PATH}"
        assert request.headers["Authorization"] == f"Token {TOKEN}"
        assert request.headers["Content-Type"] == "application/json"
        body = json.loads(request.content)
        assert body["transaction_type"] == "CARD_TRANSACTION"
        assert body["channel_type"] is None

    async def test_production_environment(self):
        """The environment selects the base URL."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={})

        async with _client(handler, environment=TripleEnvironment.PRODUCTION) as client:
            await client.enrich(_transaction())

        assert seen == [f"https://api.triple.app/api{ENRICH_PATH}"]

    async def test_http_error_status(self):
        """Non-2xx responses are captured, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"detail": "boom"}, headers={"x-request-id": "r1"})

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        assert isinstance(result, EnrichFailure)
        assert result.reason == "HTTP 500"
        assert result.response["status"] == 500
        assert result.response["body"] == {"detail": "boom"}
        assert result.response["headers"]["x-request-id"] == "r1"
        assert result.request["body"]["transaction_id"] == "T1"

    async def test_timeout(self):
        """Timeouts become failures with no response data."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        assert isinstance(result, EnrichFailure)
        assert "ReadTimeout" in result.reason
        assert result.response == {"status": None, "body": None, "headers": None}
        assert result.request["body"]["transaction_id"] == "T1"

    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        assert isinstance(result, EnrichFailure)
        assert result.response["status"] is None

    async def test_malformed_success_body(self):
        """A 2xx body that is not a JSON object is a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        assert isinstance(result, EnrichFailure)
        assert result.response["status"] == 200
        assert result.response["body"] == "<html>oops</html>"

    async def test_unexpected_error_propagates(self):
        """Errors outside the HTTP failure family are not swallowed."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("bug")

        async with _client(handler) as client:
            with pytest.raises(RuntimeError, match="bug"):
                await client.enrich(_transaction())

    async def test_requires_context_manager(self):
        client = _client(echo_handler)

        with pytest.raises(RuntimeError):
            await client.enrich(_transaction())


@pytest.mark.asyncio
class TestRedaction:
    """Test that the token never reaches recorded exchanges."""

    async def test_authorization_header_stripped_on_success(self):
        async with _client(echo_handler) as client:
            result = await client.enrich(_transaction())

        headers = {key.lower() for key in result.request["headers"]}
        assert "authorization" not in headers
        assert "content-type" in headers
        assert TOKEN not in json.dumps(result.model_dump())

    async def test_authorization_header_stripped_on_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        assert "authorization" not in {key.lower() for key in result.request["headers"]}
        assert TOKEN not in json.dumps(result.model_dump())

    async def test_echoed_token_redacted(self):
        """A server echoing our headers back cannot leak the token."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                401,
                json={"received_headers": dict(request.headers.items())},
                headers={"x-echo-auth": request.headers["Authorization"]},
            )

        async with _client(handler) as client:
            result = await client.enrich(_transaction())

        dumped = json.dumps(result.model_dump())
        assert TOKEN not in dumped
        assert REDACTED in dumped


class TestClientSetup:
    """Test client construction."""

    def test_blank_token_rejected(self):
        with pytest.raises(ValueError):
            TripleClient("   ")

    def test_base_url_by_environment(self):
        assert _client(echo_handler).base_url == "https://api.sandbox.tripledev.app/api"
        production = _client(echo_handler, environment="production")
        assert production.base_url == "https://api.triple.app/api"
