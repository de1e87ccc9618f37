"""Triple transaction enrichment API client."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from ..config import TRIPLE_BASE_URLS, TripleEnvironment
from ..logging_config import get_logger
from ..models import EnrichFailure, EnrichmentResult, EnrichSuccess, Transaction
from ..utils.typing import RawRequest, RawResponse

logger = get_logger(__name__)

ENRICH_PATH = "/v1/enrich-transaction/"
REDACTED = "[REDACTED]"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _response_body(response: httpx.Response) -> Any:
    """Decoded JSON body, falling back to text; None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class TripleClient:
    """
    Async client for the Triple enrich-transaction endpoint.

    Expected remote failures (non-2xx, timeouts, connection errors, malformed
    bodies) come back as EnrichFailure; anything else propagates.
    """

    def __init__(
        self,
        token: str,
        environment: TripleEnvironment = TripleEnvironment.SANDBOX,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token or not token.strip():
            raise ValueError("Triple API token must not be blank")
        self._token = token
        self.environment = TripleEnvironment(environment)
        self.base_url = base_url or TRIPLE_BASE_URLS[self.environment]
        self.timeout = timeout
        self._transport = transport
        self.http_client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Token {self._token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None

    def _redact(self, value: Any) -> Any:
        """Replace every occurrence of the token in a JSON-like value."""
        if isinstance(value, str):
            return value.replace(self._token, REDACTED)
        if isinstance(value, dict):
            return {self._redact(k): self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        return value

    def _sanitize_headers(self, headers: httpx.Headers) -> Dict[str, str]:
        sanitized = {
            key: value
            for key, value in headers.items()
            if key.lower() != "authorization"
        }
        return self._redact(sanitized)

    def _raw_request(self, body: Dict[str, Any], request: httpx.Request, timestamp: str) -> RawRequest:
        return RawRequest(
            body=self._redact(body),
            headers=self._sanitize_headers(request.headers),
            timestamp=timestamp,
        )

    def _raw_response(self, response: Optional[httpx.Response]) -> RawResponse:
        if response is None:
            return RawResponse(status=None, body=None, headers=None)
        return RawResponse(
            status=response.status_code,
            body=self._redact(_response_body(response)),
            headers=self._redact(dict(response.headers.items())),
        )

    async def enrich(self, transaction: Transaction) -> EnrichmentResult:
        """
        Enrich one transaction.

        Args:
            transaction: Transaction to send

        Returns:
            EnrichSuccess with the response payload, or EnrichFailure with
            whatever status, body and headers could be recovered
        """
        if self.http_client is None:
            raise RuntimeError("TripleClient must be used as an async context manager")

        timestamp = _utc_timestamp()
        body = transaction.to_request_body()
        request = self.http_client.build_request("POST", ENRICH_PATH, json=body)
        raw_request = self._raw_request(body, request, timestamp)

        try:
            response = await self.http_client.send(request)
        except httpx.HTTPError as e:
            logger.warning(f"Request failed for {transaction.transaction_id}: {e!r}")
            return EnrichFailure(
                reason=f"{type(e).__name__}: {e}",
                request=raw_request,
                response=self._raw_response(None),
            )

        raw_response = self._raw_response(response)

        if not response.is_success:
            logger.warning(
                f"Triple returned HTTP {response.status_code} for {transaction.transaction_id}"
            )
            return EnrichFailure(
                reason=f"HTTP {response.status_code}",
                request=raw_request,
                response=raw_response,
            )

        payload = raw_response["body"]
        if not isinstance(payload, dict):
            logger.warning(f"Malformed response body for {transaction.transaction_id}")
            return EnrichFailure(
                reason="Malformed response body",
                request=raw_request,
                response=raw_response,
            )

        logger.debug(f"Enriched {transaction.transaction_id}")
        return EnrichSuccess(payload=payload, request=raw_request, response=raw_response)
