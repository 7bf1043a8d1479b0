import logging
import secrets
import time
from typing import Any, Mapping

import httpx

from common.config import SDK_VERSION, ClientOptions
from common.errors import TransportError
from transports.transport_interface import Transport, TransportResponse

logger = logging.getLogger(__name__)


def random_trace_id() -> str:
    """AWS X-Ray style trace id: Root=1-<epoch hex>-<96 random bits hex>."""
    return f"Root=1-{int(time.time()):08x}-{secrets.token_hex(12)}"


class ApiTransport(Transport):
    """
    Transport over the wrapped service's HTTP API.

    Args:
        options (ClientOptions): access token, api url, api version and timeout.
        client (httpx.Client): optional preconfigured client. Tests pass the
            mock service's TestClient here. When omitted, one is created and
            owned by this transport.
    """
    def __init__(self, options: ClientOptions, client: httpx.Client | None = None):
        self.options = options
        self.base_URL = options.api_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=options.timeout)

    @property
    def default_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Abstract-Api-Version": self.options.api_version,
            "User-Agent": f"Abstract SDK {SDK_VERSION}",
            "X-Amzn-Trace-Id": random_trace_id(),
        }
        if self.options.access_token:
            headers["Authorization"] = f"Bearer {self.options.access_token}"
        return headers

    def url_for(self, path: str) -> str:
        """Absolute urls (the previews host) pass through, the rest join the api url."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_URL}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """
        Make an HTTP request. Failure statuses are returned, not raised;
        only connection level problems raise TransportError.
        example: transport.send("GET", "projects", query={"filter": "active"})
        """
        url = self.url_for(path)
        request_headers = {**self.default_headers, **(headers or {})}
        params = {k: v for k, v in (query or {}).items() if v is not None}
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self._client.request(
                method,
                url,
                params=params or None,
                json=body,
                headers=request_headers,
            )
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return TransportResponse(
            status=response.status_code,
            body=_decode(response),
            headers=dict(response.headers),
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def _decode(response: httpx.Response) -> Any:
    """JSON bodies are decoded, anything else is returned as bytes."""
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Undecodable JSON from {response.request.url}") from exc
    return response.content
