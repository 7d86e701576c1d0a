"""
JSON-RPC client with timeout, retry, and rate limiting.

Provides the transport for chain reads (eth_call, eth_getBlockByNumber).
"""

import itertools
from typing import Any, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fyarb.core.config import get_settings
from fyarb.core.errors import ProviderError, RateLimitError
from fyarb.core.logging import get_logger

logger = get_logger("http")


class RpcClient:
    """
    Async JSON-RPC 2.0 client with built-in retry and error handling.

    Features:
    - Configurable timeout
    - Exponential backoff retry on timeouts and network errors
    - Rate limit handling (HTTP 429)
    - JSON-RPC error objects surfaced as ProviderError
    """

    def __init__(
        self,
        url: str,
        timeout: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
        provider_name: str = "rpc",
    ):
        self.url = url
        self.timeout = timeout or get_settings().http_timeout
        self.default_headers = {"Content-Type": "application/json", **(headers or {})}
        self.provider_name = provider_name

        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        return await self.client.post(self.url, json=payload)

    async def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """
        Execute one JSON-RPC call.

        Args:
            method: RPC method name, e.g. "eth_call"
            params: Positional params

        Returns:
            The "result" member of the response

        Raises:
            ProviderError: On transport failure or RPC error
            RateLimitError: On 429 status
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        logger.debug(f"RPC {method} params={params}")

        try:
            response = await self._post(payload)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout on RPC {method}: {e}")
            raise ProviderError(
                f"RPC timeout: {method}",
                provider=self.provider_name,
                recoverable=True,
            ) from e
        except httpx.NetworkError as e:
            logger.error(f"Network error on RPC {method}: {e}")
            raise ProviderError(
                f"Network error: {e}",
                provider=self.provider_name,
                recoverable=True,
            ) from e

        body = self._handle_response(response)
        if body.get("error"):
            err = body["error"]
            raise ProviderError(
                f"RPC {method} failed: {err.get('message', err)}",
                provider=self.provider_name,
                recoverable=True,
                details={"rpc_error": err},
            )
        if "result" not in body:
            raise ProviderError(
                f"RPC {method} returned no result",
                provider=self.provider_name,
            )
        return body["result"]

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle HTTP response and convert to dict."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limit exceeded",
                provider=self.provider_name,
                retry_after=int(retry_after) if retry_after else None,
            )

        if response.status_code >= 400:
            logger.error(f"HTTP {response.status_code}: {response.text[:200]}")
            raise ProviderError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                provider=self.provider_name,
                recoverable=response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                "RPC response is not JSON",
                provider=self.provider_name,
            ) from e
