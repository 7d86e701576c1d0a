"""
Chain state provider.

Reads pool state through a JSON-RPC node with eth_call pinned to a block
height, so every snapshot of a cycle reflects the same chain state.

Pool interface:
- getCache() -> (uint128 baseCached, uint128 fyTokenCached, uint16 feeBps)
- maturity() -> uint32
"""

import asyncio
import time
from typing import Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector

from fyarb.core.errors import ConfigurationError, ProviderError, SnapshotFetchError
from fyarb.core.http import RpcClient
from fyarb.domain.models import BlockEvent, PoolSnapshot
from fyarb.providers.base import BaseProvider, HealthCheckResult, ProviderStatus

GET_CACHE_SELECTOR = function_signature_to_4byte_selector("getCache()")
MATURITY_SELECTOR = function_signature_to_4byte_selector("maturity()")


class ChainStateProvider(BaseProvider):
    """
    Pool snapshots and block heads from an EVM node.

    Snapshots are never cached: reserves change every block.
    """

    name = "chain"

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        token_decimals: int = 18,
        rpc: Optional[RpcClient] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.token_decimals = token_decimals
        self._rpc = rpc
        self._rpc_url = rpc_url

    def _initialize(self) -> None:
        if self._rpc is not None:
            return
        url = self._rpc_url or self.settings.rpc_url
        if not url:
            raise ConfigurationError("RPC_URL is not configured")
        self._rpc = RpcClient(url, timeout=self.settings.http_timeout, provider_name=self.name)
        self.logger.info("Chain provider initialized")

    @property
    def rpc(self) -> RpcClient:
        self._ensure_initialized()
        return self._rpc

    async def aclose(self) -> None:
        if self._rpc is not None:
            await self._rpc.aclose()

    async def eth_call(self, to: str, data: bytes, block_number: int) -> bytes:
        result = await self.rpc.call(
            "eth_call",
            [{"to": to, "data": encode_hex(data)}, hex(block_number)],
        )
        return decode_hex(result)

    async def get_pool_snapshot(self, pool_id: str, block: BlockEvent) -> PoolSnapshot:
        """
        Pool state at `block`.

        Raises:
            SnapshotFetchError: call failed or returned undecodable data
        """
        try:
            cache_raw, maturity_raw = await asyncio.gather(
                self.eth_call(pool_id, GET_CACHE_SELECTOR, block.number),
                self.eth_call(pool_id, MATURITY_SELECTOR, block.number),
            )
            base_cached, fy_cached, fee_bps = decode(["uint128", "uint128", "uint16"], cache_raw)
            (maturity,) = decode(["uint32"], maturity_raw)
        except ProviderError as e:
            raise SnapshotFetchError(
                f"Pool {pool_id} at block {block.number}: {e.message}",
                provider=self.name,
                pool_id=pool_id,
            ) from e
        except (DecodingError, ValueError) as e:
            raise SnapshotFetchError(
                f"Pool {pool_id} at block {block.number}: bad response ({e})",
                provider=self.name,
                pool_id=pool_id,
            ) from e

        scale = 10 ** self.token_decimals
        return PoolSnapshot(
            pool_id=pool_id,
            base_reserves=base_cached / scale,
            fy_reserves=fy_cached / scale,
            fee_bps=fee_bps,
            maturity=maturity,
            observed_at=block.timestamp,
            block_number=block.number,
        )

    async def get_block(self, block_number: Optional[int] = None) -> BlockEvent:
        """Block header at a height, or the head when no height is given."""
        tag = "latest" if block_number is None else hex(block_number)
        header = await self.rpc.call("eth_getBlockByNumber", [tag, False])
        if not header:
            raise ProviderError(f"Node returned no block for {tag}", provider=self.name)
        try:
            return BlockEvent(number=int(header["number"], 16), timestamp=int(header["timestamp"], 16))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Malformed block header: {e}", provider=self.name) from e

    async def get_latest_block(self) -> BlockEvent:
        return await self.get_block()

    async def healthcheck(self) -> HealthCheckResult:
        start_time = time.time()
        try:
            block = await self.get_latest_block()
        except (ConfigurationError, ProviderError) as e:
            return HealthCheckResult(
                status=ProviderStatus.UNAVAILABLE,
                message=f"Chain RPC error: {e.message}",
            )
        return HealthCheckResult(
            status=ProviderStatus.HEALTHY,
            message=f"Head at block {block.number}",
            latency_ms=(time.time() - start_time) * 1000,
            details=block.to_dict(),
        )
