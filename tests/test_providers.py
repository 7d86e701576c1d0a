"""Tests for data providers."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pandas as pd
import pytest
from eth_abi import encode
from eth_utils import encode_hex

from fyarb.core.cache import CacheManager
from fyarb.core.errors import (
    ConfigurationError,
    InvalidCurveError,
    ProviderError,
    RateLimitError,
    SnapshotFetchError,
)
from fyarb.core.http import RpcClient
from fyarb.domain.models import BlockEvent
from fyarb.providers.base import HealthCheckResult, ProviderStatus
from fyarb.providers.chain import GET_CACHE_SELECTOR, MATURITY_SELECTOR, ChainStateProvider
from fyarb.providers.curves import StaticCurveProvider, create_curve_provider
from fyarb.providers.fred import FREDCurveProvider

WAD = 10 ** 18


@pytest.fixture
def mock_settings():
    """Create mock settings."""
    settings = Mock()
    settings.fred_api_key = "test_api_key"
    settings.rpc_url = "http://localhost:8545"
    settings.http_timeout = 5
    settings.cache_ttl = 60
    return settings


class TestBaseProvider:
    """Tests for provider base types."""

    def test_provider_status_enum(self):
        assert ProviderStatus.HEALTHY == "healthy"
        assert ProviderStatus.DEGRADED == "degraded"
        assert ProviderStatus.UNAVAILABLE == "unavailable"

    def test_health_check_result(self):
        result = HealthCheckResult(status=ProviderStatus.HEALTHY, message="OK", latency_ms=100.5)
        assert result.status == ProviderStatus.HEALTHY
        assert result.latency_ms == 100.5


class TestRpcClient:
    """Tests for the JSON-RPC transport."""

    def make_client(self, handler):
        client = RpcClient("http://node", timeout=5)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client

    def test_result(self):
        client = self.make_client(lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x10"}))
        assert asyncio.run(client.call("eth_blockNumber")) == "0x10"

    def test_rpc_error(self):
        client = self.make_client(
            lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}})
        )
        with pytest.raises(ProviderError) as exc:
            asyncio.run(client.call("eth_call", [{}]))
        assert "execution reverted" in exc.value.message

    def test_rate_limited(self):
        client = self.make_client(lambda request: httpx.Response(429, headers={"Retry-After": "3"}))
        with pytest.raises(RateLimitError) as exc:
            asyncio.run(client.call("eth_call"))
        assert exc.value.retry_after == 3

    def test_server_error(self):
        client = self.make_client(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(ProviderError) as exc:
            asyncio.run(client.call("eth_call"))
        assert exc.value.recoverable


class TestChainStateProvider:
    """Tests for ChainStateProvider."""

    MATURITY = 1_700_000_000 + 90 * 86_400

    def make_rpc(self, cache=(1_000 * WAD, 1_200 * WAD, 5), maturity=MATURITY):
        async def call(method, params=None):
            if method == "eth_getBlockByNumber":
                return {"number": "0x64", "timestamp": hex(1_700_000_000)}
            data = params[0]["data"]
            if data == encode_hex(GET_CACHE_SELECTOR):
                return encode_hex(encode(["uint128", "uint128", "uint16"], list(cache)))
            if data == encode_hex(MATURITY_SELECTOR):
                return encode_hex(encode(["uint32"], [maturity]))
            raise AssertionError(f"unexpected call data {data}")

        rpc = Mock(spec=RpcClient)
        rpc.call = AsyncMock(side_effect=call)
        return rpc

    def test_snapshot(self, mock_settings):
        rpc = self.make_rpc()
        provider = ChainStateProvider(rpc=rpc, settings=mock_settings, cache=CacheManager(ttl=60))

        snapshot = asyncio.run(provider.get_pool_snapshot("0xpool", BlockEvent(100, 1_700_000_000)))

        assert snapshot.base_reserves == pytest.approx(1_000)
        assert snapshot.fy_reserves == pytest.approx(1_200)
        assert snapshot.fee_bps == 5
        assert snapshot.maturity == self.MATURITY
        assert snapshot.observed_at == 1_700_000_000
        assert snapshot.block_number == 100
        # both reads pinned to the cycle's height
        for call in rpc.call.await_args_list:
            assert call.args[1][1] == hex(100)

    def test_token_decimals(self, mock_settings):
        rpc = self.make_rpc(cache=(1_000 * 10 ** 6, 1_200 * 10 ** 6, 0))
        provider = ChainStateProvider(rpc=rpc, token_decimals=6, settings=mock_settings, cache=CacheManager(ttl=60))
        snapshot = asyncio.run(provider.get_pool_snapshot("0xpool", BlockEvent(100, 1_700_000_000)))
        assert snapshot.base_reserves == pytest.approx(1_000)

    def test_rpc_failure_becomes_fetch_error(self, mock_settings):
        rpc = Mock(spec=RpcClient)
        rpc.call = AsyncMock(side_effect=ProviderError("timeout", provider="rpc"))
        provider = ChainStateProvider(rpc=rpc, settings=mock_settings, cache=CacheManager(ttl=60))

        with pytest.raises(SnapshotFetchError) as exc:
            asyncio.run(provider.get_pool_snapshot("0xpool", BlockEvent(100, 1_700_000_000)))
        assert exc.value.pool_id == "0xpool"

    def test_short_return_data(self, mock_settings):
        rpc = Mock(spec=RpcClient)
        rpc.call = AsyncMock(return_value="0x")
        provider = ChainStateProvider(rpc=rpc, settings=mock_settings, cache=CacheManager(ttl=60))

        with pytest.raises(SnapshotFetchError):
            asyncio.run(provider.get_pool_snapshot("0xpool", BlockEvent(100, 1_700_000_000)))

    def test_latest_block(self, mock_settings):
        provider = ChainStateProvider(rpc=self.make_rpc(), settings=mock_settings, cache=CacheManager(ttl=60))
        block = asyncio.run(provider.get_latest_block())
        assert block == BlockEvent(100, 1_700_000_000)

    def test_healthcheck(self, mock_settings):
        provider = ChainStateProvider(rpc=self.make_rpc(), settings=mock_settings, cache=CacheManager(ttl=60))
        result = asyncio.run(provider.healthcheck())
        assert result.status == ProviderStatus.HEALTHY

    def test_missing_rpc_url(self, mock_settings):
        mock_settings.rpc_url = None
        provider = ChainStateProvider(settings=mock_settings, cache=CacheManager(ttl=60))
        with pytest.raises(ConfigurationError):
            provider.rpc


class TestStaticCurveProvider:
    """Tests for StaticCurveProvider."""

    def test_default_curve(self, mock_settings):
        curve = StaticCurveProvider({}, settings=mock_settings, cache=CacheManager(ttl=60)).load_curve()
        assert curve.source == "default_usd"

    def test_configured_knots(self, mock_settings):
        provider = StaticCurveProvider(
            {"knots": [{"tenor": 0.25, "rate": 0.05}, {"tenor": 1.0, "rate": 0.045}], "day_count": "act365"},
            settings=mock_settings,
            cache=CacheManager(ttl=60),
        )
        curve = provider.load_curve()
        assert len(curve.knots) == 2
        assert curve.day_count.value == "act365"

    def test_invalid_knots(self, mock_settings):
        provider = StaticCurveProvider(
            {"knots": [{"tenor": 1.0, "rate": 0.05}, {"tenor": 0.5, "rate": 0.05}]},
            settings=mock_settings,
            cache=CacheManager(ttl=60),
        )
        with pytest.raises(InvalidCurveError):
            provider.load_curve()
        assert provider.healthcheck().status == ProviderStatus.UNAVAILABLE

    def test_factory(self, mock_settings):
        assert isinstance(create_curve_provider({"source": "static"}, settings=mock_settings), StaticCurveProvider)
        assert isinstance(create_curve_provider({"source": "fred"}, settings=mock_settings), FREDCurveProvider)
        with pytest.raises(ConfigurationError):
            create_curve_provider({"source": "bloomberg"}, settings=mock_settings)


class TestFREDCurveProvider:
    """Tests for FREDCurveProvider."""

    LATEST = {"SOFR": 5.30, "DGS1MO": 5.35, "DGS3MO": 5.40, "DGS6MO": 5.30, "DGS1": 5.00, "DGS2": 4.60}

    def make_provider(self, mock_settings, mock_client):
        provider = FREDCurveProvider(settings=mock_settings, cache=CacheManager(ttl=60))
        provider._client = mock_client
        provider._initialized = True
        return provider

    @patch("fyarb.providers.fred.Fred")
    def test_load_curve(self, mock_fred_class, mock_settings):
        mock_client = Mock()
        mock_fred_class.return_value = mock_client

        def get_series(series_id, **kwargs):
            return pd.Series(
                [float("nan"), self.LATEST[series_id]],
                index=pd.to_datetime(["2024-01-01", "2024-01-02"]),
            )

        mock_client.get_series.side_effect = get_series
        curve = self.make_provider(mock_settings, mock_client).load_curve()

        assert curve.source == "fred"
        assert len(curve.knots) == 6
        assert curve.rate(0.25) == pytest.approx(0.054)

    def test_skips_empty_series(self, mock_settings):
        mock_client = Mock()

        def get_series(series_id, **kwargs):
            if series_id == "DGS2":
                return pd.Series([float("nan")], index=pd.to_datetime(["2024-01-02"]))
            return pd.Series([self.LATEST[series_id]], index=pd.to_datetime(["2024-01-02"]))

        mock_client.get_series.side_effect = get_series
        curve = self.make_provider(mock_settings, mock_client).load_curve()
        assert len(curve.knots) == 5

    def test_no_data_raises(self, mock_settings):
        mock_client = Mock()
        mock_client.get_series.side_effect = ValueError("Bad Request")
        with pytest.raises(ProviderError):
            self.make_provider(mock_settings, mock_client).load_curve()

    def test_missing_api_key(self, mock_settings):
        mock_settings.fred_api_key = None
        provider = FREDCurveProvider(settings=mock_settings, cache=CacheManager(ttl=60))
        with pytest.raises(ProviderError):
            provider.load_curve()
