"""Tests for trade sizing."""

import itertools
from dataclasses import replace

import pytest

from fyarb.arb.sizer import TradeSizer, apply_slippage
from fyarb.core.errors import SearchDidNotConvergeError
from fyarb.pricing.implied import ImpliedPricer


class TestApplySlippage:
    def test_max_in_widens_up(self):
        assert apply_slippage(1_000, 50, True) == pytest.approx(1_005)

    def test_min_out_widens_down(self):
        assert apply_slippage(1_000, 50, False) == pytest.approx(995)


class TestTradeSizer:
    """Tests for TradeSizer."""

    @pytest.fixture
    def sizer(self):
        return TradeSizer(ImpliedPricer(), tolerance=1e-6, max_iterations=64, dust=0.01, slippage_bps=50)

    @pytest.fixture
    def pair(self, snapshot_factory):
        return snapshot_factory("0xX", 0.95, base=100_000), snapshot_factory("0xY", 0.99, base=100_000)

    def test_scenario_a_proposal(self, sizer, pair):
        cheap, rich = pair
        proposal = sizer.size(cheap, rich, 50_000, 100_000, 0.05)

        assert proposal is not None
        assert proposal.cheap_pool == "0xX"
        assert proposal.rich_pool == "0xY"
        assert proposal.expected_profit > 0
        assert proposal.gross_profit == pytest.approx(proposal.base_out - proposal.base_in)
        assert proposal.expected_profit == pytest.approx(proposal.gross_profit - 0.05)
        assert proposal.max_base_in >= proposal.base_in
        assert proposal.min_base_out <= proposal.base_out
        assert proposal.block_number == cheap.block_number

    def test_scenario_c_zero_base_cap(self, sizer, pair):
        cheap, rich = pair
        assert sizer.size(cheap, rich, 0, 100_000, 0.05) is None

    def test_zero_token_cap(self, sizer, pair):
        cheap, rich = pair
        assert sizer.size(cheap, rich, 50_000, 0, 0.05) is None

    def test_no_edge_no_trade(self, sizer, snapshot_factory):
        same = snapshot_factory("0xX", 0.97, fee_bps=5)
        other = snapshot_factory("0xY", 0.97, fee_bps=5)
        assert sizer.size(same, other, 50_000, 100_000, 0.0) is None

    def test_gas_eats_profit(self, sizer, snapshot_factory):
        cheap = snapshot_factory("0xX", 0.9700, base=1_000)
        rich = snapshot_factory("0xY", 0.9702, base=1_000)
        assert sizer.size(cheap, rich, 50_000, 100_000, 1_000.0) is None

    def test_unconstrained_size_is_profit_maximum(self, sizer, pair):
        cheap, rich = pair
        proposal = sizer.size(cheap, rich, 1e12, 1e12, 0.0)
        assert proposal is not None

        x = proposal.fy_amount
        best = sizer.expected_profit(cheap, rich, x)
        assert best >= sizer.expected_profit(cheap, rich, x * 0.99)
        assert best >= sizer.expected_profit(cheap, rich, x * 1.01)

    def test_binding_cap_sizes_to_cap(self, sizer, pair):
        cheap, rich = pair
        proposal = sizer.size(cheap, rich, 1e12, 500, 0.0)
        assert proposal is not None
        assert proposal.fy_amount <= 500
        assert proposal.fy_amount == pytest.approx(500, abs=1e-5)

    def test_caps_hold_across_pool_configurations(self, sizer, snapshot_factory):
        reserves = [ImpliedPricer().min_liquidity, 150, 2_000, 75_000, 3_000_000]
        cheap_dfs = [0.90, 0.96, 0.985]
        rich_dfs = [0.97, 0.99, 0.999]
        fees = [0, 5, 30]
        caps = [(0.5, 1e9), (1e9, 10.0), (1_000, 2_000), (1e9, 1e9)]

        proposals = 0
        for (base, cheap_df, rich_df, fee, (max_base, max_token)) in itertools.product(
            reserves, cheap_dfs, rich_dfs, fees, caps
        ):
            cheap = snapshot_factory("0xX", cheap_df, base=base, fee_bps=fee)
            rich = snapshot_factory("0xY", rich_df, base=base * 2, fee_bps=fee)
            proposal = sizer.size(cheap, rich, max_base, max_token, 0.01)
            if proposal is None:
                continue
            proposals += 1
            assert proposal.fy_amount <= max_token
            assert proposal.base_in <= max_base
            assert proposal.max_base_in <= max_base
            assert proposal.fy_amount >= sizer.dust
            assert proposal.expected_profit > 0

        assert proposals > 0

    def test_caps_hold_with_fy_reserves_at_floor(self, sizer, snapshot_factory):
        floor = ImpliedPricer().min_liquidity
        caps = [(0.5, 1e9), (1e9, 10.0), (1e9, 1e9)]

        proposals = 0
        for cheap_df, (max_base, max_token) in itertools.product([0.90, 0.95, 0.985], caps):
            cheap = snapshot_factory("0xX", cheap_df, base=50_000)
            # base == fy at the floor: both reserves sit exactly at the minimum
            rich = replace(snapshot_factory("0xY", 0.99, base=floor), fy_reserves=floor)
            proposal = sizer.size(cheap, rich, max_base, max_token, 0.01)
            if proposal is None:
                continue
            proposals += 1
            assert proposal.fy_amount <= max_token
            assert proposal.base_in <= max_base
            assert proposal.max_base_in <= max_base
            assert proposal.base_out < rich.base_reserves

        assert proposals > 0

    def test_non_convergence_returns_none(self, pair):
        cheap, rich = pair
        sizer = TradeSizer(ImpliedPricer(), tolerance=1e-9, max_iterations=3)
        assert sizer.size(cheap, rich, 50_000, 100_000, 0.05) is None

    def test_bisect_raises_when_capped(self, sizer):
        sizer.max_iterations = 2
        with pytest.raises(SearchDidNotConvergeError) as exc:
            sizer.bisect(lambda x: 1.0 - x, 100.0)
        assert exc.value.iterations == 2

    def test_bisect_finds_root(self, sizer):
        assert sizer.bisect(lambda x: 3.0 - x, 10.0) == pytest.approx(3.0, abs=1e-6)

    def test_rejects_bad_parameters(self):
        with pytest.raises(ValueError):
            TradeSizer(ImpliedPricer(), tolerance=0)
        with pytest.raises(ValueError):
            TradeSizer(ImpliedPricer(), max_iterations=0)
