"""Unit tests for data models."""
from __future__ import annotations

from decimal import Decimal

import pytest

from hedgebot.models import (
    Borrow,
    HedgeView,
    LiquidityPosition,
    Obligation,
    Reserve,
    ReserveConfig,
)
from tests.conftest import ETH_TYPE, USDC_TYPE


class TestReserve:
    def test_min_max_price(self, eth_reserve: Reserve) -> None:
        r = eth_reserve.with_price(Decimal(3100))
        assert r.min_price == Decimal(3000)
        assert r.max_price == Decimal(3100)

    def test_config_ratios(self) -> None:
        r = Reserve(
            coin_type=ETH_TYPE,
            array_index=0,
            mint_decimals=8,
            price_identifier="ee",
            price=Decimal(1),
            smoothed_price=Decimal(1),
            config=ReserveConfig(
                open_ltv_pct=70, close_ltv_pct=75, borrow_weight_bps=15_000, borrow_fee_bps=30
            ),
        )
        assert r.open_ltv == Decimal("0.7")
        assert r.borrow_weight == Decimal("1.5")
        assert r.borrow_fee == Decimal("0.003")

    def test_unit_conversion(self, eth_reserve: Reserve) -> None:
        assert eth_reserve.to_units(Decimal("0.3")) == 30_000_000
        assert eth_reserve.to_units(Decimal("0.000000019")) == 1
        assert eth_reserve.from_units(30_000_000) == Decimal("0.3")

    def test_frozen(self, eth_reserve: Reserve) -> None:
        with pytest.raises(AttributeError):
            eth_reserve.price = Decimal(1)  # type: ignore[misc]


class TestObligation:
    def test_borrow_lookup_normalizes_types(self) -> None:
        o = Obligation(
            id="0x1",
            borrows=(Borrow(coin_type="0x2::sui::SUI", amount=Decimal(5)),),
        )
        borrow = o.borrow_of("0x" + "0" * 63 + "2::sui::SUI")
        assert borrow is not None and borrow.amount == Decimal(5)
        assert o.borrow_of(USDC_TYPE) is None
        assert o.deposit_of(USDC_TYPE) is None

    def test_health_uses_max_price_borrows(self) -> None:
        healthy = Obligation(
            id="0x1",
            max_price_weighted_borrows_usd=Decimal(100),
            min_price_borrow_limit_usd=Decimal(100),
        )
        unhealthy = Obligation(
            id="0x1",
            max_price_weighted_borrows_usd=Decimal("100.01"),
            min_price_borrow_limit_usd=Decimal(100),
        )
        assert healthy.is_healthy
        assert not unhealthy.is_healthy


class TestLiquidityPosition:
    def test_in_range(self, sample_position: LiquidityPosition) -> None:
        assert sample_position.in_range

    @pytest.mark.parametrize("a,b", [(0, 10), (10, 0), (0, 0)])
    def test_out_of_range(self, a: int, b: int) -> None:
        p = LiquidityPosition(
            id="0x1", pool_id="0x2", coin_a=USDC_TYPE, coin_b=ETH_TYPE,
            coin_a_amount=a, coin_b_amount=b,
        )
        assert not p.in_range


class TestHedgeView:
    def test_exposure_in_human_units(self) -> None:
        view = HedgeView(
            hedged_asset=ETH_TYPE,
            hedged_symbol="ETH",
            hedged_amount=200_000_000,
            stable_asset=USDC_TYPE,
            stable_symbol="USDC",
            stable_amount=6_000_000_000,
            hedged_decimals=8,
        )
        assert view.hedged_exposure == Decimal(2)
