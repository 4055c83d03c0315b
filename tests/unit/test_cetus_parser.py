"""Unit tests for Cetus pool and position parsing."""
from __future__ import annotations

from typing import Any

import pytest

from hedgebot.coin_types import SUI_TYPE
from hedgebot.errors import DataUnavailable
from hedgebot.protocols.cetus.parser import (
    parse_i32,
    parse_pool,
    parse_position_fields,
    pool_coin_types,
    to_i32_bits,
)
from tests.conftest import ETH_TYPE, USDC_TYPE


def pool_object(tick_bits: int = 2**32 - 100) -> dict[str, Any]:
    return {
        "data": {
            "objectId": "0xpool",
            "type": f"0xcetus::pool::Pool<{USDC_TYPE}, {ETH_TYPE}>",
            "content": {
                "fields": {
                    "current_sqrt_price": str(2**64),
                    "current_tick_index": {"fields": {"bits": tick_bits}},
                    "tick_spacing": 60,
                    "rewarder_manager": {
                        "fields": {
                            "rewarders": [
                                {"fields": {"reward_coin": {"fields": {"name": "0x2::sui::SUI"}}}}
                            ]
                        }
                    },
                }
            },
        }
    }


def position_object() -> dict[str, Any]:
    return {
        "data": {
            "objectId": "0xposition",
            "content": {
                "fields": {
                    "pool": "0xpool",
                    "liquidity": "123456",
                    "tick_lower_index": {"fields": {"bits": 2**32 - 1000}},
                    "tick_upper_index": {"fields": {"bits": 1000}},
                    "coin_type_a": {"fields": {"name": USDC_TYPE.removeprefix("0x")}},
                    "coin_type_b": {"fields": {"name": ETH_TYPE.removeprefix("0x")}},
                }
            },
        }
    }


class TestI32:
    @pytest.mark.parametrize("tick", [-443636, -1, 0, 1, 443636])
    def test_bits_round_trip(self, tick: int) -> None:
        assert parse_i32({"fields": {"bits": to_i32_bits(tick)}}) == tick

    def test_plain_int(self) -> None:
        assert parse_i32(2**32 - 1) == -1


class TestParsePool:
    def test_fields(self) -> None:
        pool = parse_pool(pool_object(), 6, 8)
        assert pool.id == "0xpool"
        assert pool.coin_type_a == USDC_TYPE
        assert pool.coin_type_b == ETH_TYPE
        assert pool.decimals_a == 6 and pool.decimals_b == 8
        assert pool.current_sqrt_price == 2**64
        assert pool.current_tick_index == -100
        assert pool.tick_spacing == 60
        assert pool.rewarder_coin_types == (SUI_TYPE,)

    def test_non_pool_object_raises(self) -> None:
        obj = pool_object()
        obj["data"]["type"] = "0x2::coin::Coin<0x2::sui::SUI>"
        with pytest.raises(DataUnavailable):
            pool_coin_types(obj)


class TestParsePosition:
    def test_fields(self) -> None:
        fields = parse_position_fields(position_object())
        assert fields == {
            "id": "0xposition",
            "pool_id": "0xpool",
            "liquidity": 123456,
            "tick_lower": -1000,
            "tick_upper": 1000,
            "coin_type_a": USDC_TYPE,
            "coin_type_b": ETH_TYPE,
        }

    def test_non_position_object_raises(self) -> None:
        with pytest.raises(DataUnavailable):
            parse_position_fields({"data": {"objectId": "0x1", "content": {"fields": {}}}})
