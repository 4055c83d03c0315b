"""Pure parsing functions for Cetus CLMM pool and position objects — no I/O."""
from __future__ import annotations

from typing import Any

from ...chains.sui.objects import move_fields, object_fields, object_id, object_type
from ...coin_types import normalize_struct_tag, type_params
from ...errors import DataUnavailable
from ...models import PoolState


def parse_i32(raw: Any) -> int:
    """``I32 { bits: u32 }`` → signed int."""
    bits = int(move_fields(raw).get("bits", 0)) if isinstance(raw, dict) else int(raw)
    return bits - (1 << 32) if bits >= (1 << 31) else bits


def to_i32_bits(tick: int) -> int:
    """Signed tick → the u32 two's-complement form Move entry functions take."""
    return tick & 0xFFFFFFFF


def pool_coin_types(obj: dict[str, Any]) -> tuple[str, str]:
    """Coin types from the ``Pool<A, B>`` object type."""
    pool_type = object_type(obj)
    params = type_params(pool_type)
    if len(params) != 2:
        raise DataUnavailable("Not a Cetus pool object", object_type=pool_type)
    return normalize_struct_tag(params[0]), normalize_struct_tag(params[1])


def parse_pool(obj: dict[str, Any], decimals_a: int, decimals_b: int) -> PoolState:
    fields = object_fields(obj)
    coin_a, coin_b = pool_coin_types(obj)

    rewarders = move_fields(fields.get("rewarder_manager", {})).get("rewarders", [])
    reward_types = tuple(
        normalize_struct_tag(
            move_fields(move_fields(r).get("reward_coin", {})).get("name", "")
        )
        for r in rewarders
    )

    return PoolState(
        id=object_id(obj),
        coin_type_a=coin_a,
        coin_type_b=coin_b,
        decimals_a=decimals_a,
        decimals_b=decimals_b,
        current_sqrt_price=int(fields.get("current_sqrt_price", 0)),
        current_tick_index=parse_i32(fields.get("current_tick_index", 0)),
        tick_spacing=int(fields.get("tick_spacing", 1)),
        rewarder_coin_types=reward_types,
    )


def parse_position_fields(obj: dict[str, Any]) -> dict[str, Any]:
    """Pool id, liquidity, tick bounds and coin types of a position NFT."""
    fields = object_fields(obj)
    if "pool" not in fields:
        raise DataUnavailable("Not a Cetus position object", object_id=object_id(obj))
    return {
        "id": object_id(obj),
        "pool_id": fields["pool"],
        "liquidity": int(fields.get("liquidity", 0)),
        "tick_lower": parse_i32(fields.get("tick_lower_index", 0)),
        "tick_upper": parse_i32(fields.get("tick_upper_index", 0)),
        "coin_type_a": normalize_struct_tag(
            move_fields(fields.get("coin_type_a", {})).get("name", "")
        ),
        "coin_type_b": normalize_struct_tag(
            move_fields(fields.get("coin_type_b", {})).get("name", "")
        ),
    }
