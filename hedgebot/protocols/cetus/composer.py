"""Cetus position steps — composition quotes, open and close."""
from __future__ import annotations

import logging
from decimal import Decimal

from ...chains.sui.transaction import Argument, InstructionBundle
from ...coin_types import normalize_struct_tag
from ...config import CetusConfig
from ...errors import RangeOutOfBounds
from ...models import LiquidityPosition, PoolState
from . import clmm_math
from .parser import to_i32_bits

logger = logging.getLogger(__name__)

CLOCK_ID = "0x6"


class PositionComposer:
    """Turns a price range and an amount into Cetus position steps."""

    def __init__(self, config: CetusConfig) -> None:
        self._config = config

    def _target(self, function: str) -> str:
        return f"{self._config.integrate_package_id}::pool_script_v2::{function}"

    def ticks_for_range(
        self, pool: PoolState, lower_price: Decimal, upper_price: Decimal
    ) -> tuple[int, int]:
        return clmm_math.range_ticks(
            lower_price, upper_price, pool.decimals_a, pool.decimals_b, pool.tick_spacing
        )

    def quote_composition(
        self,
        pool: PoolState,
        lower_price: Decimal,
        upper_price: Decimal,
        amount: int,
        fix_amount_a: bool,
    ) -> tuple[int, int]:
        """``(amount_a, amount_b)`` pairing ``amount`` of the fixed side.

        Raises RangeOutOfBounds when the range cannot hold both coins at the
        current price.
        """
        lower_tick, upper_tick = self.ticks_for_range(pool, lower_price, upper_price)
        amount_a, amount_b = clmm_math.composition_from_amount(
            amount,
            fix_amount_a,
            clmm_math.sqrt_price_from_x64(pool.current_sqrt_price),
            clmm_math.sqrt_price_from_tick(lower_tick),
            clmm_math.sqrt_price_from_tick(upper_tick),
        )
        if amount_a == 0 or amount_b == 0:
            raise RangeOutOfBounds(
                "Price range does not straddle the current pool price",
                pool_id=pool.id,
                lower_tick=lower_tick,
                upper_tick=upper_tick,
                current_tick=pool.current_tick_index,
            )
        return amount_a, amount_b

    def open_position(
        self,
        bundle: InstructionBundle,
        pool: PoolState,
        lower_price: Decimal,
        upper_price: Decimal,
        stable_coin_type: str,
        stable_coin: Argument,
        amount_stable: int,
        hedged_coin: Argument,
        amount_hedged: int,
    ) -> None:
        """Open a position funded by the stable and hedged coins.

        Liquidity is fixed by the stable side; the hedged amount is the
        maximum the pool may take.
        """
        lower_tick, upper_tick = self.ticks_for_range(pool, lower_price, upper_price)
        stable_is_a = normalize_struct_tag(stable_coin_type) == pool.coin_type_a

        if stable_is_a:
            coin_a, coin_b = stable_coin, hedged_coin
            amount_a, amount_b = amount_stable, amount_hedged
        else:
            coin_a, coin_b = hedged_coin, stable_coin
            amount_a, amount_b = amount_hedged, amount_stable

        bundle.move_call(
            self._target("open_position_with_liquidity_by_fix_coin"),
            [
                bundle.object(self._config.global_config_id),
                bundle.object(pool.id),
                bundle.pure(to_i32_bits(lower_tick), "u32"),
                bundle.pure(to_i32_bits(upper_tick), "u32"),
                coin_a,
                coin_b,
                bundle.pure(amount_a, "u64"),
                bundle.pure(amount_b, "u64"),
                bundle.pure(stable_is_a, "bool"),
                bundle.object(CLOCK_ID),
            ],
            [pool.coin_type_a, pool.coin_type_b],
        )
        logger.info(
            "Opening position in %s: ticks %d..%d, %d A / %d B",
            pool.id, lower_tick, upper_tick, amount_a, amount_b,
        )

    def close_position(
        self,
        bundle: InstructionBundle,
        position: LiquidityPosition,
        pool: PoolState,
    ) -> None:
        """Collect fees and every reward, then remove all liquidity and burn."""
        type_args = [pool.coin_type_a, pool.coin_type_b]
        config = bundle.object(self._config.global_config_id)
        pool_obj = bundle.object(pool.id)
        position_obj = bundle.object(position.id)
        clock = bundle.object(CLOCK_ID)

        bundle.move_call(
            self._target("collect_fee"),
            [config, pool_obj, position_obj],
            type_args,
        )
        for reward_type in pool.rewarder_coin_types:
            bundle.move_call(
                self._target("collect_reward"),
                [
                    config,
                    pool_obj,
                    position_obj,
                    bundle.object(self._config.rewarder_vault_id),
                    clock,
                ],
                [*type_args, reward_type],
            )
        bundle.move_call(
            self._target("close_position"),
            [
                config,
                pool_obj,
                position_obj,
                bundle.pure(0, "u64"),
                bundle.pure(0, "u64"),
                clock,
            ],
            type_args,
        )
        logger.info(
            "Closing position %s (%d reward types)",
            position.id, len(pool.rewarder_coin_types),
        )
