"""Cetus CLMM reads — pool state and position composition."""
from __future__ import annotations

import logging

from ...coin_types import normalize_struct_tag
from ...config import AssetConfig
from ...errors import DataUnavailable
from ...interfaces.chain import ChainClient
from ...models import LiquidityPosition, PoolState
from . import clmm_math, parser

logger = logging.getLogger(__name__)


class CetusPools:
    """Read-only access to Cetus pools and position NFTs."""

    def __init__(
        self, chain_client: ChainClient, assets: tuple[AssetConfig, ...] = ()
    ) -> None:
        self._client = chain_client
        self._assets = assets
        self._decimals_cache: dict[str, int] = {}

    async def _decimals(self, coin_type: str) -> int:
        """Decimals from the asset registry, else from on-chain coin metadata."""
        if coin_type in self._decimals_cache:
            return self._decimals_cache[coin_type]

        for asset in self._assets:
            if normalize_struct_tag(asset.coin_type) == coin_type:
                self._decimals_cache[coin_type] = asset.decimals
                return asset.decimals

        metadata = await self._client.get_coin_metadata(coin_type)
        if not metadata or "decimals" not in metadata:
            raise DataUnavailable("Unknown coin decimals", coin_type=coin_type)
        decimals = int(metadata["decimals"])
        self._decimals_cache[coin_type] = decimals
        return decimals

    async def fetch_pool(self, pool_id: str) -> PoolState:
        obj = await self._client.get_object(pool_id)
        coin_a, coin_b = parser.pool_coin_types(obj)
        pool = parser.parse_pool(
            obj, await self._decimals(coin_a), await self._decimals(coin_b)
        )
        logger.debug(
            "Pool %s: tick %d, spacing %d",
            pool_id, pool.current_tick_index, pool.tick_spacing,
        )
        return pool

    async def fetch_position(self, position_id: str) -> LiquidityPosition:
        """Position composition at the pool's current price, in base units."""
        fields = parser.parse_position_fields(await self._client.get_object(position_id))
        pool = await self.fetch_pool(fields["pool_id"])

        amount_a, amount_b = clmm_math.amounts_for_liquidity(
            fields["liquidity"],
            clmm_math.sqrt_price_from_x64(pool.current_sqrt_price),
            clmm_math.sqrt_price_from_tick(fields["tick_lower"]),
            clmm_math.sqrt_price_from_tick(fields["tick_upper"]),
        )

        position = LiquidityPosition(
            id=position_id,
            pool_id=pool.id or fields["pool_id"],
            coin_a=pool.coin_type_a,
            coin_b=pool.coin_type_b,
            coin_a_amount=amount_a,
            coin_b_amount=amount_b,
            liquidity=fields["liquidity"],
            tick_lower=fields["tick_lower"],
            tick_upper=fields["tick_upper"],
        )
        logger.info(
            "Position %s: %d A / %d B (ticks %d..%d)",
            position_id, amount_a, amount_b, position.tick_lower, position.tick_upper,
        )
        return position
