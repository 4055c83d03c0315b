"""Market data gateway — reserves, obligations, pool positions and prices."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable

from ..coin_types import get_token_symbol, normalize_struct_tag
from ..interfaces.chain import ChainClient
from ..interfaces.price_oracle import PriceOracle
from ..models import (
    CoinMetadata,
    LiquidityPosition,
    Obligation,
    ObligationOwnerCap,
    PoolState,
    Reserve,
)
from ..oracles.pyth import normalize_feed_id
from ..protocols.cetus import CetusPools
from ..protocols.suilend import SuilendMarket
from ..protocols.suilend import parser as suilend_parser

logger = logging.getLogger(__name__)


class MarketDataGateway:
    """Read side of a rebalance cycle.

    Reserves, obligations and positions are fetched fresh on every call.
    Owner caps and coin metadata rarely change and are cached for
    ``refetch_interval`` seconds.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        market: SuilendMarket,
        pools: CetusPools,
        oracle: PriceOracle,
        refetch_interval: int = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = chain_client
        self._market = market
        self._pools = pools
        self._oracle = oracle
        self._refetch_interval = refetch_interval
        self._clock = clock
        self._owner_caps: dict[str, tuple[float, list[ObligationOwnerCap]]] = {}
        self._metadata: dict[str, CoinMetadata] = {}
        self._metadata_fetched_at: dict[str, float] = {}

    def _is_fresh(self, fetched_at: float | None) -> bool:
        if fetched_at is None:
            return False
        return self._clock() - fetched_at < self._refetch_interval

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def fetch_coin_metadata(self, coin_types: list[str]) -> dict[str, CoinMetadata]:
        """Metadata per coin type; types whose lookup fails are omitted."""
        wanted = [normalize_struct_tag(t) for t in coin_types]
        stale = [t for t in wanted if not self._is_fresh(self._metadata_fetched_at.get(t))]

        if stale:
            results = await asyncio.gather(
                *(self._client.get_coin_metadata(t) for t in stale)
            )
            now = self._clock()
            for coin_type, raw in zip(stale, results):
                if not raw:
                    continue
                self._metadata[coin_type] = CoinMetadata(
                    coin_type=coin_type,
                    symbol=raw.get("symbol") or get_token_symbol(coin_type),
                    decimals=int(raw.get("decimals", 0)),
                    name=raw.get("name", ""),
                )
                self._metadata_fetched_at[coin_type] = now

        return {t: self._metadata[t] for t in wanted if t in self._metadata}

    # ------------------------------------------------------------------
    # Lending market
    # ------------------------------------------------------------------

    async def fetch_reserves(self, market_id: str | None = None) -> dict[str, Reserve]:
        """``coin type → Reserve`` with prices replaced by the oracle's latest.

        Only prices are brought up to date; borrow interest stays as of the
        reserve's last on-chain update.
        """
        reserves = await self._market.fetch_reserves(market_id)
        if not reserves:
            return {}

        prices, metadata = await asyncio.gather(
            self._oracle.fetch_prices([r.price_identifier for r in reserves]),
            self.fetch_coin_metadata([r.coin_type for r in reserves]),
        )

        reserve_map: dict[str, Reserve] = {}
        for reserve in reserves:
            price = prices.get(normalize_feed_id(reserve.price_identifier))
            if price is not None:
                reserve = reserve.with_price(price)
            else:
                logger.warning(
                    "No oracle price for %s; using on-chain price", reserve.coin_type
                )
            meta = metadata.get(reserve.coin_type)
            if meta:
                reserve = replace(reserve, symbol=meta.symbol)
            reserve_map[reserve.coin_type] = reserve
        return reserve_map

    async def fetch_owner_caps(self, owner: str) -> list[ObligationOwnerCap]:
        cached = self._owner_caps.get(owner)
        if cached and self._is_fresh(cached[0]):
            return cached[1]
        caps = await self._market.fetch_owner_caps(owner)
        self._owner_caps[owner] = (self._clock(), caps)
        return caps

    async def fetch_obligations(
        self, owner: str, reserve_map: dict[str, Reserve]
    ) -> list[Obligation]:
        """Every obligation of ``owner``, re-valued against ``reserve_map``."""
        caps = await self.fetch_owner_caps(owner)
        if not caps:
            return []

        objects = await self._market.fetch_obligation_objects(
            [cap.obligation_id for cap in caps]
        )
        return [
            suilend_parser.parse_obligation(obj, reserve_map, owner_cap_id=cap.id)
            for cap, obj in zip(caps, objects)
        ]

    # ------------------------------------------------------------------
    # Liquidity pools
    # ------------------------------------------------------------------

    async def fetch_position(self, position_id: str) -> LiquidityPosition:
        return await self._pools.fetch_position(position_id)

    async def fetch_pool(self, pool_id: str) -> PoolState:
        return await self._pools.fetch_pool(pool_id)
