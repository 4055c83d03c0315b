"""Suilend lending-market reads — reserves, owner caps and obligations."""
from __future__ import annotations

import logging
from typing import Any

from ...config import LendingConfig
from ...errors import DataUnavailable
from ...interfaces.chain import ChainClient
from ...models import ObligationOwnerCap, Reserve
from . import parser

logger = logging.getLogger(__name__)


class SuilendMarket:
    """Read-only access to one Suilend lending market."""

    def __init__(self, chain_client: ChainClient, config: LendingConfig) -> None:
        self._client = chain_client
        self._config = config

    @property
    def market_id(self) -> str:
        return self._config.market_id

    @property
    def owner_cap_type(self) -> str:
        return (
            f"{self._config.package_id}::lending_market::"
            f"ObligationOwnerCap<{self._config.market_type}>"
        )

    async def fetch_reserves(self, market_id: str | None = None) -> list[Reserve]:
        """Reserves as stored on-chain (prices as of the last on-chain refresh).

        Borrow amounts are scaled by each reserve's ``cumulative_borrow_rate``
        as last written on-chain. Interest since that update is not compounded
        here, so a loan reads slightly low until the next on-chain refresh.
        """
        lending_market = await self._client.get_object(market_id or self.market_id)
        reserves = parser.parse_reserves(lending_market)
        logger.info("Fetched %d Suilend reserves", len(reserves))
        return reserves

    async def fetch_owner_caps(self, owner: str) -> list[ObligationOwnerCap]:
        objects = await self._client.get_owned_objects(owner, self.owner_cap_type)
        caps = [c for c in (parser.parse_owner_cap(o) for o in objects) if c]
        logger.info("Found %d obligation owner caps for %s", len(caps), owner)
        return caps

    async def fetch_obligation_objects(
        self, obligation_ids: list[str]
    ) -> list[dict[str, Any]]:
        """Raw obligation objects in the given order, read in one batch."""
        objects = await self._client.multi_get_objects(obligation_ids)
        for obligation_id, obj in zip(obligation_ids, objects):
            if "error" in obj or not obj.get("data"):
                raise DataUnavailable("Obligation not found", obligation_id=obligation_id)
        return objects
