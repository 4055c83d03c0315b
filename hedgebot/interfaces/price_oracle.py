"""Price oracle protocol — price feed abstraction."""
from decimal import Decimal
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching asset prices and on-chain updates."""

    async def fetch_prices(self, feed_ids: list[str]) -> dict[str, Decimal]: ...

    async def fetch_price_update_data(self, feed_ids: list[str]) -> list[bytes]: ...
