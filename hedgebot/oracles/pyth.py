"""Pyth Network price oracle service."""
from __future__ import annotations

import logging
import ssl
from decimal import Decimal
from typing import Any

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import DataUnavailable

logger = logging.getLogger(__name__)

_ACCUMULATOR_MAGIC = b"PNAU"


def normalize_feed_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


def extract_vaa(accumulator_message: bytes) -> bytes:
    """Return the Wormhole VAA embedded in a Pyth accumulator update.

    Layout: magic(4) | major(1) | minor(1) | trailing_size(1) | trailing |
    proof_type(1) | vaa_size(u16 BE) | vaa | ...
    """
    if accumulator_message[:4] != _ACCUMULATOR_MAGIC:
        raise ValueError("Not a Pyth accumulator update message")
    trailing_size = accumulator_message[6]
    size_offset = 7 + trailing_size + 1
    vaa_size = int.from_bytes(accumulator_message[size_offset:size_offset + 2], "big")
    vaa_offset = size_offset + 2
    return accumulator_message[vaa_offset:vaa_offset + vaa_size]


class PythOracle:
    """Fetch prices and price-update payloads from Pyth Hermes."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout

    async def _get(self, feed_ids: list[str], extra: str = "") -> dict[str, Any]:
        ids = sorted({normalize_feed_id(f) for f in feed_ids})
        query_params = "&".join([f"ids[]={fid}" for fid in ids])
        url = f"{self.hermes_url}?{query_params}{extra}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise DataUnavailable(
                            f"Pyth returned HTTP {response.status}", feeds=ids
                        )
                    return await response.json()
        except DataUnavailable:
            raise
        except Exception as e:
            raise DataUnavailable(f"Error fetching from Pyth: {e}", feeds=ids) from e

    async def fetch_prices(self, feed_ids: list[str]) -> dict[str, Decimal]:
        """Latest prices keyed by normalized feed id."""
        prices: dict[str, Decimal] = {}
        if not feed_ids:
            return prices

        data = await self._get(feed_ids, "&parsed=true")

        for item in data.get("parsed", []):
            feed_id = normalize_feed_id(item.get("id", ""))
            price_data = item.get("price", {})
            price_raw = int(price_data.get("price", 0))
            expo = int(price_data.get("expo", 0))
            prices[feed_id] = Decimal(price_raw).scaleb(expo)

        logger.debug("Fetched %d prices from Pyth Network", len(prices))
        return prices

    async def fetch_price_update_data(self, feed_ids: list[str]) -> list[bytes]:
        """Signed accumulator updates for pushing prices on-chain."""
        data = await self._get(feed_ids, "&encoding=hex&parsed=false")
        updates = data.get("binary", {}).get("data", [])
        if not updates:
            raise DataUnavailable("Pyth returned no update data", feeds=feed_ids)
        return [bytes.fromhex(u) for u in updates]
