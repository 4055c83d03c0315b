"""7k aggregator swap router (exact input only)."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from ..chains.sui.transaction import Argument, InstructionBundle
from ..coin_types import normalize_struct_tag
from ..config import SevenKConfig
from ..models import Quote
from .base import append_routes, fetch_json, min_amount_out, validate_swap_args

logger = logging.getLogger(__name__)


def _parse_routes(routes: list[dict[str, Any]]) -> tuple[dict[str, Any], ...]:
    parsed = []
    for route in routes:
        hops = []
        for hop in route.get("hops", []):
            pool = hop.get("pool", {})
            coin_in = normalize_struct_tag(hop["tokenIn"])
            coin_out = normalize_struct_tag(hop["tokenOut"])
            pool_coins = [normalize_struct_tag(t) for t in pool.get("allTokens", [])]
            hops.append(
                {
                    "pool_id": hop["poolId"],
                    "module": str(pool.get("type", "cetus")).lower(),
                    "a2b": not pool_coins or pool_coins[0] == coin_in,
                    "coin_in": coin_in,
                    "coin_out": coin_out,
                }
            )
        parsed.append(
            {
                "amount_in": int(route.get("tokenInAmount", 0)),
                "amount_out": int(route.get("tokenOutAmount", 0)),
                "hops": hops,
            }
        )
    return tuple(parsed)


class SevenKRouter:
    """Quotes through the 7k aggregator API."""

    name = "7k"

    def __init__(self, config: SevenKConfig, timeout: int = 15) -> None:
        self.url = config.url
        self.package_id = config.package_id
        self.timeout = timeout

    async def quote(
        self,
        from_coin_type: str,
        to_coin_type: str,
        from_amount: int | None = None,
        to_amount: int | None = None,
        max_slippage: Decimal = Decimal("0.001"),
    ) -> Quote | None:
        amount, by_amount_in = validate_swap_args(from_amount, to_amount)
        if not by_amount_in:
            logger.debug("7k does not quote exact-output swaps")
            return None

        from_coin_type = normalize_struct_tag(from_coin_type)
        to_coin_type = normalize_struct_tag(to_coin_type)
        data = await fetch_json(
            self.url,
            {"amount": str(amount), "from": from_coin_type, "to": to_coin_type},
            self.timeout,
        )

        if not data.get("routes"):
            logger.info("7k found no route %s -> %s", from_coin_type, to_coin_type)
            return None

        quote = Quote(
            router=self.name,
            from_coin_type=from_coin_type,
            to_coin_type=to_coin_type,
            amount_in=int(data.get("swapAmountWithDecimal", amount)),
            amount_out=int(data["returnAmountWithDecimal"]),
            by_amount_in=True,
            routes=_parse_routes(data["routes"]),
        )
        logger.info("7k quote: %d in -> %d out", quote.amount_in, quote.amount_out)
        return quote

    def append_swap(
        self,
        bundle: InstructionBundle,
        input_coin: Argument,
        quote: Quote,
        max_slippage: Decimal,
    ) -> Argument:
        return append_routes(
            bundle,
            self.package_id,
            input_coin,
            quote,
            min_amount_out(quote, max_slippage),
        )
