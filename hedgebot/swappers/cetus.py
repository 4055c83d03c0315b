"""Cetus aggregator swap router."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from ..chains.sui.transaction import Argument, InstructionBundle
from ..coin_types import normalize_struct_tag
from ..config import CetusAggregatorConfig
from ..models import Quote
from .base import append_routes, fetch_json, min_amount_out, validate_swap_args

logger = logging.getLogger(__name__)


def _parse_routes(routes: list[dict[str, Any]]) -> tuple[dict[str, Any], ...]:
    parsed = []
    for route in routes:
        hops = [
            {
                "pool_id": hop["id"],
                "module": str(hop.get("provider", "cetus")).lower(),
                "a2b": bool(hop.get("direction", True)),
                "coin_in": normalize_struct_tag(hop["from"]),
                "coin_out": normalize_struct_tag(hop["target"]),
            }
            for hop in route.get("path", [])
        ]
        parsed.append(
            {
                "amount_in": int(route.get("amount_in", 0)),
                "amount_out": int(route.get("amount_out", 0)),
                "hops": hops,
            }
        )
    return tuple(parsed)


class CetusAggregatorRouter:
    """Quotes through the Cetus find-routes API; exact input and exact output."""

    name = "cetus"

    def __init__(self, config: CetusAggregatorConfig, timeout: int = 15) -> None:
        self.url = config.url
        self.package_id = config.package_id
        self.depth = config.depth
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
        from_coin_type = normalize_struct_tag(from_coin_type)
        to_coin_type = normalize_struct_tag(to_coin_type)

        data = await fetch_json(
            self.url,
            {
                "from": from_coin_type,
                "target": to_coin_type,
                "amount": str(amount),
                "by_amount_in": "true" if by_amount_in else "false",
                "depth": str(self.depth),
            },
            self.timeout,
        )

        body = data.get("data") or {}
        if data.get("code", 200) != 200 or not body.get("routes"):
            logger.info(
                "Cetus found no route %s -> %s (%s)",
                from_coin_type, to_coin_type, data.get("msg", "no routes"),
            )
            return None

        quote = Quote(
            router=self.name,
            from_coin_type=from_coin_type,
            to_coin_type=to_coin_type,
            amount_in=int(body["amount_in"]),
            amount_out=int(body["amount_out"]),
            by_amount_in=by_amount_in,
            routes=_parse_routes(body["routes"]),
        )
        logger.info(
            "Cetus quote: %d in -> %d out (%d routes)",
            quote.amount_in, quote.amount_out, len(quote.routes),
        )
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
