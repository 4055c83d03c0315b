"""Shared swap-router plumbing: argument checks, HTTP quotes, hop steps."""
from __future__ import annotations

import logging
import math
import ssl
from decimal import Decimal
from typing import Any

import aiohttp
import certifi

from ..chains.sui.transaction import Argument, InstructionBundle
from ..errors import DataUnavailable, InvalidQuoteRequest
from ..models import Quote

logger = logging.getLogger(__name__)

CLOCK_ID = "0x6"


def validate_swap_args(
    from_amount: int | None, to_amount: int | None
) -> tuple[int, bool]:
    """Return ``(amount, by_amount_in)``; exactly one amount must be given."""
    has_from = bool(from_amount)
    has_to = bool(to_amount)
    if has_from == has_to:
        raise InvalidQuoteRequest(
            "Must specify exactly one of from_amount or to_amount",
            from_amount=from_amount,
            to_amount=to_amount,
        )
    if has_from:
        return int(from_amount), True
    return int(to_amount), False


def min_amount_out(quote: Quote, max_slippage: Decimal) -> int:
    """Smallest acceptable output for the quote.

    Exact-output quotes must deliver the requested amount; exact-input quotes
    may lose up to ``max_slippage`` of the quoted output.
    """
    if not quote.by_amount_in:
        return quote.amount_out
    return math.floor(Decimal(quote.amount_out) * (1 - max_slippage))


def max_amount_in(quote: Quote, max_slippage: Decimal) -> int:
    """Input to provide so an exact-output swap still fills after slippage."""
    if quote.by_amount_in:
        return quote.amount_in
    return math.ceil(Decimal(quote.amount_in) * (1 + max_slippage))


async def fetch_json(url: str, params: dict[str, Any], timeout: int) -> dict[str, Any]:
    """GET a routing endpoint; transport and HTTP failures → DataUnavailable."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(ssl=ssl_context)

    try:
        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(
                url, params=params, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if response.status != 200:
                    raise DataUnavailable(
                        f"Router returned HTTP {response.status}", url=url
                    )
                return await response.json()
    except DataUnavailable:
        raise
    except Exception as e:
        raise DataUnavailable(f"Error fetching route: {e}", url=url) from e


def append_routes(
    bundle: InstructionBundle,
    package_id: str,
    input_coin: Argument,
    quote: Quote,
    threshold: int,
) -> Argument:
    """Swap ``input_coin`` along every route of the quote; returns the output.

    Split routes take their quoted share of the input; the last route takes
    whatever is left. Outputs are merged and checked against ``threshold``.
    """
    if not quote.routes:
        raise ValueError(f"Quote from {quote.router} carries no routes")

    clock = bundle.object(CLOCK_ID)
    shares = [int(r["amount_in"]) for r in quote.routes[:-1]]
    route_inputs = [input_coin]
    if shares:
        route_inputs = [*bundle.split_coins(input_coin, shares), input_coin]

    outputs: list[Argument] = []
    for route, coin in zip(quote.routes, route_inputs):
        for hop in route["hops"]:
            coin_a, coin_b = (
                (hop["coin_in"], hop["coin_out"])
                if hop["a2b"]
                else (hop["coin_out"], hop["coin_in"])
            )
            direction = "a2b" if hop["a2b"] else "b2a"
            coin = bundle.move_call(
                f"{package_id}::{hop['module']}::swap_{direction}",
                [bundle.object(hop["pool_id"]), coin, clock],
                [coin_a, coin_b],
            )
        outputs.append(coin)

    output, *rest = outputs
    if rest:
        bundle.merge_coins(output, rest)

    bundle.move_call(
        f"{package_id}::router::check_coins_threshold",
        [output, bundle.pure(threshold, "u64")],
        [quote.to_coin_type],
    )
    return output
