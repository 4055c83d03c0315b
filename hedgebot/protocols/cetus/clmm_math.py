"""Concentrated-liquidity helpers for Cetus pools — pure Decimal math.

Prices are quoted as coin B per coin A in human units; sqrt prices are the
real-valued square roots of the raw (base-unit) price.
"""
from __future__ import annotations

import math
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, localcontext

TICK_BASE = Decimal("1.0001")
MIN_TICK = -443636
MAX_TICK = 443636
Q64 = Decimal(2) ** 64

_PRECISION = 50


def price_to_tick(price: Decimal, decimals_a: int, decimals_b: int) -> int:
    """Largest tick whose price does not exceed ``price``."""
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        raw = Decimal(price).scaleb(decimals_b - decimals_a)
        tick = (raw.ln() / TICK_BASE.ln()).to_integral_value(rounding=ROUND_FLOOR)
    return max(MIN_TICK, min(MAX_TICK, int(tick)))


def tick_to_price(tick: int, decimals_a: int, decimals_b: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return (TICK_BASE ** tick).scaleb(decimals_a - decimals_b)


def round_tick_down(tick: int, tick_spacing: int) -> int:
    return (tick // tick_spacing) * tick_spacing


def round_tick_up(tick: int, tick_spacing: int) -> int:
    return -((-tick) // tick_spacing) * tick_spacing


def range_ticks(
    lower_price: Decimal,
    upper_price: Decimal,
    decimals_a: int,
    decimals_b: int,
    tick_spacing: int,
) -> tuple[int, int]:
    """Initializable ``(lower_tick, upper_tick)`` covering the price range.

    The prices may come in either order; the result always has
    ``lower_tick < upper_tick``.
    """
    low, high = sorted((Decimal(lower_price), Decimal(upper_price)))
    lower = round_tick_down(price_to_tick(low, decimals_a, decimals_b), tick_spacing)
    upper = round_tick_up(price_to_tick(high, decimals_a, decimals_b), tick_spacing)
    if upper <= lower:
        upper = lower + tick_spacing
    lower = max(lower, round_tick_up(MIN_TICK, tick_spacing))
    upper = min(upper, round_tick_down(MAX_TICK, tick_spacing))
    return lower, upper


def sqrt_price_from_tick(tick: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return TICK_BASE ** (Decimal(tick) / 2)


def sqrt_price_from_x64(sqrt_price_x64: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(sqrt_price_x64) / Q64


def amounts_for_liquidity(
    liquidity: int,
    sqrt_price: Decimal,
    sqrt_lower: Decimal,
    sqrt_upper: Decimal,
) -> tuple[int, int]:
    """Base-unit coin amounts held by ``liquidity`` at the current price."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        liq = Decimal(liquidity)
        if sqrt_price <= sqrt_lower:
            amount_a = liq * (sqrt_upper - sqrt_lower) / (sqrt_lower * sqrt_upper)
            amount_b = Decimal(0)
        elif sqrt_price >= sqrt_upper:
            amount_a = Decimal(0)
            amount_b = liq * (sqrt_upper - sqrt_lower)
        else:
            amount_a = liq * (sqrt_upper - sqrt_price) / (sqrt_price * sqrt_upper)
            amount_b = liq * (sqrt_price - sqrt_lower)
    return math.floor(amount_a), math.floor(amount_b)


def composition_from_amount(
    amount: int,
    fix_amount_a: bool,
    sqrt_price: Decimal,
    sqrt_lower: Decimal,
    sqrt_upper: Decimal,
) -> tuple[int, int]:
    """``(amount_a, amount_b)`` needed to pair a fixed amount of one coin.

    The paired side is rounded up. When the current price is outside the range
    only one coin can be deposited, so the other side comes back as zero.
    """
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        fixed = Decimal(amount)

        if sqrt_price <= sqrt_lower:
            return (amount, 0) if fix_amount_a else (0, 0)
        if sqrt_price >= sqrt_upper:
            return (0, amount) if not fix_amount_a else (0, 0)

        if fix_amount_a:
            liquidity = fixed * sqrt_price * sqrt_upper / (sqrt_upper - sqrt_price)
            other = liquidity * (sqrt_price - sqrt_lower)
            return amount, int(other.to_integral_value(rounding=ROUND_CEILING))

        liquidity = fixed / (sqrt_price - sqrt_lower)
        other = liquidity * (sqrt_upper - sqrt_price) / (sqrt_price * sqrt_upper)
        return int(other.to_integral_value(rounding=ROUND_CEILING)), amount
