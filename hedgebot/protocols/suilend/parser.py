"""Pure parsing functions for Suilend lending-market objects — no I/O."""
from __future__ import annotations

from decimal import Decimal
from typing import Any

from ...chains.sui.objects import move_fields, object_fields, object_id
from ...coin_types import get_token_symbol, normalize_struct_tag
from ...errors import DataUnavailable
from ...models import Borrow, Deposit, Obligation, ObligationOwnerCap, Reserve, ReserveConfig

WAD = Decimal(10) ** 18


def parse_decimal(raw: Any) -> Decimal:
    """Suilend ``Decimal { value: u256 }`` (18-decimal fixed point)."""
    value = move_fields(raw).get("value", raw) if isinstance(raw, dict) else raw
    return Decimal(int(value or 0)) / WAD


def parse_type_name(raw: Any) -> str:
    """``TypeName { name }`` → normalized struct tag."""
    name = move_fields(raw).get("name", "") if isinstance(raw, dict) else str(raw)
    return normalize_struct_tag(name)


def parse_price_identifier(raw: Any) -> str:
    """``PriceIdentifier { bytes: vector<u8> }`` → lowercase hex without 0x."""
    data = move_fields(raw).get("bytes", raw) if isinstance(raw, dict) else raw
    if isinstance(data, str):
        return data.lower().removeprefix("0x")
    return bytes(int(b) for b in data).hex()


def parse_reserve_config(raw: Any) -> ReserveConfig:
    """The reserve config lives in a ``Cell`` whose ``element`` is an Option."""
    fields = move_fields(raw)
    element = fields.get("element", fields)
    cfg = move_fields(element)
    return ReserveConfig(
        open_ltv_pct=int(cfg.get("open_ltv_pct", 0)),
        close_ltv_pct=int(cfg.get("close_ltv_pct", 0)),
        borrow_weight_bps=int(cfg.get("borrow_weight_bps", 10_000)),
        borrow_fee_bps=int(cfg.get("borrow_fee_bps", 0)),
    )


def ctoken_ratio(
    available_amount: Decimal,
    borrowed_amount: Decimal,
    unclaimed_spread_fees: Decimal,
    ctoken_supply: Decimal,
) -> Decimal:
    """Underlying units per ctoken; 1 for an empty reserve."""
    if ctoken_supply <= 0:
        return Decimal(1)
    return (available_amount + borrowed_amount - unclaimed_spread_fees) / ctoken_supply


def parse_reserve(raw: dict[str, Any], symbol: str = "") -> Reserve:
    fields = move_fields(raw)
    coin_type = parse_type_name(fields.get("coin_type", ""))
    price = parse_decimal(fields.get("price"))
    smoothed = parse_decimal(fields.get("smoothed_price", fields.get("price")))

    return Reserve(
        coin_type=coin_type,
        array_index=int(fields.get("array_index", 0)),
        mint_decimals=int(fields.get("mint_decimals", 9)),
        price_identifier=parse_price_identifier(fields.get("price_identifier", "")),
        price=price,
        smoothed_price=smoothed,
        config=parse_reserve_config(fields.get("config", {})),
        ctoken_ratio=ctoken_ratio(
            Decimal(int(fields.get("available_amount", 0))),
            parse_decimal(fields.get("borrowed_amount")),
            parse_decimal(fields.get("unclaimed_spread_fees")),
            Decimal(int(fields.get("ctoken_supply", 0))),
        ),
        cumulative_borrow_rate=parse_decimal(fields.get("cumulative_borrow_rate"))
        or Decimal(1),
        symbol=symbol or get_token_symbol(coin_type),
    )


def parse_reserves(lending_market: dict[str, Any]) -> list[Reserve]:
    """All reserves of a ``LendingMarket`` object, in on-chain order."""
    raw_reserves = object_fields(lending_market).get("reserves", [])
    return [parse_reserve(r) for r in raw_reserves]


def parse_owner_cap(obj: dict[str, Any]) -> ObligationOwnerCap | None:
    fields = object_fields(obj)
    cap_id = object_id(obj)
    obligation_id = fields.get("obligation_id")
    if not cap_id or not obligation_id:
        return None
    return ObligationOwnerCap(id=cap_id, obligation_id=obligation_id)


def _reserve_for(
    coin_type: str, reserve_map: dict[str, Reserve], obligation_id: str
) -> Reserve:
    reserve = reserve_map.get(coin_type)
    if reserve is None:
        raise DataUnavailable(
            "Obligation references an unknown reserve",
            obligation_id=obligation_id,
            coin_type=coin_type,
        )
    return reserve


def parse_obligation(
    obj: dict[str, Any],
    reserve_map: dict[str, Reserve],
    owner_cap_id: str = "",
) -> Obligation:
    """Parse an obligation and re-value it against refreshed reserves.

    Deposits are held as ctokens and borrows as principal scaled by the
    cumulative borrow rate at the time of borrowing; both are brought to
    current underlying amounts before USD aggregates are computed.
    """
    fields = object_fields(obj)
    obligation_id = object_id(obj)

    deposits: list[Deposit] = []
    deposited_usd = Decimal(0)
    borrow_limit_usd = Decimal(0)
    min_price_borrow_limit_usd = Decimal(0)
    unhealthy_usd = Decimal(0)

    for raw in fields.get("deposits", []):
        d = move_fields(raw)
        coin_type = parse_type_name(d.get("coin_type", ""))
        reserve = _reserve_for(coin_type, reserve_map, obligation_id)
        ctokens = int(d.get("deposited_ctoken_amount", 0))
        amount = (Decimal(ctokens) * reserve.ctoken_ratio).scaleb(-reserve.mint_decimals)

        deposits.append(
            Deposit(
                coin_type=coin_type,
                amount=amount,
                ctoken_amount=ctokens,
                reserve_array_index=int(d.get("reserve_array_index", reserve.array_index)),
            )
        )
        deposited_usd += amount * reserve.price
        borrow_limit_usd += amount * reserve.price * reserve.open_ltv
        min_price_borrow_limit_usd += amount * reserve.min_price * reserve.open_ltv
        unhealthy_usd += amount * reserve.price * Decimal(reserve.config.close_ltv_pct) / 100

    borrows: list[Borrow] = []
    borrowed_usd = Decimal(0)
    weighted_usd = Decimal(0)
    max_price_weighted_usd = Decimal(0)

    for raw in fields.get("borrows", []):
        b = move_fields(raw)
        coin_type = parse_type_name(b.get("coin_type", ""))
        reserve = _reserve_for(coin_type, reserve_map, obligation_id)
        principal = parse_decimal(b.get("borrowed_amount"))
        rate_at_borrow = parse_decimal(b.get("cumulative_borrow_rate")) or Decimal(1)
        units = principal * reserve.cumulative_borrow_rate / rate_at_borrow
        amount = units.scaleb(-reserve.mint_decimals)

        borrows.append(
            Borrow(
                coin_type=coin_type,
                amount=amount,
                reserve_array_index=int(b.get("reserve_array_index", reserve.array_index)),
            )
        )
        borrowed_usd += amount * reserve.price
        weighted_usd += amount * reserve.price * reserve.borrow_weight
        max_price_weighted_usd += amount * reserve.max_price * reserve.borrow_weight

    return Obligation(
        id=obligation_id,
        owner_cap_id=owner_cap_id,
        deposits=tuple(deposits),
        borrows=tuple(borrows),
        deposited_value_usd=deposited_usd,
        borrowed_value_usd=borrowed_usd,
        net_value_usd=deposited_usd - borrowed_usd,
        weighted_borrows_usd=weighted_usd,
        max_price_weighted_borrows_usd=max_price_weighted_usd,
        borrow_limit_usd=borrow_limit_usd,
        min_price_borrow_limit_usd=min_price_borrow_limit_usd,
        unhealthy_borrow_value_usd=unhealthy_usd,
    )


def select_active_obligation(obligations: list[Obligation]) -> Obligation | None:
    """Largest net USD value wins; ties keep fetch order."""
    best: Obligation | None = None
    for obligation in obligations:
        if best is None or obligation.net_value_usd > best.net_value_usd:
            best = obligation
    return best
