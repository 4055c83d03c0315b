"""Pure hedge arithmetic — drift, deposit split and health projection."""
from __future__ import annotations

import math
from dataclasses import replace
from decimal import Decimal

from ..errors import UnhealthyObligation
from ..models import Borrow, Deposit, Obligation, Reserve

ZERO = Decimal(0)


def calc_drift(loan_amount: Decimal, hedged_amount: Decimal) -> Decimal:
    """Loan minus exposure; positive means over-hedged."""
    return Decimal(loan_amount) - Decimal(hedged_amount)


def within_tolerance(drift: Decimal, exposure: Decimal, tolerance: Decimal) -> bool:
    """True when ``|drift|`` is at most ``tolerance`` of the hedged exposure."""
    return abs(drift) <= abs(exposure) * tolerance


def split_deposit(
    total: int, required_deposit_usd: Decimal, reference_notional_usd: Decimal
) -> tuple[int, int]:
    """Split a stable deposit into ``(collateral, capital)`` base units.

    Collateral takes ``required / (required + reference)`` of the total and
    the liquidity capital the rest.
    """
    denominator = required_deposit_usd + reference_notional_usd
    if denominator <= 0:
        raise ValueError("Deposit split needs a positive reference notional")
    collateral = math.floor(Decimal(total) * required_deposit_usd / denominator)
    return collateral, total - collateral


def project(
    obligation: Obligation,
    reserve: Reserve,
    deposit_delta: Decimal = ZERO,
    borrow_delta: Decimal = ZERO,
) -> Obligation:
    """Obligation after depositing/borrowing signed human amounts of one reserve.

    New borrows carry the reserve's borrow fee. Aggregates move the same way
    the on-chain refresh computes them from the reserve's prices and config.
    """
    if borrow_delta > 0:
        borrow_delta = borrow_delta * (1 + reserve.borrow_fee)

    deposits = _adjust(obligation.deposits, reserve, deposit_delta, Deposit)
    borrows = _adjust(obligation.borrows, reserve, borrow_delta, Borrow)

    close_ltv = Decimal(reserve.config.close_ltv_pct) / 100
    deposited = obligation.deposited_value_usd + deposit_delta * reserve.price
    borrowed = obligation.borrowed_value_usd + borrow_delta * reserve.price

    return replace(
        obligation,
        deposits=deposits,
        borrows=borrows,
        deposited_value_usd=deposited,
        borrowed_value_usd=borrowed,
        net_value_usd=deposited - borrowed,
        borrow_limit_usd=obligation.borrow_limit_usd
        + deposit_delta * reserve.price * reserve.open_ltv,
        min_price_borrow_limit_usd=obligation.min_price_borrow_limit_usd
        + deposit_delta * reserve.min_price * reserve.open_ltv,
        unhealthy_borrow_value_usd=obligation.unhealthy_borrow_value_usd
        + deposit_delta * reserve.price * close_ltv,
        weighted_borrows_usd=obligation.weighted_borrows_usd
        + borrow_delta * reserve.price * reserve.borrow_weight,
        max_price_weighted_borrows_usd=obligation.max_price_weighted_borrows_usd
        + borrow_delta * reserve.max_price * reserve.borrow_weight,
    )


def _adjust(entries, reserve: Reserve, delta: Decimal, entry_type):
    if not delta:
        return entries
    out = []
    found = False
    for entry in entries:
        if entry.coin_type == reserve.coin_type:
            entry = replace(entry, amount=entry.amount + delta)
            found = True
        out.append(entry)
    if not found:
        out.append(
            entry_type(
                coin_type=reserve.coin_type,
                amount=delta,
                reserve_array_index=reserve.array_index,
            )
        )
    return tuple(out)


def ensure_healthy(obligation: Obligation, stage: str = "current") -> None:
    """Raise UnhealthyObligation unless borrows fit under the borrow limit.

    Uses max-price weighted borrows against the min-price borrow limit, which
    also implies ``weighted_borrows_usd <= borrow_limit_usd``.
    """
    if obligation.is_healthy:
        return
    raise UnhealthyObligation(
        "Obligation would exceed its borrow limit",
        obligation_id=obligation.id,
        stage=stage,
        weighted_borrows_usd=round(obligation.max_price_weighted_borrows_usd, 2),
        borrow_limit_usd=round(obligation.min_price_borrow_limit_usd, 2),
    )
