"""Data models — all frozen (immutable) point-in-time snapshots."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from .coin_types import normalize_struct_tag

ZERO = Decimal(0)


@dataclass(frozen=True)
class ReserveConfig:
    open_ltv_pct: int = 0
    close_ltv_pct: int = 0
    borrow_weight_bps: int = 10_000
    borrow_fee_bps: int = 0


@dataclass(frozen=True)
class Reserve:
    """Per-asset lending-market parameters and price state."""

    coin_type: str
    array_index: int
    mint_decimals: int
    price_identifier: str
    price: Decimal
    smoothed_price: Decimal
    config: ReserveConfig = field(default_factory=ReserveConfig)
    ctoken_ratio: Decimal = Decimal(1)
    cumulative_borrow_rate: Decimal = Decimal(1)
    symbol: str = ""

    @property
    def min_price(self) -> Decimal:
        return min(self.price, self.smoothed_price)

    @property
    def max_price(self) -> Decimal:
        return max(self.price, self.smoothed_price)

    @property
    def open_ltv(self) -> Decimal:
        return Decimal(self.config.open_ltv_pct) / 100

    @property
    def borrow_weight(self) -> Decimal:
        return Decimal(self.config.borrow_weight_bps) / 10_000

    @property
    def borrow_fee(self) -> Decimal:
        return Decimal(self.config.borrow_fee_bps) / 10_000

    def with_price(self, price: Decimal) -> Reserve:
        return replace(self, price=price)

    def to_units(self, amount: Decimal) -> int:
        """Human amount → base units (rounded down)."""
        return int(amount.scaleb(self.mint_decimals))

    def from_units(self, units: int) -> Decimal:
        return Decimal(units).scaleb(-self.mint_decimals)


@dataclass(frozen=True)
class Deposit:
    coin_type: str
    amount: Decimal
    ctoken_amount: int = 0
    reserve_array_index: int = 0


@dataclass(frozen=True)
class Borrow:
    coin_type: str
    amount: Decimal
    reserve_array_index: int = 0


@dataclass(frozen=True)
class ObligationOwnerCap:
    id: str
    obligation_id: str


@dataclass(frozen=True)
class Obligation:
    """A lending position: deposits, borrows and USD aggregates."""

    id: str
    owner_cap_id: str = ""
    deposits: tuple[Deposit, ...] = ()
    borrows: tuple[Borrow, ...] = ()
    deposited_value_usd: Decimal = ZERO
    borrowed_value_usd: Decimal = ZERO
    net_value_usd: Decimal = ZERO
    weighted_borrows_usd: Decimal = ZERO
    max_price_weighted_borrows_usd: Decimal = ZERO
    borrow_limit_usd: Decimal = ZERO
    min_price_borrow_limit_usd: Decimal = ZERO
    unhealthy_borrow_value_usd: Decimal = ZERO

    def borrow_of(self, coin_type: str) -> Borrow | None:
        wanted = normalize_struct_tag(coin_type)
        for borrow in self.borrows:
            if normalize_struct_tag(borrow.coin_type) == wanted:
                return borrow
        return None

    def deposit_of(self, coin_type: str) -> Deposit | None:
        wanted = normalize_struct_tag(coin_type)
        for deposit in self.deposits:
            if normalize_struct_tag(deposit.coin_type) == wanted:
                return deposit
        return None

    @property
    def is_healthy(self) -> bool:
        return self.max_price_weighted_borrows_usd <= self.min_price_borrow_limit_usd


@dataclass(frozen=True)
class PoolState:
    """Concentrated-liquidity pool state."""

    id: str
    coin_type_a: str
    coin_type_b: str
    decimals_a: int
    decimals_b: int
    current_sqrt_price: int
    current_tick_index: int
    tick_spacing: int
    rewarder_coin_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class LiquidityPosition:
    """Current composition of a liquidity position, in base units."""

    id: str
    pool_id: str
    coin_a: str
    coin_b: str
    coin_a_amount: int
    coin_b_amount: int
    liquidity: int = 0
    tick_lower: int = 0
    tick_upper: int = 0

    @property
    def in_range(self) -> bool:
        return self.coin_a_amount != 0 and self.coin_b_amount != 0


@dataclass(frozen=True)
class HedgeView:
    """A position split into its hedged (volatile) and stable sides."""

    hedged_asset: str
    hedged_symbol: str
    hedged_amount: int
    stable_asset: str
    stable_symbol: str
    stable_amount: int
    hedged_decimals: int = 9
    stable_decimals: int = 6

    @property
    def hedged_exposure(self) -> Decimal:
        return Decimal(self.hedged_amount).scaleb(-self.hedged_decimals)


@dataclass(frozen=True)
class CoinMetadata:
    coin_type: str
    symbol: str
    decimals: int
    name: str = ""


@dataclass(frozen=True)
class Quote:
    """Best-effort swap quote; ``routes`` is the router's own route payload."""

    router: str
    from_coin_type: str
    to_coin_type: str
    amount_in: int
    amount_out: int
    by_amount_in: bool
    routes: tuple[dict[str, Any], ...] = ()


class RebalanceAction(str, Enum):
    HOLD = "hold"
    REPAY = "repay"
    BORROW = "borrow"


@dataclass(frozen=True)
class RebalanceResult:
    action: RebalanceAction
    drift: Decimal
    amount: int = 0
    digest: str = ""
    obligation_id: str = ""
