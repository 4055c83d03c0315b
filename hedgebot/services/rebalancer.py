"""Hedge rebalancer — keeps the loan of the volatile asset equal to the LP exposure."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from ..chains.sui.coins import get_input_coins
from ..chains.sui.transaction import InstructionBundle
from ..coin_types import get_token_symbol, normalize_struct_tag
from ..config import AppConfig
from ..errors import (
    AmbiguousHedge,
    DataUnavailable,
    HedgeBotError,
    NoExistingLoan,
    NoObligationFound,
    NoRouteFound,
    PositionOutOfRange,
    SetupIncomplete,
    UnsupportedPosition,
)
from ..interfaces.chain import ChainClient
from ..interfaces.signer import Signer
from ..interfaces.swap_router import SwapRouter
from ..models import (
    HedgeView,
    LiquidityPosition,
    Obligation,
    Quote,
    RebalanceAction,
    RebalanceResult,
    Reserve,
)
from ..protocols.cetus import PositionComposer
from ..protocols.suilend import SuilendLedger
from ..protocols.suilend.parser import select_active_obligation
from ..swappers.base import max_amount_in, min_amount_out
from . import hedge_math
from .market_data import MarketDataGateway

logger = logging.getLogger(__name__)


class RebalancerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    IN_RANGE = "in_range"
    OUT_OF_RANGE = "out_of_range"
    REBALANCED = "rebalanced"
    FAILED = "failed"


@dataclass(frozen=True)
class Snapshot:
    """Everything one cycle decides on, fetched at the start of the cycle."""

    reserves: dict[str, Reserve]
    obligation: Obligation
    obligations: tuple[Obligation, ...] = ()
    position: LiquidityPosition | None = None


@dataclass
class Plan:
    """The chosen correction; ``bundle`` is None for HOLD."""

    action: RebalanceAction
    amount: int = 0
    bundle: InstructionBundle | None = None


class HedgeRebalancer:
    """Reads the position and obligation, decides, and submits one bundle.

    Only one cycle runs at a time; a second call waits for the first.
    """

    def __init__(
        self,
        config: AppConfig,
        gateway: MarketDataGateway,
        ledger: SuilendLedger,
        router: SwapRouter,
        composer: PositionComposer,
        chain_client: ChainClient,
        signer: Signer,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._ledger = ledger
        self._router = router
        self._composer = composer
        self._client = chain_client
        self._signer = signer
        self._lock = asyncio.Lock()
        self.state = RebalancerState.UNINITIALIZED

    @property
    def owner(self) -> str:
        return self._signer.address

    @property
    def max_slippage(self) -> Decimal:
        return self._config.bot.max_slippage

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_snapshot(self, position_id: str | None = None) -> Snapshot:
        """Fresh reserves, the active obligation and (optionally) the position."""
        if not self._ledger.initialized:
            await self._ledger.initialize()

        if position_id:
            reserves, position = await asyncio.gather(
                self._gateway.fetch_reserves(),
                self._gateway.fetch_position(position_id),
            )
        else:
            reserves, position = await self._gateway.fetch_reserves(), None

        if not reserves:
            raise SetupIncomplete("Lending market returned no reserves")

        obligations = await self._gateway.fetch_obligations(self.owner, reserves)
        obligation = select_active_obligation(obligations)
        if obligation is None:
            raise NoObligationFound(
                "No obligation for the controlled address", owner=self.owner
            )

        self.state = RebalancerState.READY
        return Snapshot(
            reserves=reserves,
            obligation=obligation,
            obligations=tuple(obligations),
            position=position,
        )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _decimals(self, coin_type: str, reserves: dict[str, Reserve] | None) -> int:
        asset = self._config.asset_by_type(coin_type)
        if asset:
            return asset.decimals
        if reserves and coin_type in reserves:
            return reserves[coin_type].mint_decimals
        raise SetupIncomplete("Unknown decimals for asset", coin_type=coin_type)

    def _symbol(self, coin_type: str) -> str:
        asset = self._config.asset_by_type(coin_type)
        return asset.symbol if asset else get_token_symbol(coin_type)

    def classify_position(
        self,
        position: LiquidityPosition,
        reserves: dict[str, Reserve] | None = None,
    ) -> HedgeView:
        """Split the position into its hedged (volatile) and stable sides."""
        stables = self._config.stable_coin_types
        coin_a = normalize_struct_tag(position.coin_a)
        coin_b = normalize_struct_tag(position.coin_b)
        a_stable = coin_a in stables
        b_stable = coin_b in stables

        if a_stable and b_stable:
            raise AmbiguousHedge("Both pool assets are stable", position_id=position.id)
        if not a_stable and not b_stable:
            raise UnsupportedPosition(
                "Neither pool asset is stable", position_id=position.id
            )

        if a_stable:
            stable, stable_amount = coin_a, position.coin_a_amount
            hedged, hedged_amount = coin_b, position.coin_b_amount
        else:
            stable, stable_amount = coin_b, position.coin_b_amount
            hedged, hedged_amount = coin_a, position.coin_a_amount

        return HedgeView(
            hedged_asset=hedged,
            hedged_symbol=self._symbol(hedged),
            hedged_amount=hedged_amount,
            stable_asset=stable,
            stable_symbol=self._symbol(stable),
            stable_amount=stable_amount,
            hedged_decimals=self._decimals(hedged, reserves),
            stable_decimals=self._decimals(stable, reserves),
        )

    def compute_drift(self, view: HedgeView, obligation: Obligation) -> Decimal:
        """Loan of the hedged asset minus its LP exposure (human units)."""
        borrow = obligation.borrow_of(view.hedged_asset)
        if borrow is None:
            raise NoExistingLoan(
                "No borrow of the hedged asset",
                obligation_id=obligation.id,
                coin_type=view.hedged_asset,
            )
        return hedge_math.calc_drift(borrow.amount, view.hedged_exposure)

    def check_health(self, obligation: Obligation, stage: str = "current") -> None:
        hedge_math.ensure_healthy(obligation, stage)

    def _reserve(self, reserves: dict[str, Reserve], coin_type: str) -> Reserve:
        reserve = reserves.get(normalize_struct_tag(coin_type))
        if reserve is None:
            raise SetupIncomplete("No lending reserve for asset", coin_type=coin_type)
        return reserve

    async def _quote(self, from_type: str, to_type: str, **amount: int) -> Quote:
        quote = await self._router.quote(
            from_type, to_type, max_slippage=self.max_slippage, **amount
        )
        if quote is None:
            raise NoRouteFound(
                "Router returned no quote",
                from_coin_type=from_type,
                to_coin_type=to_type,
            )
        return quote

    async def choose_action(
        self, snapshot: Snapshot, view: HedgeView, drift: Decimal
    ) -> Plan:
        """Pick HOLD, REPAY or BORROW and build the bundle for it.

        Health is projected for the state between the two legs and for the
        final state; an unhealthy projection aborts before anything is built.
        """
        tolerance = self._config.bot.drift_tolerance
        if hedge_math.within_tolerance(drift, view.hedged_exposure, tolerance):
            return Plan(RebalanceAction.HOLD)

        obligation = snapshot.obligation
        stable = self._reserve(snapshot.reserves, view.stable_asset)
        hedged = self._reserve(snapshot.reserves, view.hedged_asset)
        units = hedged.to_units(abs(drift))
        if units == 0:
            return Plan(RebalanceAction.HOLD)

        self.check_health(obligation)

        if drift > 0:
            quote = await self._quote(stable.coin_type, hedged.coin_type, to_amount=units)
            withdraw_units = max_amount_in(quote, self.max_slippage)
            required = stable.from_units(withdraw_units)
            deposit = obligation.deposit_of(stable.coin_type)
            if deposit is None or deposit.amount < required:
                raise SetupIncomplete(
                    "Stable deposit cannot cover the withdrawal",
                    obligation_id=obligation.id,
                    coin_type=stable.coin_type,
                    deposited=deposit.amount if deposit else Decimal(0),
                    required=required,
                )

            after_withdraw = hedge_math.project(
                obligation, stable, deposit_delta=-required
            )
            self.check_health(after_withdraw, "after withdraw")
            after_repay = hedge_math.project(
                after_withdraw, hedged, borrow_delta=-hedged.from_units(units)
            )
            self.check_health(after_repay, "after repay")

            bundle = InstructionBundle(self.owner)
            await self._ledger.refresh_price(bundle, stable)
            await self._ledger.refresh_price(bundle, hedged)
            stable_coin = self._ledger.withdraw(bundle, obligation, stable, withdraw_units)
            hedged_coin = self._router.append_swap(
                bundle, stable_coin, quote, self.max_slippage
            )
            [repay_coin] = bundle.split_coins(hedged_coin, [units])
            self._ledger.repay(bundle, obligation, hedged, repay_coin)
            bundle.transfer_objects([repay_coin, hedged_coin], self.owner)
            return Plan(RebalanceAction.REPAY, units, bundle)

        quote = await self._quote(hedged.coin_type, stable.coin_type, from_amount=units)

        after_borrow = hedge_math.project(
            obligation, hedged, borrow_delta=hedged.from_units(units)
        )
        self.check_health(after_borrow, "after borrow")
        self.check_health(
            hedge_math.project(
                after_borrow,
                stable,
                deposit_delta=stable.from_units(min_amount_out(quote, self.max_slippage)),
            ),
            "after deposit",
        )

        bundle = InstructionBundle(self.owner)
        await self._ledger.refresh_price(bundle, stable)
        await self._ledger.refresh_price(bundle, hedged)
        hedged_coin = self._ledger.borrow(bundle, obligation, hedged, units)
        stable_coin = self._router.append_swap(
            bundle, hedged_coin, quote, self.max_slippage
        )
        self._ledger.deposit(bundle, obligation, stable, stable_coin)
        return Plan(RebalanceAction.BORROW, units, bundle)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, bundle: InstructionBundle) -> str:
        """Dry-run, then sign and submit once; returns the digest."""
        await bundle.validate(self._client)
        result = await bundle.submit(self._client, self._signer)
        return result.get("digest", "")

    def _log_summary(self, snapshot: Snapshot, view: HedgeView, drift: Decimal) -> None:
        obligation = snapshot.obligation
        deposits = ", ".join(
            f"{d.amount:.6f} {self._symbol(d.coin_type)}" for d in obligation.deposits
        )
        borrows = ", ".join(
            f"{b.amount:.6f} {self._symbol(b.coin_type)}" for b in obligation.borrows
        )
        logger.info(
            "Obligation %s — deposits: %s | borrows: %s | "
            "borrow limit $%.2f | liquidation threshold $%.2f",
            obligation.id,
            deposits or "-",
            borrows or "-",
            obligation.borrow_limit_usd,
            obligation.unhealthy_borrow_value_usd,
        )
        logger.info(
            "Exposure %s %s vs loan; drift %s",
            view.hedged_exposure, view.hedged_symbol, drift,
        )

    async def rebalance(self, position_id: str | None = None) -> RebalanceResult:
        """Run one cycle for the managed position."""
        position_id = position_id or self._config.bot.position_id
        if not position_id:
            raise SetupIncomplete("No liquidity position configured")

        cycle: dict[str, Any] = {"position_id": position_id}
        async with self._lock:
            try:
                snapshot = await self.load_snapshot(position_id)
                position = snapshot.position
                cycle["obligation_id"] = snapshot.obligation.id

                if not position.in_range:
                    self.state = RebalancerState.OUT_OF_RANGE
                    raise PositionOutOfRange(
                        "Liquidity position is out of range; unwind instead",
                        position_id=position.id,
                        coin_a_amount=position.coin_a_amount,
                        coin_b_amount=position.coin_b_amount,
                    )
                self.state = RebalancerState.IN_RANGE

                view = self.classify_position(position, snapshot.reserves)
                cycle["hedged"] = view.hedged_asset
                cycle["stable"] = view.stable_asset
                drift = self.compute_drift(view, snapshot.obligation)
                cycle["drift"] = drift
                self._log_summary(snapshot, view, drift)

                plan = await self.choose_action(snapshot, view, drift)
                digest = ""
                if plan.bundle is not None:
                    logger.info(
                        "%s %d base units of %s (drift %s)",
                        plan.action.value, plan.amount, view.hedged_symbol, drift,
                    )
                    digest = await self.execute(plan.bundle)
                else:
                    logger.info("Hedge within tolerance (drift %s); holding", drift)
            except HedgeBotError as e:
                if self.state != RebalancerState.OUT_OF_RANGE:
                    self.state = RebalancerState.FAILED
                for key, value in cycle.items():
                    e.context.setdefault(key, value)
                logger.error("Rebalance cycle aborted: %s", e)
                raise

            self.state = RebalancerState.REBALANCED
            return RebalanceResult(
                action=plan.action,
                drift=drift,
                amount=plan.amount,
                digest=digest,
                obligation_id=snapshot.obligation.id,
            )

    # ------------------------------------------------------------------
    # Opening a hedged position
    # ------------------------------------------------------------------

    async def open_hedged_position(
        self,
        pool_id: str,
        lower_price: Decimal,
        upper_price: Decimal,
        hedge_pct: Decimal,
        stable_amount: int,
        stable_coin_type: str | None = None,
    ) -> str:
        """Deposit collateral, borrow the hedged asset and open the LP position.

        ``stable_amount`` (base units) is split between lending collateral and
        liquidity capital so the loan covers ``hedge_pct`` of the collateral.
        """
        hedge_pct = Decimal(hedge_pct)
        if stable_amount <= 0:
            raise ValueError(f"stable_amount must be positive, got {stable_amount}")
        if not Decimal(0) < hedge_pct <= Decimal(1):
            raise ValueError(f"hedge_pct must be in (0, 1], got {hedge_pct}")

        async with self._lock:
            snapshot, pool = await asyncio.gather(
                self.load_snapshot(), self._gateway.fetch_pool(pool_id)
            )

            stables = self._config.stable_coin_types
            if stable_coin_type is None:
                candidates = [
                    t for t in (pool.coin_type_a, pool.coin_type_b) if t in stables
                ]
                if not candidates:
                    raise UnsupportedPosition(
                        "Neither pool asset is stable", pool_id=pool_id
                    )
                if len(candidates) > 1:
                    raise AmbiguousHedge("Both pool assets are stable", pool_id=pool_id)
                stable_coin_type = candidates[0]
            stable_coin_type = normalize_struct_tag(stable_coin_type)
            if stable_coin_type not in (pool.coin_type_a, pool.coin_type_b):
                raise UnsupportedPosition(
                    "Stable asset is not in the pool",
                    pool_id=pool_id,
                    coin_type=stable_coin_type,
                )
            stable_is_a = stable_coin_type == pool.coin_type_a
            hedged_coin_type = pool.coin_type_b if stable_is_a else pool.coin_type_a

            stable = self._reserve(snapshot.reserves, stable_coin_type)
            hedged = self._reserve(snapshot.reserves, hedged_coin_type)

            def hedged_for(stable_units: int) -> int:
                amount_a, amount_b = self._composer.quote_composition(
                    pool, lower_price, upper_price, stable_units, stable_is_a
                )
                return amount_b if stable_is_a else amount_a

            reference_usd = self._config.bot.reference_notional_usd
            reference_units = stable.to_units(reference_usd / stable.price)
            hedged_usd = hedged.from_units(hedged_for(reference_units)) * hedged.price
            required_usd = hedged_usd / hedge_pct

            collateral, capital = hedge_math.split_deposit(
                stable_amount, required_usd, reference_usd
            )
            borrow_units = hedged_for(capital)
            logger.info(
                "Opening hedged position: %d collateral + %d capital %s, borrowing %d %s",
                collateral, capital, stable.symbol, borrow_units, hedged.symbol,
            )

            obligation = snapshot.obligation
            after_deposit = hedge_math.project(
                obligation, stable, deposit_delta=stable.from_units(collateral)
            )
            self.check_health(
                hedge_math.project(
                    after_deposit, hedged, borrow_delta=hedged.from_units(borrow_units)
                ),
                "after open",
            )

            bundle = InstructionBundle(self.owner)
            await self._ledger.refresh_price(bundle, stable)
            await self._ledger.refresh_price(bundle, hedged)
            coins = await get_input_coins(
                bundle, self._client, self.owner, stable_coin_type, collateral, capital
            )
            if len(coins) != 2:
                raise DataUnavailable(
                    "No stable coins in the wallet", coin_type=stable_coin_type
                )
            collateral_coin, capital_coin = coins
            self._ledger.deposit(bundle, obligation, stable, collateral_coin)
            hedged_coin = self._ledger.borrow(bundle, obligation, hedged, borrow_units)
            self._composer.open_position(
                bundle,
                pool,
                lower_price,
                upper_price,
                stable_coin_type,
                capital_coin,
                capital,
                hedged_coin,
                borrow_units,
            )
            return await self.execute(bundle)
