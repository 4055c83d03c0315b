"""Suilend obligation steps — deposit, withdraw, borrow, repay, refresh price."""
from __future__ import annotations

import logging
import math
import weakref
from decimal import Decimal

from ...chains.sui.transaction import Argument, InstructionBundle
from ...config import LendingConfig, PythConfig
from ...errors import NotInitialized, SetupIncomplete
from ...interfaces.chain import ChainClient
from ...interfaces.price_oracle import PriceOracle
from ...models import Obligation, Reserve
from ...oracles.pyth import extract_vaa, normalize_feed_id

logger = logging.getLogger(__name__)

CLOCK_ID = "0x6"


class SuilendLedger:
    """Appends Suilend obligation operations to a caller-owned bundle.

    Every ``borrow``/``withdraw`` must be preceded, in the same bundle, by
    ``refresh_price`` for the reserve it touches.
    """

    def __init__(
        self,
        chain_client: ChainClient,
        oracle: PriceOracle,
        lending: LendingConfig,
        pyth: PythConfig,
    ) -> None:
        self._client = chain_client
        self._oracle = oracle
        self._lending = lending
        self._pyth = pyth
        self._initialized = False
        self._refreshed: weakref.WeakKeyDictionary[InstructionBundle, set[str]] = (
            weakref.WeakKeyDictionary()
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Check the configured lending market exists; required before any step."""
        if not self._lending.package_id or not self._lending.market_type:
            raise SetupIncomplete("Lending package id and market type are required")
        await self._client.get_object(self._lending.market_id)
        self._initialized = True
        logger.info("Suilend ledger initialized for market %s", self._lending.market_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitialized("Suilend ledger used before initialize()")

    def _target(self, function: str) -> str:
        return f"{self._lending.package_id}::lending_market::{function}"

    def _type_args(self, reserve: Reserve) -> list[str]:
        return [self._lending.market_type, reserve.coin_type]

    def _market_args(self, bundle: InstructionBundle, reserve: Reserve) -> list[Argument]:
        return [
            bundle.object(self._lending.market_id),
            bundle.pure(reserve.array_index, "u64"),
        ]

    def _require_fresh_price(self, bundle: InstructionBundle, reserve: Reserve) -> None:
        if reserve.coin_type not in self._refreshed.get(bundle, set()):
            raise SetupIncomplete(
                "refresh_price must precede borrow/withdraw",
                coin_type=reserve.coin_type,
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def refresh_price(self, bundle: InstructionBundle, reserve: Reserve) -> None:
        """Push the latest Pyth price on-chain and refresh the reserve with it."""
        self._require_initialized()

        feed_id = normalize_feed_id(reserve.price_identifier)
        price_info_id = self._pyth.price_info_objects.get(feed_id)
        if not price_info_id:
            raise SetupIncomplete(
                "No Pyth price info object configured",
                coin_type=reserve.coin_type,
                feed_id=feed_id,
            )

        update = (await self._oracle.fetch_price_update_data([feed_id]))[0]
        clock = bundle.object(CLOCK_ID)
        pyth_state = bundle.object(self._pyth.state_id)
        price_info = bundle.object(price_info_id)
        pyth_pkg = self._pyth.package_id

        verified_vaa = bundle.move_call(
            f"{self._pyth.wormhole_package_id}::vaa::parse_and_verify",
            [
                bundle.object(self._pyth.wormhole_state_id),
                bundle.pure(list(extract_vaa(update)), "vector<u8>"),
                clock,
            ],
        )
        price_updates = bundle.move_call(
            f"{pyth_pkg}::pyth::create_authenticated_price_infos_using_accumulator",
            [pyth_state, bundle.pure(list(update), "vector<u8>"), verified_vaa, clock],
        )
        [fee] = bundle.split_coins(bundle.gas, [self._pyth.update_fee])
        price_updates = bundle.move_call(
            f"{pyth_pkg}::pyth::update_single_price_feed",
            [pyth_state, price_updates, price_info, fee, clock],
        )
        bundle.move_call(
            f"{pyth_pkg}::hot_potato_vector::destroy",
            [price_updates],
            [f"{pyth_pkg}::price_info::PriceInfo"],
        )
        bundle.move_call(
            self._target("refresh_reserve_price"),
            [*self._market_args(bundle, reserve), clock, price_info],
            [self._lending.market_type],
        )
        self._refreshed.setdefault(bundle, set()).add(reserve.coin_type)

    def deposit(
        self,
        bundle: InstructionBundle,
        obligation: Obligation,
        reserve: Reserve,
        coin: Argument,
    ) -> None:
        self._require_initialized()
        clock = bundle.object(CLOCK_ID)
        ctokens = bundle.move_call(
            self._target("deposit_liquidity_and_mint_ctokens"),
            [*self._market_args(bundle, reserve), clock, coin],
            self._type_args(reserve),
        )
        bundle.move_call(
            self._target("deposit_ctokens_into_obligation"),
            [
                *self._market_args(bundle, reserve),
                bundle.object(obligation.owner_cap_id),
                clock,
                ctokens,
            ],
            self._type_args(reserve),
        )

    def withdraw(
        self,
        bundle: InstructionBundle,
        obligation: Obligation,
        reserve: Reserve,
        amount: int,
    ) -> Argument:
        """Withdraw ``amount`` base units of the reserve's asset; returns the coin."""
        self._require_initialized()
        self._require_fresh_price(bundle, reserve)

        ctoken_amount = math.ceil(Decimal(amount) / reserve.ctoken_ratio)
        clock = bundle.object(CLOCK_ID)
        ctokens = bundle.move_call(
            self._target("withdraw_ctokens"),
            [
                *self._market_args(bundle, reserve),
                bundle.object(obligation.owner_cap_id),
                clock,
                bundle.pure(ctoken_amount, "u64"),
            ],
            self._type_args(reserve),
        )
        no_exemption = bundle.move_call(
            "0x1::option::none",
            [],
            [
                f"{self._lending.package_id}::lending_market::RateLimiterExemption"
                f"<{self._lending.market_type}, {reserve.coin_type}>"
            ],
        )
        return bundle.move_call(
            self._target("redeem_ctokens_and_withdraw_liquidity"),
            [*self._market_args(bundle, reserve), clock, ctokens, no_exemption],
            self._type_args(reserve),
        )

    def borrow(
        self,
        bundle: InstructionBundle,
        obligation: Obligation,
        reserve: Reserve,
        amount: int,
    ) -> Argument:
        """Borrow ``amount`` base units; returns the borrowed coin."""
        self._require_initialized()
        self._require_fresh_price(bundle, reserve)
        return bundle.move_call(
            self._target("borrow"),
            [
                *self._market_args(bundle, reserve),
                bundle.object(obligation.owner_cap_id),
                bundle.object(CLOCK_ID),
                bundle.pure(amount, "u64"),
            ],
            self._type_args(reserve),
        )

    def repay(
        self,
        bundle: InstructionBundle,
        obligation: Obligation,
        reserve: Reserve,
        coin: Argument,
    ) -> None:
        """Repay from ``coin``; any excess stays in the coin."""
        self._require_initialized()
        bundle.move_call(
            self._target("repay"),
            [
                *self._market_args(bundle, reserve),
                bundle.pure(obligation.id, "address"),
                bundle.object(CLOCK_ID),
                coin,
            ],
            self._type_args(reserve),
        )
