"""Bot orchestration — wires clients once and runs the commands."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal

from ..chains.sui import InstructionBundle, SuiClient, SuiSigner
from ..chains.sui.coins import get_input_coins
from ..coin_types import get_token_symbol, normalize_struct_tag
from ..config import AppConfig
from ..errors import AmbiguousHedge, HedgeBotError, NoRouteFound, UnsupportedPosition
from ..interfaces.notifier import Notifier
from ..models import RebalanceAction, RebalanceResult
from ..notifications import TelegramNotifier
from ..oracles import PythOracle
from ..protocols.cetus import CetusPools, PositionComposer
from ..protocols.suilend import SuilendLedger, SuilendMarket
from ..swappers import build_router
from ..swappers.base import max_amount_in
from .market_data import MarketDataGateway
from .rebalancer import HedgeRebalancer

logger = logging.getLogger(__name__)


class HedgeBot:
    """Creates every client from config at startup and dispatches commands."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

        # Signing key first: a missing secret must stop startup
        self.signer = SuiSigner(config.wallet.secret)
        self.client = SuiClient(config.chain)
        self.oracle = PythOracle(config.pyth)
        self.router = build_router(config.router)

        market = SuilendMarket(self.client, config.lending)
        self.pools = CetusPools(self.client, config.assets)
        self.composer = PositionComposer(config.cetus)
        self.ledger = SuilendLedger(self.client, self.oracle, config.lending, config.pyth)
        self.gateway = MarketDataGateway(
            self.client,
            market,
            self.pools,
            self.oracle,
            refetch_interval=config.bot.refetch_interval_seconds,
        )
        self.rebalancer = HedgeRebalancer(
            config,
            self.gateway,
            self.ledger,
            self.router,
            self.composer,
            self.client,
            self.signer,
        )

        self._notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))

        logger.info("Controlled address: %s", self.signer.address)

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    def _build_result_message(self, result: RebalanceResult) -> str:
        return (
            f"🔁 Hedge {result.action.value}\n"
            f"\n"
            f"Obligation: {result.obligation_id}\n"
            f"Drift: {result.drift}\n"
            f"Amount: {result.amount} base units\n"
            f"Digest: {result.digest}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

    def _build_failure_alert(self, error: HedgeBotError) -> str:
        details = "\n".join(f"{k}: {v}" for k, v in error.context.items())
        return (
            f"🚨 Cycle aborted — {type(error).__name__}\n"
            f"\n"
            f"{error.args[0] if error.args else ''}\n"
            f"\n"
            f"{details}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def run_once(self) -> RebalanceResult | None:
        """One rebalance cycle; aborted cycles are reported, not raised."""
        try:
            result = await self.rebalancer.rebalance()
        except HedgeBotError as e:
            await self._send_alert(
                self._build_failure_alert(e), subject=f"⚠️ {type(e).__name__}"
            )
            return None

        if result.action != RebalanceAction.HOLD:
            await self._send_log(self._build_result_message(result), silent=False)
        return result

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Rebalance every polling interval until cancelled."""
        interval = interval_seconds or self._config.bot.polling_interval_seconds
        logger.info("Starting continuous rebalancing (every %d seconds)", interval)

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception("Unexpected error in rebalance loop: %s", e)
            await asyncio.sleep(interval)

    async def open_position(
        self,
        pool_id: str,
        lower_price: Decimal,
        upper_price: Decimal,
        hedge_pct: Decimal,
        stable_amount: Decimal,
        stable_symbol: str | None = None,
    ) -> str:
        """Open a hedged position; ``stable_amount`` is in human units."""
        stable_type = None
        decimals = None
        if stable_symbol:
            asset = self._config.asset_by_symbol(stable_symbol)
            if asset is None or not asset.stable:
                raise ValueError(f"'{stable_symbol}' is not a configured stable asset")
            stable_type, decimals = asset.coin_type, asset.decimals
        else:
            pool = await self.gateway.fetch_pool(pool_id)
            candidates = [
                (coin_type, pool_decimals)
                for coin_type, pool_decimals in (
                    (pool.coin_type_a, pool.decimals_a),
                    (pool.coin_type_b, pool.decimals_b),
                )
                if coin_type in self._config.stable_coin_types
            ]
            if not candidates:
                raise UnsupportedPosition("Neither pool asset is stable", pool_id=pool_id)
            if len(candidates) > 1:
                raise AmbiguousHedge("Both pool assets are stable", pool_id=pool_id)
            [(stable_type, decimals)] = candidates

        digest = await self.rebalancer.open_hedged_position(
            pool_id,
            lower_price,
            upper_price,
            hedge_pct,
            int(Decimal(stable_amount).scaleb(decimals)),
            stable_type,
        )
        logger.info("Hedged position opened: %s", digest)
        return digest

    async def close_position(self, position_id: str) -> str:
        """Collect fees and rewards, remove all liquidity and burn the position."""
        position = await self.gateway.fetch_position(position_id)
        pool = await self.gateway.fetch_pool(position.pool_id)

        bundle = InstructionBundle(self.signer.address)
        self.composer.close_position(bundle, position, pool)
        digest = await self.rebalancer.execute(bundle)
        logger.info("Position %s closed: %s", position_id, digest)
        return digest

    async def swap(
        self,
        from_symbol: str,
        to_symbol: str,
        amount: Decimal,
        exact_out: bool = False,
    ) -> str:
        """Swap wallet funds and send the output back to the controlled address."""
        from_type = self._coin_type(from_symbol)
        to_type = self._coin_type(to_symbol)
        decimals = self._decimals(to_type if exact_out else from_type)
        units = int(Decimal(amount).scaleb(decimals))
        slippage = self._config.bot.max_slippage

        if exact_out:
            quote = await self.router.quote(
                from_type, to_type, to_amount=units, max_slippage=slippage
            )
        else:
            quote = await self.router.quote(
                from_type, to_type, from_amount=units, max_slippage=slippage
            )
        if quote is None:
            raise NoRouteFound(
                "Router returned no quote",
                from_coin_type=from_type,
                to_coin_type=to_type,
            )

        bundle = InstructionBundle(self.signer.address)
        [input_coin] = await get_input_coins(
            bundle, self.client, self.signer.address, from_type,
            max_amount_in(quote, slippage),
        )
        output = self.router.append_swap(bundle, input_coin, quote, slippage)
        bundle.transfer_objects([output], self.signer.address)

        digest = await self.rebalancer.execute(bundle)
        logger.info(
            "Swapped %d %s for %d %s: %s",
            quote.amount_in, get_token_symbol(from_type),
            quote.amount_out, get_token_symbol(to_type),
            digest,
        )
        return digest

    def _coin_type(self, symbol_or_type: str) -> str:
        asset = self._config.asset_by_symbol(symbol_or_type)
        if asset:
            return normalize_struct_tag(asset.coin_type)
        if "::" in symbol_or_type:
            return normalize_struct_tag(symbol_or_type)
        raise ValueError(f"Unknown asset '{symbol_or_type}'")

    def _decimals(self, coin_type: str) -> int:
        asset = self._config.asset_by_type(coin_type)
        if asset is None:
            raise ValueError(f"No decimals configured for {coin_type}")
        return asset.decimals
