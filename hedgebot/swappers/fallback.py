"""Router that tries several backends in order."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..chains.sui.transaction import Argument, InstructionBundle
from ..errors import DataUnavailable
from ..interfaces.swap_router import SwapRouter
from ..models import Quote
from .base import validate_swap_args

logger = logging.getLogger(__name__)


class FallbackRouter:
    """First backend with a quote wins; its swap steps are used for the bundle."""

    name = "fallback"

    def __init__(self, routers: list[SwapRouter]) -> None:
        if not routers:
            raise ValueError("FallbackRouter needs at least one router")
        self._routers = {router.name: router for router in routers}

    async def quote(
        self,
        from_coin_type: str,
        to_coin_type: str,
        from_amount: int | None = None,
        to_amount: int | None = None,
        max_slippage: Decimal = Decimal("0.001"),
    ) -> Quote | None:
        validate_swap_args(from_amount, to_amount)

        for name, router in self._routers.items():
            try:
                quote = await router.quote(
                    from_coin_type, to_coin_type, from_amount, to_amount, max_slippage
                )
            except DataUnavailable as e:
                logger.warning("Router %s unavailable: %s", name, e)
                continue
            if quote is not None:
                return quote
        return None

    def append_swap(
        self,
        bundle: InstructionBundle,
        input_coin: Argument,
        quote: Quote,
        max_slippage: Decimal,
    ) -> Argument:
        router = self._routers.get(quote.router)
        if router is None:
            raise ValueError(f"No router named '{quote.router}' for this quote")
        return router.append_swap(bundle, input_coin, quote, max_slippage)
