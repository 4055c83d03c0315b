"""Swap router protocol — quote and in-bundle swap abstraction."""
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..chains.sui.transaction import Argument, InstructionBundle
    from ..models import Quote


class SwapRouter(Protocol):
    """Abstract interface for swap-route discovery and execution steps."""

    name: str

    async def quote(
        self,
        from_coin_type: str,
        to_coin_type: str,
        from_amount: int | None = None,
        to_amount: int | None = None,
        max_slippage: Decimal = Decimal("0.001"),
    ) -> Quote | None: ...

    def append_swap(
        self,
        bundle: InstructionBundle,
        input_coin: Argument,
        quote: Quote,
        max_slippage: Decimal,
    ) -> Argument: ...
