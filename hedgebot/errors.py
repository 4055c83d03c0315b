"""Error taxonomy — every error aborts the current rebalance cycle."""
from __future__ import annotations

from typing import Any


class HedgeBotError(Exception):
    """Base class; ``context`` carries ids, asset types and drift for logging."""

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.__class__.__name__)
        self.context = context

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return base
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{base} ({details})"


class MissingCredential(HedgeBotError):
    pass


class NotInitialized(HedgeBotError):
    pass


class DataUnavailable(HedgeBotError):
    pass


class RpcRejected(HedgeBotError):
    """A node answered with a JSON-RPC error rather than failing to answer."""


class SetupIncomplete(HedgeBotError):
    pass


class NoObligationFound(HedgeBotError):
    pass


class UnsupportedPosition(HedgeBotError):
    pass


class AmbiguousHedge(UnsupportedPosition):
    """Both sides of the pool are stable assets."""


class PositionOutOfRange(HedgeBotError):
    """The LP position holds only one asset; the hedge no longer tracks."""


class NoExistingLoan(HedgeBotError):
    pass


class UnhealthyObligation(HedgeBotError):
    pass


class RangeOutOfBounds(HedgeBotError):
    pass


class InvalidQuoteRequest(HedgeBotError, ValueError):
    pass


class NoRouteFound(HedgeBotError):
    pass


class DryRunFailed(HedgeBotError):
    pass


class SubmissionFailed(HedgeBotError):
    pass
