"""Cetus concentrated-liquidity pools."""
from .composer import PositionComposer
from .pools import CetusPools

__all__ = ["CetusPools", "PositionComposer"]
