"""Suilend/Cetus hedged-liquidity bot."""

__version__ = "0.1.0"
