"""Suilend lending protocol."""
from .ledger import SuilendLedger
from .market import SuilendMarket

__all__ = ["SuilendLedger", "SuilendMarket"]
