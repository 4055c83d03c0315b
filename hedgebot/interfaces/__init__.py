"""Protocol interfaces for the hedge bot."""
from .chain import ChainClient
from .notifier import Notifier
from .price_oracle import PriceOracle
from .signer import Signer
from .swap_router import SwapRouter

__all__ = ["ChainClient", "Notifier", "PriceOracle", "Signer", "SwapRouter"]
