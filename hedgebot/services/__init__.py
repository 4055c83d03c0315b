"""Service layer — market data, hedge math, rebalancer and bot orchestration."""
from .bot import HedgeBot
from .market_data import MarketDataGateway
from .rebalancer import HedgeRebalancer, RebalancerState

__all__ = ["HedgeBot", "HedgeRebalancer", "MarketDataGateway", "RebalancerState"]
