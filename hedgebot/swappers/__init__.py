"""Swap routers."""
from ..config import RouterConfig
from ..interfaces.swap_router import SwapRouter
from .base import validate_swap_args
from .cetus import CetusAggregatorRouter
from .fallback import FallbackRouter
from .sevenk import SevenKRouter

__all__ = [
    "CetusAggregatorRouter",
    "FallbackRouter",
    "SevenKRouter",
    "SwapRouter",
    "build_router",
    "validate_swap_args",
]


def build_router(config: RouterConfig) -> SwapRouter:
    """Router for the configured providers; several → tried in order."""
    routers: list[SwapRouter] = []
    for provider in config.providers:
        if provider == "cetus":
            routers.append(CetusAggregatorRouter(config.cetus, config.timeout))
        elif provider == "7k":
            routers.append(SevenKRouter(config.sevenk, config.timeout))
        else:
            raise ValueError(f"Unknown swap router provider '{provider}'")

    if len(routers) == 1:
        return routers[0]
    return FallbackRouter(routers)
