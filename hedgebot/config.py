"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .coin_types import normalize_struct_tag

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BotConfig:
    polling_interval_seconds: int = 15
    refetch_interval_seconds: int = 30 * 60
    max_slippage: Decimal = Decimal("0.001")
    # Fraction of the hedged exposure under which drift is left alone.
    drift_tolerance: Decimal = Decimal("0.005")
    reference_notional_usd: Decimal = Decimal("1000")
    position_id: str = ""


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    builder_url: str = ""
    gas_budget: int = 100_000_000


@dataclass(frozen=True)
class WalletConfig:
    secret: str = ""


@dataclass(frozen=True)
class LendingConfig:
    package_id: str = ""
    market_id: str = ""
    market_type: str = ""


@dataclass(frozen=True)
class CetusConfig:
    integrate_package_id: str = ""
    global_config_id: str = ""
    rewarder_vault_id: str = ""


@dataclass(frozen=True)
class CetusAggregatorConfig:
    url: str = "https://api-sui.cetus.zone/router_v2/find_routes"
    package_id: str = ""
    depth: int = 3


@dataclass(frozen=True)
class SevenKConfig:
    url: str = "https://api.7k.ag/quote"
    package_id: str = ""
    config_id: str = ""


@dataclass(frozen=True)
class RouterConfig:
    providers: tuple[str, ...] = ("cetus",)
    timeout: int = 15
    cetus: CetusAggregatorConfig = field(default_factory=CetusAggregatorConfig)
    sevenk: SevenKConfig = field(default_factory=SevenKConfig)


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    timeout: int = 15
    package_id: str = ""
    state_id: str = ""
    wormhole_package_id: str = ""
    wormhole_state_id: str = ""
    update_fee: int = 1
    price_info_objects: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AssetConfig:
    symbol: str = ""
    coin_type: str = ""
    decimals: int = 9
    stable: bool = False


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    bot: BotConfig = field(default_factory=BotConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    lending: LendingConfig = field(default_factory=LendingConfig)
    cetus: CetusConfig = field(default_factory=CetusConfig)
    router: RouterConfig = field(default_factory=RouterConfig)
    pyth: PythConfig = field(default_factory=PythConfig)
    assets: tuple[AssetConfig, ...] = ()
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    def asset_by_type(self, coin_type: str) -> AssetConfig | None:
        wanted = normalize_struct_tag(coin_type)
        for asset in self.assets:
            if normalize_struct_tag(asset.coin_type) == wanted:
                return asset
        return None

    def asset_by_symbol(self, symbol: str) -> AssetConfig | None:
        for asset in self.assets:
            if asset.symbol.upper() == symbol.upper():
                return asset
        return None

    @property
    def stable_coin_types(self) -> frozenset[str]:
        return frozenset(
            normalize_struct_tag(a.coin_type) for a in self.assets if a.stable
        )


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _decimal(raw: Any, default: str) -> Decimal:
    # str() first so YAML floats like 0.001 keep their written digits
    return Decimal(str(raw if raw is not None else default))


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_bot(raw: dict[str, Any]) -> BotConfig:
    return BotConfig(
        polling_interval_seconds=int(raw.get("polling_interval_seconds", 15)),
        refetch_interval_seconds=int(raw.get("refetch_interval_seconds", 1800)),
        max_slippage=_decimal(raw.get("max_slippage"), "0.001"),
        drift_tolerance=_decimal(raw.get("drift_tolerance"), "0.005"),
        reference_notional_usd=_decimal(raw.get("reference_notional_usd"), "1000"),
        position_id=raw.get("position_id", ""),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        builder_url=raw.get("builder_url", ""),
        gas_budget=int(raw.get("gas_budget", 100_000_000)),
    )


def _build_lending(raw: dict[str, Any]) -> LendingConfig:
    return LendingConfig(
        package_id=raw.get("package_id", ""),
        market_id=raw.get("market_id", ""),
        market_type=raw.get("market_type", ""),
    )


def _build_cetus(raw: dict[str, Any]) -> CetusConfig:
    return CetusConfig(
        integrate_package_id=raw.get("integrate_package_id", ""),
        global_config_id=raw.get("global_config_id", ""),
        rewarder_vault_id=raw.get("rewarder_vault_id", ""),
    )


def _build_router(raw: dict[str, Any]) -> RouterConfig:
    cetus_raw = raw.get("cetus", {})
    sevenk_raw = raw.get("sevenk", {})
    return RouterConfig(
        providers=tuple(raw.get("providers", ["cetus"])),
        timeout=int(raw.get("timeout", 15)),
        cetus=CetusAggregatorConfig(
            url=cetus_raw.get("url", CetusAggregatorConfig.url),
            package_id=cetus_raw.get("package_id", ""),
            depth=int(cetus_raw.get("depth", 3)),
        ),
        sevenk=SevenKConfig(
            url=sevenk_raw.get("url", SevenKConfig.url),
            package_id=sevenk_raw.get("package_id", ""),
            config_id=sevenk_raw.get("config_id", ""),
        ),
    )


def _build_pyth(raw: dict[str, Any]) -> PythConfig:
    return PythConfig(
        hermes_url=raw.get("hermes_url", PythConfig.hermes_url),
        timeout=int(raw.get("timeout", 15)),
        package_id=raw.get("package_id", ""),
        state_id=raw.get("state_id", ""),
        wormhole_package_id=raw.get("wormhole_package_id", ""),
        wormhole_state_id=raw.get("wormhole_state_id", ""),
        update_fee=int(raw.get("update_fee", 1)),
        price_info_objects={
            k.lower().removeprefix("0x"): v
            for k, v in raw.get("price_info_objects", {}).items()
        },
    )


def _build_assets(raw: dict[str, Any]) -> tuple[AssetConfig, ...]:
    assets: list[AssetConfig] = []
    for symbol, cfg in raw.items():
        assets.append(
            AssetConfig(
                symbol=symbol,
                coin_type=cfg.get("coin_type", ""),
                decimals=int(cfg.get("decimals", 9)),
                stable=bool(cfg.get("stable", False)),
            )
        )
    return tuple(assets)


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from the package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        bot=_build_bot(raw.get("bot", {})),
        chain=_build_chain(raw.get("chain", {})),
        wallet=WalletConfig(secret=raw.get("wallet", {}).get("secret", "")),
        lending=_build_lending(raw.get("lending", {})),
        cetus=_build_cetus(raw.get("cetus", {})),
        router=_build_router(raw.get("router", {})),
        pyth=_build_pyth(raw.get("pyth", {})),
        assets=_build_assets(raw.get("assets", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if not cfg.assets:
        raise ValueError("At least one asset must be configured")

    for asset in cfg.assets:
        if not asset.coin_type:
            raise ValueError(f"Asset '{asset.symbol}' has no coin type")

    if not any(a.stable for a in cfg.assets):
        raise ValueError("At least one stable asset must be configured")

    if not Decimal(0) <= cfg.bot.max_slippage < Decimal(1):
        raise ValueError(f"max_slippage must be in [0, 1), got {cfg.bot.max_slippage}")

    if cfg.bot.polling_interval_seconds <= 0:
        raise ValueError("polling_interval_seconds must be positive")

    for provider in cfg.router.providers:
        if provider not in ("cetus", "7k"):
            raise ValueError(f"Unknown swap router provider '{provider}'")
