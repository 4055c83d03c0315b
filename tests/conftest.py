"""Shared test fixtures and sample data."""
from __future__ import annotations

import base64
import textwrap
from decimal import Decimal
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from hedgebot.chains.sui.transaction import Argument, InstructionBundle
from hedgebot.config import (
    AppConfig,
    AssetConfig,
    BotConfig,
    CetusConfig,
    ChainConfig,
    LendingConfig,
    PythConfig,
    WalletConfig,
)
from hedgebot.models import LiquidityPosition, Obligation, Quote, Reserve, ReserveConfig
from hedgebot.services import hedge_math

USDC_TYPE = "0x" + "d" * 64 + "::usdc::USDC"
USDT_TYPE = "0x" + "c" * 64 + "::usdt::USDT"
ETH_TYPE = "0x" + "e" * 64 + "::eth::ETH"
MARKET_TYPE = "0x" + "f" * 64 + "::suilend::MAIN_POOL"

USDC_FEED = "dd" * 32
ETH_FEED = "ee" * 32

LENDING_PKG = "0xlend"
PYTH_PKG = "0xpyth"
WORMHOLE_PKG = "0xwormhole"
CETUS_PKG = "0xcetus"
SWAP_PKG = "0xswap"

# 32-byte seed of all ones, as a keystore entry (flag byte 0x00 + seed)
TEST_SECRET = base64.b64encode(bytes([0]) + bytes([1] * 32)).decode()


def accumulator_update(vaa: bytes = b"vaa-bytes") -> bytes:
    """Minimal Pyth accumulator message wrapping ``vaa``."""
    return b"PNAU" + b"\x01\x00" + b"\x00" + b"\x00" + len(vaa).to_bytes(2, "big") + vaa


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_assets() -> tuple[AssetConfig, ...]:
    return (
        AssetConfig(symbol="USDC", coin_type=USDC_TYPE, decimals=6, stable=True),
        AssetConfig(symbol="USDT", coin_type=USDT_TYPE, decimals=6, stable=True),
        AssetConfig(symbol="ETH", coin_type=ETH_TYPE, decimals=8, stable=False),
    )


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        builder_url="https://builder.example.com/build",
    )


@pytest.fixture()
def sample_lending_config() -> LendingConfig:
    return LendingConfig(
        package_id=LENDING_PKG, market_id="0xmarket", market_type=MARKET_TYPE
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        package_id=PYTH_PKG,
        state_id="0xpythstate",
        wormhole_package_id=WORMHOLE_PKG,
        wormhole_state_id="0xwormholestate",
        price_info_objects={USDC_FEED: "0xusdcinfo", ETH_FEED: "0xethinfo"},
    )


@pytest.fixture()
def sample_app_config(
    sample_assets: tuple[AssetConfig, ...],
    sample_chain_config: ChainConfig,
    sample_lending_config: LendingConfig,
    sample_pyth_config: PythConfig,
) -> AppConfig:
    return AppConfig(
        bot=BotConfig(position_id="0xposition"),
        chain=sample_chain_config,
        wallet=WalletConfig(secret=TEST_SECRET),
        lending=sample_lending_config,
        cetus=CetusConfig(
            integrate_package_id=CETUS_PKG,
            global_config_id="0xcetusconfig",
            rewarder_vault_id="0xrewardervault",
        ),
        pyth=sample_pyth_config,
        assets=sample_assets,
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def usdc_reserve() -> Reserve:
    return Reserve(
        coin_type=USDC_TYPE,
        array_index=0,
        mint_decimals=6,
        price_identifier=USDC_FEED,
        price=Decimal(1),
        smoothed_price=Decimal(1),
        config=ReserveConfig(open_ltv_pct=77, close_ltv_pct=80),
        symbol="USDC",
    )


@pytest.fixture()
def eth_reserve() -> Reserve:
    return Reserve(
        coin_type=ETH_TYPE,
        array_index=1,
        mint_decimals=8,
        price_identifier=ETH_FEED,
        price=Decimal(3000),
        smoothed_price=Decimal(3000),
        config=ReserveConfig(open_ltv_pct=70, close_ltv_pct=75),
        symbol="ETH",
    )


@pytest.fixture()
def reserve_map(usdc_reserve: Reserve, eth_reserve: Reserve) -> dict[str, Reserve]:
    return {USDC_TYPE: usdc_reserve, ETH_TYPE: eth_reserve}


def make_obligation(
    usdc_reserve: Reserve,
    eth_reserve: Reserve,
    usdc_deposit: str = "20000",
    eth_borrow: str | None = "2.0",
    obligation_id: str = "0xobligation",
) -> Obligation:
    """Obligation with a USDC deposit and (optionally) an ETH borrow."""
    obligation = Obligation(id=obligation_id, owner_cap_id="0xownercap")
    obligation = hedge_math.project(
        obligation, usdc_reserve, deposit_delta=Decimal(usdc_deposit)
    )
    if eth_borrow is not None:
        obligation = hedge_math.project(
            obligation, eth_reserve, borrow_delta=Decimal(eth_borrow)
        )
    return obligation


@pytest.fixture()
def sample_position() -> LiquidityPosition:
    """6000 USDC / 2.0 ETH, in range."""
    return LiquidityPosition(
        id="0xposition",
        pool_id="0xpool",
        coin_a=USDC_TYPE,
        coin_b=ETH_TYPE,
        coin_a_amount=6_000_000_000,
        coin_b_amount=200_000_000,
        liquidity=123456789,
        tick_lower=-1200,
        tick_upper=1200,
    )


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class FakeRouter:
    """Router double that returns a fixed quote and appends one swap step."""

    name = "fake"

    def __init__(self, amount_in: int = 0, amount_out: int = 0) -> None:
        self.amount_in = amount_in
        self.amount_out = amount_out
        self.calls: list[dict[str, Any]] = []
        self.return_none = False

    async def quote(
        self,
        from_coin_type: str,
        to_coin_type: str,
        from_amount: int | None = None,
        to_amount: int | None = None,
        max_slippage: Decimal = Decimal("0.001"),
    ) -> Quote | None:
        self.calls.append(
            {
                "from": from_coin_type,
                "to": to_coin_type,
                "from_amount": from_amount,
                "to_amount": to_amount,
            }
        )
        if self.return_none:
            return None
        by_amount_in = from_amount is not None
        return Quote(
            router=self.name,
            from_coin_type=from_coin_type,
            to_coin_type=to_coin_type,
            amount_in=from_amount if by_amount_in else self.amount_in,
            amount_out=self.amount_out if by_amount_in else to_amount,
            by_amount_in=by_amount_in,
        )

    def append_swap(
        self,
        bundle: InstructionBundle,
        input_coin: Argument,
        quote: Quote,
        max_slippage: Decimal,
    ) -> Argument:
        return bundle.move_call(
            f"{SWAP_PKG}::fake::swap",
            [input_coin],
            [quote.from_coin_type, quote.to_coin_type],
        )


@pytest.fixture()
def mock_chain_client() -> AsyncMock:
    """Chain client whose dry-run and execution both succeed."""
    client = AsyncMock()
    client.get_object = AsyncMock(return_value={"data": {"objectId": "0xmarket"}})
    client.get_coins = AsyncMock(return_value=[])
    client.build_transaction = AsyncMock(return_value="dHhieXRlcw==")
    client.dry_run_transaction_block = AsyncMock(
        return_value={"effects": {"status": {"status": "success"}}}
    )
    client.execute_transaction_block = AsyncMock(
        return_value={"digest": "DIGEST123", "effects": {"status": {"status": "success"}}}
    )
    return client


@pytest.fixture()
def mock_oracle() -> AsyncMock:
    oracle = AsyncMock()
    oracle.fetch_prices = AsyncMock(
        return_value={USDC_FEED: Decimal(1), ETH_FEED: Decimal(3000)}
    )
    oracle.fetch_price_update_data = AsyncMock(return_value=[accumulator_update()])
    return oracle


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def move_calls(payload: dict[str, Any]) -> list[str]:
    """``module::function`` of every MoveCall in a bundle payload."""
    return [
        f"{c['MoveCall']['module']}::{c['MoveCall']['function']}"
        for c in payload["commands"]
        if "MoveCall" in c
    ]


def pure_value(payload: dict[str, Any], argument: dict[str, Any]) -> Any:
    """Resolve an ``{"Input": i}`` argument to its pure value."""
    return payload["inputs"][argument["Input"]]["Pure"]["value"]


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    bot:
      polling_interval_seconds: 20
      refetch_interval_seconds: 600
      max_slippage: 0.002
      drift_tolerance: 0.01
      position_id: "0xposition"
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
      builder_url: "https://builder.example.com/build"
    wallet:
      secret: "${{BOT_SECRET_FOR_TESTS}}"
    lending:
      package_id: "{LENDING_PKG}"
      market_id: "0xmarket"
      market_type: "{MARKET_TYPE}"
    cetus:
      integrate_package_id: "{CETUS_PKG}"
      global_config_id: "0xcetusconfig"
    router:
      providers: [cetus, 7k]
      cetus:
        package_id: "0xagg"
    pyth:
      package_id: "{PYTH_PKG}"
      price_info_objects:
        "0x{ETH_FEED}": "0xethinfo"
    assets:
      USDC:
        coin_type: "{USDC_TYPE}"
        decimals: 6
        stable: true
      ETH:
        coin_type: "{ETH_TYPE}"
        decimals: 8
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: 999
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
