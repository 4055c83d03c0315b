"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from hedgebot.config import (
    AppConfig,
    AssetConfig,
    BotConfig,
    ChainConfig,
    _interpolate_env,
    load_config,
)
from tests.conftest import ETH_FEED, ETH_TYPE, USDC_TYPE

MINIMAL_YAML = """\
chain:
  rpc_endpoints: ["https://rpc.test.com"]
assets:
  USDC:
    coin_type: "0xdba3::usdc::USDC"
    decimals: 6
    stable: true
"""


def _write(tmp_path: Path, content: str) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(content)
    return cfg_file


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_dict(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "plain": "text"})
        assert result == {"key": "secret", "plain": "text"}

    def test_nested_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("A", "x")
        assert _interpolate_env(["${A}", "y"]) == ["x", "y"]

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BOT_SECRET_FOR_TESTS", "c2VjcmV0")
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.wallet.secret == "c2VjcmV0"
        assert cfg.bot.polling_interval_seconds == 20
        assert cfg.bot.refetch_interval_seconds == 600
        assert cfg.bot.position_id == "0xposition"
        assert cfg.chain.rpc_timeout == 10
        assert cfg.router.providers == ("cetus", "7k")
        assert cfg.router.cetus.package_id == "0xagg"
        assert cfg.notifications.telegram.enabled is True
        assert cfg.notifications.telegram.chat_id == "999"

    def test_decimals_keep_written_digits(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.bot.max_slippage == Decimal("0.002")
        assert cfg.bot.drift_tolerance == Decimal("0.01")

    def test_assets_registry(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        usdc = cfg.asset_by_symbol("usdc")
        assert usdc is not None and usdc.stable and usdc.decimals == 6
        eth = cfg.asset_by_type(ETH_TYPE)
        assert eth is not None and eth.symbol == "ETH" and not eth.stable
        assert cfg.stable_coin_types == frozenset({USDC_TYPE})

    def test_price_info_keys_normalized(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.pyth.price_info_objects == {ETH_FEED: "0xethinfo"}

    def test_defaults_for_missing_sections(self, tmp_path: Path) -> None:
        cfg = load_config(_write(tmp_path, MINIMAL_YAML))
        assert cfg.bot == BotConfig()
        assert cfg.router.providers == ("cetus",)
        assert cfg.notifications.telegram.enabled is False

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")


class TestAssetLookup:
    def test_lookup_by_short_address(self) -> None:
        cfg = AppConfig(
            assets=(AssetConfig(symbol="SUI", coin_type="0x2::sui::SUI", stable=False),)
        )
        asset = cfg.asset_by_type("0x" + "0" * 63 + "2::sui::SUI")
        assert asset is not None and asset.symbol == "SUI"

    def test_unknown_asset(self) -> None:
        assert AppConfig().asset_by_symbol("ETH") is None


class TestValidation:
    def test_no_rpc_endpoint_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML.replace('["https://rpc.test.com"]', "[]")
        with pytest.raises(ValueError, match="RPC endpoint"):
            load_config(_write(tmp_path, content))

    def test_no_assets_raises(self, tmp_path: Path) -> None:
        content = 'chain:\n  rpc_endpoints: ["https://rpc.test.com"]\n'
        with pytest.raises(ValueError, match="At least one asset"):
            load_config(_write(tmp_path, content))

    def test_no_stable_asset_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML.replace("stable: true", "stable: false")
        with pytest.raises(ValueError, match="stable asset"):
            load_config(_write(tmp_path, content))

    def test_asset_without_coin_type_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML + "  ETH:\n    decimals: 8\n"
        with pytest.raises(ValueError, match="no coin type"):
            load_config(_write(tmp_path, content))

    def test_slippage_out_of_range_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML + "bot:\n  max_slippage: 1.5\n"
        with pytest.raises(ValueError, match="max_slippage"):
            load_config(_write(tmp_path, content))

    def test_non_positive_interval_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML + "bot:\n  polling_interval_seconds: 0\n"
        with pytest.raises(ValueError, match="polling_interval_seconds"):
            load_config(_write(tmp_path, content))

    def test_unknown_router_raises(self, tmp_path: Path) -> None:
        content = MINIMAL_YAML + "router:\n  providers: [uniswap]\n"
        with pytest.raises(ValueError, match="Unknown swap router"):
            load_config(_write(tmp_path, content))


class TestFrozenConfigs:
    def test_bot_config_immutable(self) -> None:
        b = BotConfig()
        with pytest.raises(AttributeError):
            b.max_slippage = Decimal("0.5")  # type: ignore[misc]

    def test_chain_config_immutable(self) -> None:
        c = ChainConfig(rpc_endpoints=("a",))
        with pytest.raises(AttributeError):
            c.rpc_timeout = 999  # type: ignore[misc]
