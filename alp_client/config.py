"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

NATIVE_COIN_TYPE = "0x2::sui::SUI"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NetworkConfig:
    rpc_endpoints: tuple[str, ...] = ("https://fullnode.testnet.sui.io:443",)
    rpc_timeout: int = 30


@dataclass(frozen=True)
class CollateralDeployment:
    config_id: str = ""
    vault_id: str = ""
    coin_type: str = NATIVE_COIN_TYPE
    pyth_feed: str = ""


@dataclass(frozen=True)
class DeploymentConfig:
    package_id: str = ""
    protocol_state_id: str = ""
    oracle_state_id: str = ""
    stable_coin_type: str = ""
    decimals: int = 9
    collaterals: dict[str, CollateralDeployment] = field(default_factory=dict)

    @property
    def module_prefix(self) -> str:
        return f"{self.package_id}::alp"

    @property
    def position_type(self) -> str:
        return f"{self.module_prefix}::CollateralPosition"

    def collateral(self, name: str) -> CollateralDeployment:
        try:
            return self.collaterals[name]
        except KeyError:
            raise ValueError(f"Unknown collateral type '{name}'") from None


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    peg_feed: str = ""
    timeout: int = 10


@dataclass(frozen=True)
class ExchangeRateConfig:
    url: str = "https://api.exchangerate-api.com/v4/latest/CHF"
    quote: str = "USD"
    timeout: int = 10


@dataclass(frozen=True)
class OracleConfig:
    poll_interval_seconds: int = 30
    staleness_seconds: int = 300
    pyth: PythConfig = field(default_factory=PythConfig)
    exchange_rate: ExchangeRateConfig = field(default_factory=ExchangeRateConfig)
    fallback_prices: dict[str, float] = field(
        default_factory=lambda: {"SUI": 1.85, "peg": 1.1}
    )


@dataclass(frozen=True)
class WalletConfig:
    address: str = ""


@dataclass(frozen=True)
class DataSourceConfig:
    mode: str = "live"
    fixture_path: str = ""


@dataclass(frozen=True)
class SignerConfig:
    mode: str = "none"
    sui_binary: str = "sui"
    gas_budget: int = 10_000_000


@dataclass(frozen=True)
class AppConfig:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    data_source: DataSourceConfig = field(default_factory=DataSourceConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)


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


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_network(raw: dict[str, Any]) -> NetworkConfig:
    return NetworkConfig(
        rpc_endpoints=tuple(
            raw.get("rpc_endpoints", list(NetworkConfig.rpc_endpoints))
        ),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_deployment(raw: dict[str, Any]) -> DeploymentConfig:
    collaterals: dict[str, CollateralDeployment] = {}
    for name, cfg in raw.get("collaterals", {}).items():
        collaterals[name] = CollateralDeployment(
            config_id=cfg.get("config_id", ""),
            vault_id=cfg.get("vault_id", ""),
            coin_type=cfg.get("coin_type", NATIVE_COIN_TYPE),
            pyth_feed=cfg.get("pyth_feed", ""),
        )

    package_id = raw.get("package_id", "")
    return DeploymentConfig(
        package_id=package_id,
        protocol_state_id=raw.get("protocol_state_id", ""),
        oracle_state_id=raw.get("oracle_state_id", ""),
        stable_coin_type=raw.get("stable_coin_type") or f"{package_id}::alp::ALP",
        decimals=int(raw.get("decimals", 9)),
        collaterals=collaterals,
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {})
    fx_raw = raw.get("exchange_rate", {})
    fallback = dict(OracleConfig().fallback_prices)
    fallback.update(
        {k: float(v) for k, v in raw.get("fallback_prices", {}).items()}
    )
    return OracleConfig(
        poll_interval_seconds=int(raw.get("poll_interval_seconds", 30)),
        staleness_seconds=int(raw.get("staleness_seconds", 300)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            peg_feed=pyth_raw.get("peg_feed", ""),
            timeout=int(pyth_raw.get("timeout", 10)),
        ),
        exchange_rate=ExchangeRateConfig(
            url=fx_raw.get("url", ExchangeRateConfig.url),
            quote=fx_raw.get("quote", "USD"),
            timeout=int(fx_raw.get("timeout", 10)),
        ),
        fallback_prices=fallback,
    )


def _build_signer(raw: dict[str, Any]) -> SignerConfig:
    return SignerConfig(
        mode=raw.get("mode", "none"),
        sui_binary=raw.get("sui_binary", "sui"),
        gas_budget=int(raw.get("gas_budget", 10_000_000)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
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

    data_source = raw.get("data_source", {})
    cfg = AppConfig(
        network=_build_network(raw.get("network", {})),
        deployment=_build_deployment(raw.get("deployment", {})),
        oracle=_build_oracle(raw.get("oracle", {})),
        wallet=WalletConfig(address=raw.get("wallet", {}).get("address", "")),
        data_source=DataSourceConfig(
            mode=data_source.get("mode", "live"),
            fixture_path=data_source.get("fixture_path", ""),
        ),
        signer=_build_signer(raw.get("signer", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.deployment.package_id:
        raise ValueError("Deployment package_id must be configured")

    if not cfg.deployment.collaterals:
        raise ValueError("At least one collateral type must be configured")

    if cfg.data_source.mode not in ("live", "fixture"):
        raise ValueError(f"Unknown data source mode '{cfg.data_source.mode}'")

    if cfg.data_source.mode == "fixture" and not cfg.data_source.fixture_path:
        raise ValueError("Fixture data source requires a fixture_path")

    if cfg.data_source.mode == "live" and not cfg.network.rpc_endpoints:
        raise ValueError("Live data source requires at least one RPC endpoint")

    if cfg.signer.mode not in ("none", "sui-cli"):
        raise ValueError(f"Unknown signer mode '{cfg.signer.mode}'")
