"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from alp_client.config import (
    AppConfig,
    CollateralDeployment,
    DataSourceConfig,
    DeploymentConfig,
    NetworkConfig,
    OracleConfig,
    PythConfig,
    WalletConfig,
)
from alp_client.models import CollateralPosition, PriceData

PACKAGE_ID = "0xpkg"
OWNER = "0xWALLET123"
PROTOCOL_STATE_ID = "0xprotocol"
ORACLE_STATE_ID = "0xoracle"
SUI_CONFIG_ID = "0xsuiconfig"
SUI_VAULT_ID = "0xsuivault"
STABLE_TYPE = f"{PACKAGE_ID}::alp::ALP"
SUI_TYPE = "0x2::sui::SUI"
NOW = 1_700_000_000.0


def make_object(object_id: str, struct_type: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Shape ``fields`` like a ``sui_getObject`` result."""
    return {
        "data": {
            "objectId": object_id,
            "type": struct_type,
            "content": {"dataType": "moveObject", "type": struct_type, "fields": fields},
        }
    }


def make_coin(object_id: str, balance: int) -> dict[str, Any]:
    return {"coinObjectId": object_id, "balance": str(balance)}


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_deployment() -> DeploymentConfig:
    return DeploymentConfig(
        package_id=PACKAGE_ID,
        protocol_state_id=PROTOCOL_STATE_ID,
        oracle_state_id=ORACLE_STATE_ID,
        stable_coin_type=STABLE_TYPE,
        decimals=9,
        collaterals={
            "SUI": CollateralDeployment(
                config_id=SUI_CONFIG_ID,
                vault_id=SUI_VAULT_ID,
                coin_type=SUI_TYPE,
                pyth_feed="0xsuifeed",
            )
        },
    )


@pytest.fixture()
def sample_app_config(sample_deployment: DeploymentConfig) -> AppConfig:
    return AppConfig(
        network=NetworkConfig(rpc_endpoints=("https://rpc1.example.com",), rpc_timeout=5),
        deployment=sample_deployment,
        oracle=OracleConfig(
            pyth=PythConfig(
                hermes_url="https://hermes.example.com/v2/updates/price/latest",
                peg_feed="0xusdchf",
            )
        ),
        wallet=WalletConfig(address=OWNER),
        data_source=DataSourceConfig(mode="live"),
    )


# ---------------------------------------------------------------------------
# Sample on-chain data
# ---------------------------------------------------------------------------


@pytest.fixture()
def protocol_state_fields() -> dict[str, Any]:
    return {
        "total_alp_supply": "5882352941176",
        "total_collateral_value": "18500000000000",
        "global_collateral_ratio": "1700000000",
        "min_collateral_ratio": "1500000000",
        "liquidation_threshold": "1200000000",
        "stability_fee": "20000000",
        "liquidation_penalty": "130000000",
        "paused": False,
    }


@pytest.fixture()
def oracle_state_fields() -> dict[str, Any]:
    return {
        "pyth_state_id": "0xpythstate",
        "wormhole_state_id": "0xwormholestate",
        "paused": False,
        "authorized_updaters": {
            "type": "0x2::vec_set::VecSet<address>",
            "fields": {"contents": [OWNER]},
        },
    }


@pytest.fixture()
def collateral_config_fields() -> dict[str, Any]:
    return {
        "name": "SUI",
        "min_collateral_ratio": "1500000000",
        "liquidation_threshold": "1200000000",
        "debt_ceiling": "1000000000000000",
        "current_debt": "5882352941176",
        "active": True,
        "price_feed": {
            "type": f"{PACKAGE_ID}::alp::PriceFeed",
            "fields": {"price": "1850000000", "timestamp": str(int(NOW * 1000))},
        },
    }


@pytest.fixture()
def position_fields() -> dict[str, Any]:
    return {
        "owner": OWNER,
        "collateral_amount": "10000000000000",  # 10,000 SUI
        "alp_minted": "5882352941176",  # 5,882.352941176 ALP
        "collateral_type": {"type": "0x1::type_name::TypeName", "fields": {"name": SUI_TYPE}},
        "last_update": "1700000000000",
        "accumulated_fee": "0",
    }


@pytest.fixture()
def position_object(position_fields: dict[str, Any]) -> dict[str, Any]:
    return make_object("0xposition1", f"{PACKAGE_ID}::alp::CollateralPosition", position_fields)


@pytest.fixture()
def ledger_objects(
    protocol_state_fields: dict[str, Any],
    oracle_state_fields: dict[str, Any],
    collateral_config_fields: dict[str, Any],
    position_object: dict[str, Any],
) -> dict[str, dict[str, Any]]:
    return {
        PROTOCOL_STATE_ID: make_object(
            PROTOCOL_STATE_ID, f"{PACKAGE_ID}::alp::ProtocolState", protocol_state_fields
        ),
        ORACLE_STATE_ID: make_object(
            ORACLE_STATE_ID, f"{PACKAGE_ID}::oracle::OracleState", oracle_state_fields
        ),
        SUI_CONFIG_ID: make_object(
            SUI_CONFIG_ID, f"{PACKAGE_ID}::alp::CollateralConfig", collateral_config_fields
        ),
        "0xposition1": position_object,
    }


@pytest.fixture()
def ledger(
    ledger_objects: dict[str, dict[str, Any]], position_object: dict[str, Any]
) -> AsyncMock:
    """AsyncMock ledger serving the sample objects, positions and coins."""
    mock = AsyncMock()

    async def get_object(object_id: str) -> dict[str, Any]:
        return ledger_objects[object_id]

    async def get_coins(owner: str, coin_type: str) -> list[dict[str, Any]]:
        if coin_type == STABLE_TYPE:
            return [make_coin("0xalp1", 100), make_coin("0xalp2", 50)]
        return [make_coin("0xgas", 5_000_000_000_000)]

    mock.get_object = AsyncMock(side_effect=get_object)
    mock.get_owned_objects = AsyncMock(return_value=[position_object])
    mock.get_coins = AsyncMock(side_effect=get_coins)
    return mock


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_position() -> CollateralPosition:
    return CollateralPosition(
        id="0xposition1",
        owner=OWNER,
        collateral_amount=10_000_000_000_000,
        debt_amount=5_882_352_941_176,
        collateral_type=SUI_TYPE,
        last_update=0,
        accumulated_fee=0,
    )


@pytest.fixture()
def sui_price() -> PriceData:
    return PriceData(price=1.85, confidence=0.001, publish_time=NOW, expo=-8, source="pyth")


@pytest.fixture()
def peg_price() -> PriceData:
    return PriceData(price=1.1, confidence=0.0, publish_time=NOW, expo=0, source="exchange-rate")


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    network:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    deployment:
      package_id: "0xpkg"
      protocol_state_id: "0xprotocol"
      oracle_state_id: "0xoracle"
      collaterals:
        SUI:
          config_id: "0xsuiconfig"
          vault_id: "0xsuivault"
          pyth_feed: "0xsuifeed"
    oracle:
      poll_interval_seconds: 15
      pyth:
        hermes_url: "https://hermes.example.com"
        peg_feed: "0xusdchf"
      fallback_prices:
        SUI: 2.0
    wallet:
      address: "0xTEST"
    signer:
      mode: sui-cli
      gas_budget: 20000000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
