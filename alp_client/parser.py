"""Pure parsing functions for ALP ledger objects, no I/O."""
from __future__ import annotations

from typing import Any

from .models import (
    Balances,
    CoinObject,
    CollateralConfig,
    CollateralPosition,
    OracleState,
    ProtocolState,
)

# Ratios and fees are stored at 9-decimal precision: 1_000_000_000 == 100%.
RATIO_TO_PERCENT = 10_000_000


def get_token_symbol(coin_type: str) -> str:
    """Extract token symbol from a SUI coin type string.

    Examples:
        "0x2::sui::SUI" → "SUI"
        "0xabc::alp::ALP" → "ALP"
    """
    if "::" in coin_type:
        return coin_type.split("::")[-1].upper()
    return coin_type.upper()


def object_fields(obj: dict[str, Any]) -> dict[str, Any]:
    """Return the Move struct fields of a ``sui_getObject`` style response."""
    content = (obj.get("data") or {}).get("content") or {}
    fields = content.get("fields")
    if not isinstance(fields, dict):
        raise ValueError("Object has no Move content fields")
    return fields


def _unwrap(value: Any) -> Any:
    """Nested structs arrive as ``{"type": ..., "fields": {...}}``."""
    if isinstance(value, dict) and "fields" in value:
        return value["fields"]
    return value


def _type_name(value: Any) -> str:
    """TypeName fields arrive either as a plain string or as ``{name: ...}``."""
    value = _unwrap(value)
    if isinstance(value, dict):
        return str(value.get("name", ""))
    return str(value or "")


def percent_from_raw(raw: Any) -> float:
    return int(raw) / RATIO_TO_PERCENT


def parse_protocol_state(fields: dict[str, Any]) -> ProtocolState:
    return ProtocolState(
        total_supply=int(fields["total_alp_supply"]),
        total_collateral_value=int(fields["total_collateral_value"]),
        global_collateral_ratio=percent_from_raw(fields["global_collateral_ratio"]),
        min_collateral_ratio=percent_from_raw(fields["min_collateral_ratio"]),
        liquidation_threshold=percent_from_raw(fields["liquidation_threshold"]),
        stability_fee=percent_from_raw(fields["stability_fee"]),
        liquidation_penalty=percent_from_raw(fields["liquidation_penalty"]),
        paused=bool(fields.get("paused", False)),
    )


def parse_oracle_state(fields: dict[str, Any]) -> OracleState:
    updaters = _unwrap(fields.get("authorized_updaters")) or ()
    if isinstance(updaters, dict):
        # VecSet<address> arrives as {"contents": [...]}
        updaters = updaters.get("contents") or ()
    return OracleState(
        pyth_state_id=str(fields.get("pyth_state_id", "")),
        wormhole_state_id=str(fields.get("wormhole_state_id", "")),
        paused=bool(fields.get("paused", False)),
        authorized_updaters=tuple(str(u) for u in updaters),
    )


def parse_collateral_config(fields: dict[str, Any]) -> CollateralConfig:
    feed = _unwrap(fields.get("price_feed")) or {}
    return CollateralConfig(
        name=_type_name(fields.get("name", "")),
        min_ratio=int(fields["min_collateral_ratio"]),
        liquidation_threshold=int(fields["liquidation_threshold"]),
        debt_ceiling=int(fields["debt_ceiling"]),
        current_debt=int(fields.get("current_debt", 0)),
        active=bool(fields.get("active", True)),
        price=int(feed.get("price", 0)),
        price_timestamp=int(feed.get("timestamp", 0)),
    )


def is_current_deployment(object_type: str | None, package_id: str) -> bool:
    """True when the object was created by the configured package."""
    if not package_id or not isinstance(object_type, str):
        return False
    return object_type.startswith(f"{package_id}::")


def parse_position(obj: dict[str, Any]) -> CollateralPosition:
    data = obj.get("data") or {}
    fields = object_fields(obj)
    return CollateralPosition(
        id=data.get("objectId", ""),
        owner=fields.get("owner", ""),
        collateral_amount=int(fields["collateral_amount"]),
        debt_amount=int(fields["alp_minted"]),
        collateral_type=_type_name(fields.get("collateral_type", "")),
        last_update=int(fields.get("last_update", 0)),
        accumulated_fee=int(fields.get("accumulated_fee", 0)),
    )


def parse_coin(raw: dict[str, Any], coin_type: str = "") -> CoinObject:
    return CoinObject(
        object_id=raw["coinObjectId"],
        coin_type=raw.get("coinType", coin_type),
        balance=int(raw.get("balance", 0)),
    )


def total_balance(coins: list[CoinObject]) -> int:
    return sum(c.balance for c in coins)


def build_balances(stable: list[CoinObject], native: list[CoinObject]) -> Balances:
    return Balances(stable=total_balance(stable), native=total_balance(native))
