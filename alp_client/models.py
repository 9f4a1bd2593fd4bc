"""Data models: all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ProtocolState:
    """Protocol-wide snapshot. Ratios and fees are percentages."""

    total_supply: int
    total_collateral_value: int
    global_collateral_ratio: float
    min_collateral_ratio: float
    liquidation_threshold: float
    stability_fee: float
    liquidation_penalty: float
    paused: bool


@dataclass(frozen=True)
class OracleState:
    """On-chain oracle registry that guards contract price updates."""

    pyth_state_id: str
    wormhole_state_id: str
    paused: bool
    authorized_updaters: tuple[str, ...] = ()


@dataclass(frozen=True)
class CollateralConfig:
    """Per-collateral-type parameters. Ratios are raw 9-decimal values."""

    name: str
    min_ratio: int
    liquidation_threshold: int
    debt_ceiling: int
    current_debt: int
    active: bool
    price: int = 0
    price_timestamp: int = 0


@dataclass(frozen=True)
class CollateralPosition:
    """A single collateralized debt position owned by one address."""

    id: str
    owner: str
    collateral_amount: int
    debt_amount: int
    collateral_type: str
    last_update: int
    accumulated_fee: int
    collateral_ratio: float | None = None

    def with_ratio(self, ratio: float) -> CollateralPosition:
        return replace(self, collateral_ratio=ratio)


@dataclass(frozen=True)
class PriceData:
    """A single price observation in real units."""

    price: float
    confidence: float
    publish_time: float
    expo: int
    is_stale: bool = False
    source: str = ""

    def invert(self) -> PriceData:
        """Turn an A/B quote into B/A.

        Confidence propagates to first order: conf' = conf / price^2.
        """
        return replace(
            self,
            price=1 / self.price,
            confidence=self.confidence / (self.price * self.price),
            expo=-self.expo,
        )


@dataclass(frozen=True)
class Balances:
    """Wallet totals in base units."""

    stable: int = 0
    native: int = 0


@dataclass(frozen=True)
class CoinObject:
    """A single coin object owned by the wallet."""

    object_id: str
    coin_type: str
    balance: int
