"""Collateral risk metrics: pure functions, no I/O.

Zero denominators return the defined degenerate value instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .models import CollateralPosition, PriceData

RATIO_SCALE = 10**9


@dataclass(frozen=True)
class PositionMetrics:
    """Display-only risk view of one position at the given prices."""

    position_id: str
    collateral_usd: float
    debt_usd: float
    collateral_ratio: float
    liquidation_price_usd: float
    health_factor: float
    stale: bool


def collateral_ratio(collateral_value: int, debt_amount: int) -> float:
    """Collateral value over debt as a percentage with one decimal place.

    Both arguments are base units of the same denomination. The numerator is
    scaled with integer arithmetic before the final division.
    """
    if debt_amount == 0:
        return 0.0
    return (collateral_value * 1000 // debt_amount) / 10


def liquidation_price(
    collateral_amount: int,
    debt_amount: int,
    liquidation_ratio: int,
    unit_scale: int = RATIO_SCALE,
) -> int:
    """Integer liquidation price as computed on-chain.

    ``liquidation_ratio`` is a raw 9-decimal ratio (1_200_000_000 == 120%).
    """
    if collateral_amount == 0:
        return 0
    return debt_amount * liquidation_ratio // (collateral_amount * unit_scale)


def usd_value(amount: int, unit_price_usd: float, decimals: int = 9) -> float:
    """Value of ``amount`` base units at a per-unit USD price."""
    return amount / 10**decimals * unit_price_usd


def collateral_value_in_peg(
    collateral_amount: int, collateral_usd: float, peg_usd: float
) -> int:
    """Collateral expressed in peg base units (same precision as the debt)."""
    if peg_usd <= 0:
        return 0
    value = Decimal(collateral_amount) * Decimal(str(collateral_usd)) / Decimal(str(peg_usd))
    return int(value)


def health_factor(
    collateral_usd: float, debt_usd: float, liquidation_threshold_pct: float
) -> float:
    """Collateral over the liquidation requirement; below 1.0 is liquidatable."""
    if debt_usd <= 0 or liquidation_threshold_pct <= 0:
        return float("inf")
    return collateral_usd * 100 / (debt_usd * liquidation_threshold_pct)


def liquidation_price_usd(
    collateral_amount: int,
    debt_amount: int,
    liquidation_ratio: int,
    peg_usd: float,
) -> float:
    """Collateral USD price at which the position reaches the liquidation ratio."""
    if collateral_amount == 0:
        return 0.0
    ratio = liquidation_ratio / RATIO_SCALE
    return debt_amount * ratio * peg_usd / collateral_amount


def position_metrics(
    position: CollateralPosition,
    collateral_price: PriceData,
    peg_price: PriceData,
    liquidation_ratio: int,
    decimals: int = 9,
) -> PositionMetrics:
    """Value a position with two independent rates.

    Collateral is valued at the collateral/USD rate, debt at the peg/USD
    rate. The result is stale if either input price is.
    """
    collateral_usd = usd_value(position.collateral_amount, collateral_price.price, decimals)
    debt_usd = usd_value(position.debt_amount, peg_price.price, decimals)
    ratio = collateral_ratio(
        collateral_value_in_peg(
            position.collateral_amount, collateral_price.price, peg_price.price
        ),
        position.debt_amount,
    )
    return PositionMetrics(
        position_id=position.id,
        collateral_usd=collateral_usd,
        debt_usd=debt_usd,
        collateral_ratio=ratio,
        liquidation_price_usd=liquidation_price_usd(
            position.collateral_amount, position.debt_amount, liquidation_ratio, peg_price.price
        ),
        health_factor=health_factor(
            collateral_usd, debt_usd, liquidation_ratio / RATIO_SCALE * 100
        ),
        stale=collateral_price.is_stale or peg_price.is_stale,
    )
