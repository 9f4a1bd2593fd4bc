"""Client session wiring ledger, oracle, cache and orchestrator together."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from ..amounts import format_amount
from ..chains.sui import FixtureLedger, SuiCliSigner, SuiClient
from ..config import AppConfig
from ..interfaces.chain import LedgerReader
from ..interfaces.signer import Signer
from ..metrics import PositionMetrics, position_metrics
from ..models import CollateralPosition, PriceData
from ..oracles import PEG_SERIES, build_aggregator
from ..orchestrator import TransactionOrchestrator
from ..parser import RATIO_TO_PERCENT, get_token_symbol
from ..state import StateCache, StateSnapshot

logger = logging.getLogger(__name__)

DEFAULT_LIQUIDATION_RATIO = 1_200_000_000


def build_ledger(config: AppConfig) -> LedgerReader:
    """Pick the read capability named by the data_source section."""
    if config.data_source.mode == "fixture":
        return FixtureLedger.from_file(config.data_source.fixture_path)
    return SuiClient(config.network)


def build_signer(config: AppConfig) -> Signer | None:
    if config.signer.mode == "sui-cli":
        return SuiCliSigner(config.signer)
    return None


class AlpSession:
    """Owns the state cache, the price aggregator and the orchestrator."""

    def __init__(
        self,
        config: AppConfig,
        ledger: LedgerReader | None = None,
        signer: Signer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._deployment = config.deployment
        self.owner = config.wallet.address or None

        self.ledger = ledger if ledger is not None else build_ledger(config)
        if signer is None:
            signer = build_signer(config)

        self.cache = StateCache(self.ledger, self._deployment)
        self.prices = build_aggregator(config, self.ledger, clock)
        self.orchestrator = TransactionOrchestrator(
            self.ledger, signer, self.cache, self._deployment, self.owner
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh(self) -> StateSnapshot:
        """Refresh ledger state and prices concurrently."""
        snapshot, _ = await asyncio.gather(
            self.cache.refresh_all(self.owner), self.prices.refresh()
        )
        return snapshot

    def collateral_name(self, collateral_type: str) -> str | None:
        """Map a position's collateral type tag to a configured collateral name."""
        symbol = get_token_symbol(collateral_type)
        for name, deployment in self._deployment.collaterals.items():
            if collateral_type in (name, deployment.coin_type):
                return name
            if symbol == get_token_symbol(deployment.coin_type):
                return name
        return None

    def liquidation_ratio(self, collateral: str | None) -> int:
        config = self.cache.collateral_configs.get(collateral or "")
        if config is not None:
            return config.liquidation_threshold
        if self.cache.protocol_state is not None:
            return int(self.cache.protocol_state.liquidation_threshold * RATIO_TO_PERCENT)
        return DEFAULT_LIQUIDATION_RATIO

    def position_metrics(self, position: CollateralPosition) -> PositionMetrics | None:
        name = self.collateral_name(position.collateral_type)
        collateral_price = self.prices.latest(name) if name else None
        peg_price = self.prices.latest(PEG_SERIES)
        if collateral_price is None or peg_price is None:
            return None
        return position_metrics(
            position,
            collateral_price,
            peg_price,
            self.liquidation_ratio(name),
            self._deployment.decimals,
        )

    def positions_with_ratios(self) -> list[CollateralPosition]:
        """Cached positions with the display-only collateral ratio filled in."""
        result: list[CollateralPosition] = []
        for position in self.cache.positions:
            metrics = self.position_metrics(position)
            result.append(
                position.with_ratio(metrics.collateral_ratio) if metrics else position
            )
        return result

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_id(object_id: str) -> str:
        if len(object_id) > 16:
            return f"{object_id[:10]}...{object_id[-6:]}"
        return object_id

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _get_status(
        self,
        position: CollateralPosition,
        metrics: PositionMetrics,
        collateral: str | None,
    ) -> str:
        if position.debt_amount == 0:
            return "No debt"
        if metrics.collateral_ratio == 0:
            # debt backed by collateral valued at nothing
            return "CRITICAL"
        liquidation_pct = self.liquidation_ratio(collateral) / RATIO_TO_PERCENT
        config = self.cache.collateral_configs.get(collateral or "")
        min_pct = config.min_ratio / RATIO_TO_PERCENT if config else liquidation_pct
        if metrics.collateral_ratio <= liquidation_pct:
            return "CRITICAL"
        if metrics.collateral_ratio < min_pct:
            return "WARNING"
        return "Healthy"

    def format_prices(self) -> str:
        lines = []
        for series, price in sorted(self.prices.prices.items()):
            lines.append(
                f"{series}: ${price.price:,.6f} ± {price.confidence:.6f} "
                f"[{price.source}{', STALE' if price.is_stale else ''}]"
            )
        return "\n".join(lines) if lines else "No prices fetched."

    def format_report(self) -> str:
        decimals = self._deployment.decimals
        lines = [f"ALP Position Report · {self._now_str()} UTC", ""]

        state = self.cache.protocol_state
        if state is not None:
            lines.append(
                f"Protocol: supply {format_amount(state.total_supply, decimals)} ALP · "
                f"global CR {state.global_collateral_ratio:.2f}% · "
                f"{'PAUSED' if state.paused else 'active'}"
            )

        oracle = self.cache.oracle_state
        if oracle is not None:
            lines.append(
                f"Oracle: {'PAUSED' if oracle.paused else 'active'} · "
                f"{len(oracle.authorized_updaters)} authorized updater(s)"
            )

        if self.cache.balances is not None:
            lines.append(
                f"Wallet: {format_amount(self.cache.balances.stable, decimals)} ALP · "
                f"{format_amount(self.cache.balances.native, decimals)} SUI"
            )

        lines.append("")
        if not self.cache.positions:
            lines.append("No active positions found.")

        for position in self.cache.positions:
            name = self.collateral_name(position.collateral_type)
            metrics = self.position_metrics(position)
            lines.append(
                f"{self._format_id(position.id)} · "
                f"{format_amount(position.collateral_amount, decimals)} {name or '?'} · "
                f"debt {format_amount(position.debt_amount, decimals)} ALP"
            )
            if metrics is None:
                lines.append("  (no price data)")
                continue
            lines.append(
                f"  {self._get_status(position, metrics, name)} · CR {metrics.collateral_ratio:.1f}% · "
                f"HF {metrics.health_factor:.2f} · "
                f"liq. price ${metrics.liquidation_price_usd:,.4f}"
                f"{' · prices stale' if metrics.stale else ''}"
            )
            lines.append(
                f"  Collateral ${metrics.collateral_usd:,.2f} · Debt ${metrics.debt_usd:,.2f}"
            )

        if self.cache.last_error:
            lines += ["", f"Last error: {self.cache.last_error}"]
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    async def watch(self, interval_seconds: int | None = None) -> None:
        """Keep prices and ledger state fresh, logging the report each cycle."""
        price_interval = self._config.oracle.poll_interval_seconds
        interval = interval_seconds or price_interval
        logger.info("Watching positions (refresh every %d seconds)", interval)

        unsubscribe = await self.prices.subscribe(self._log_prices)
        price_task = asyncio.create_task(self._poll_prices(price_interval))
        try:
            while True:
                try:
                    await self.cache.refresh_all(self.owner)
                    logger.info("\n%s", self.format_report())
                    await asyncio.sleep(interval)
                except Exception as e:
                    logger.error("Error in watch loop: %s", e)
                    await asyncio.sleep(60)
        finally:
            price_task.cancel()
            unsubscribe()

    def _log_prices(self, prices: dict[str, PriceData]) -> None:
        stale = [series for series, price in prices.items() if price.is_stale]
        if stale:
            logger.warning("Stale prices: %s", ", ".join(sorted(stale)))

    async def _poll_prices(self, interval_seconds: int) -> None:
        # The subscription already fetched once.
        await asyncio.sleep(interval_seconds)
        await self.prices.run_periodic(interval_seconds)
