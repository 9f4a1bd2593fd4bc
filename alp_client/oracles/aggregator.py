"""Oracle price aggregator: ordered fallback over price sources."""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import replace
from typing import Any, Callable

from ..config import AppConfig
from ..interfaces.chain import LedgerReader
from ..interfaces.price_oracle import PriceSource
from ..models import PriceData
from .exchange_rate import ExchangeRateApi
from .pyth import PythOracle
from .sources import (
    ConstantPriceSource,
    ContractPriceSource,
    ExchangeRateSource,
    PythFeedSource,
)

logger = logging.getLogger(__name__)

PEG_SERIES = "peg"

Subscriber = Callable[[dict[str, PriceData]], Any]


class PriceAggregator:
    """Resolve each price series by trying its sources in order.

    The first source that returns a price wins; later sources are not
    queried. A failing source is logged and skipped. ``fetch`` never raises:
    when every source fails the result is a zero price flagged stale.
    """

    def __init__(
        self,
        series: dict[str, list[PriceSource]],
        staleness_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._series = {name: list(sources) for name, sources in series.items()}
        self._staleness_seconds = staleness_seconds
        self._clock = clock
        self._prices: dict[str, PriceData] = {}
        self._subscribers: list[Subscriber] = []

    @property
    def series(self) -> list[str]:
        return list(self._series)

    @property
    def prices(self) -> dict[str, PriceData]:
        return dict(self._prices)

    def latest(self, series: str) -> PriceData | None:
        return self._prices.get(series)

    def is_stale(self, publish_time: float) -> bool:
        return self._clock() - publish_time > self._staleness_seconds

    async def fetch(self, series: str) -> PriceData:
        """Resolve one series through its fallback chain."""
        for source in self._series.get(series, []):
            try:
                price = await source.fetch()
            except Exception as e:
                logger.warning("Price source %s failed for %s: %s", source.name, series, e)
                continue

            price = replace(
                price,
                is_stale=price.is_stale or self.is_stale(price.publish_time),
                source=price.source or source.name,
            )
            logger.info(
                "%s price %.6f from %s%s",
                series,
                price.price,
                price.source,
                " (stale)" if price.is_stale else "",
            )
            return price

        logger.error("All price sources failed for %s", series)
        return PriceData(
            price=0.0,
            confidence=0.0,
            publish_time=self._clock(),
            expo=0,
            is_stale=True,
            source="none",
        )

    async def refresh(self) -> dict[str, PriceData]:
        """Run one aggregation cycle over every series and notify subscribers."""
        names = list(self._series)
        results = await asyncio.gather(*(self.fetch(name) for name in names))
        self._prices = dict(zip(names, results))

        for callback in list(self._subscribers):
            try:
                outcome = callback(self.prices)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("Price subscriber failed: %s", e)

        return self.prices

    async def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; the first subscriber triggers an eager fetch."""
        self._subscribers.append(callback)
        if len(self._subscribers) == 1 and not self._prices:
            await self.refresh()

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def run_periodic(self, interval_seconds: float = 30) -> None:
        """Refresh forever at a fixed interval."""
        logger.info("Starting price refresh every %s seconds", interval_seconds)
        while True:
            await self.refresh()
            await asyncio.sleep(interval_seconds)


def build_aggregator(
    config: AppConfig,
    ledger: LedgerReader,
    clock: Callable[[], float] = time.time,
) -> PriceAggregator:
    """Assemble the standard chains: one per collateral type plus the peg rate.

    Collateral: contract reference price -> Pyth feed -> constant.
    Peg (CHF/USD): inverted Pyth USD/CHF -> exchange-rate API -> constant.
    """
    oracle_cfg = config.oracle
    deployment = config.deployment
    pyth = PythOracle(oracle_cfg.pyth)
    fallback = oracle_cfg.fallback_prices

    series: dict[str, list[PriceSource]] = {}
    for name, collateral in deployment.collaterals.items():
        chain: list[PriceSource] = [
            ContractPriceSource(ledger, collateral.config_id, deployment.decimals),
            PythFeedSource(pyth, collateral.pyth_feed),
        ]
        if name in fallback:
            chain.append(ConstantPriceSource(fallback[name], clock))
        series[name] = chain

    peg_chain: list[PriceSource] = [
        PythFeedSource(pyth, oracle_cfg.pyth.peg_feed, invert=True),
        ExchangeRateSource(
            ExchangeRateApi(oracle_cfg.exchange_rate),
            oracle_cfg.exchange_rate.quote,
            clock,
        ),
    ]
    if PEG_SERIES in fallback:
        peg_chain.append(ConstantPriceSource(fallback[PEG_SERIES], clock))
    series[PEG_SERIES] = peg_chain

    return PriceAggregator(series, oracle_cfg.staleness_seconds, clock)
