"""Price source strategies: the tiers of the oracle fallback chain.

Each source either returns a ``PriceData`` or raises ``OracleUnavailable``.
Staleness is left to the aggregator, except for ``ConstantPriceSource``
which is stale by definition.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from ..errors import OracleUnavailable
from ..interfaces.chain import LedgerReader
from ..models import PriceData
from ..parser import object_fields, parse_collateral_config
from .exchange_rate import ExchangeRateApi
from .pyth import PythOracle

logger = logging.getLogger(__name__)


class ContractPriceSource:
    """Reference price embedded in a collateral configuration object."""

    def __init__(
        self, ledger: LedgerReader, config_id: str, decimals: int = 9
    ) -> None:
        self._ledger = ledger
        self._config_id = config_id
        self._decimals = decimals

    @property
    def name(self) -> str:
        return "contract"

    async def fetch(self) -> PriceData:
        if not self._config_id:
            raise OracleUnavailable("No collateral config id configured")

        try:
            obj = await self._ledger.get_object(self._config_id)
            config = parse_collateral_config(object_fields(obj))
        except Exception as e:
            raise OracleUnavailable(f"Collateral config unreadable: {e}") from e

        if config.price <= 0:
            raise OracleUnavailable("Collateral config carries no price")

        return PriceData(
            price=config.price / 10**self._decimals,
            confidence=0.0,
            publish_time=config.price_timestamp / 1000,
            expo=self._decimals,
            source=self.name,
        )


class PythFeedSource:
    """A Pyth feed, optionally inverted (e.g. USD/CHF -> CHF/USD)."""

    def __init__(self, oracle: PythOracle, feed_id: str, invert: bool = False) -> None:
        self._oracle = oracle
        self._feed_id = feed_id
        self._invert = invert

    @property
    def name(self) -> str:
        return "pyth"

    async def fetch(self) -> PriceData:
        if not self._feed_id:
            raise OracleUnavailable("No Pyth feed configured")

        price = await self._oracle.fetch_feed(self._feed_id)
        if price.price <= 0:
            raise OracleUnavailable(f"Non-positive Pyth price for {self._feed_id}")
        if self._invert:
            price = price.invert()
        return PriceData(
            price=price.price,
            confidence=price.confidence,
            publish_time=price.publish_time,
            expo=price.expo,
            source=self.name,
        )


class ExchangeRateSource:
    """Plain exchange-rate table lookup. The rate is taken as-is."""

    def __init__(
        self,
        api: ExchangeRateApi,
        quote: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api = api
        self._quote = quote
        self._clock = clock

    @property
    def name(self) -> str:
        return "exchange-rate"

    async def fetch(self) -> PriceData:
        rate = await self._api.fetch_rate(self._quote)
        return PriceData(
            price=rate,
            confidence=0.0,
            publish_time=self._clock(),
            expo=0,
            source=self.name,
        )


class ConstantPriceSource:
    """Last resort so dependent calculations always have a number."""

    def __init__(self, price: float, clock: Callable[[], float] = time.time) -> None:
        self._price = price
        self._clock = clock

    @property
    def name(self) -> str:
        return "fallback"

    async def fetch(self) -> PriceData:
        return PriceData(
            price=self._price,
            confidence=0.0,
            publish_time=self._clock(),
            expo=0,
            is_stale=True,
            source=self.name,
        )
