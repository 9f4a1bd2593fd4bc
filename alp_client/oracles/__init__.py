"""Price oracles and the fallback aggregator."""
from .aggregator import PEG_SERIES, PriceAggregator, build_aggregator
from .exchange_rate import ExchangeRateApi
from .pyth import PythOracle

__all__ = [
    "PEG_SERIES",
    "PriceAggregator",
    "build_aggregator",
    "ExchangeRateApi",
    "PythOracle",
]
