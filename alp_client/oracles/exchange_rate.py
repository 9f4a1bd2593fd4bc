"""Generic currency exchange-rate API client."""
import logging
import ssl

import aiohttp
import certifi

from ..config import ExchangeRateConfig
from ..errors import OracleUnavailable

logger = logging.getLogger(__name__)


class ExchangeRateApi:
    """Fetch a rate table (``{"rates": {"USD": 1.1, ...}}``) for one base currency."""

    def __init__(self, config: ExchangeRateConfig) -> None:
        self.url = config.url
        self.timeout = config.timeout

    async def fetch_rate(self, quote: str) -> float:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    self.url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise OracleUnavailable(
                            f"Exchange-rate API returned HTTP {response.status}"
                        )
                    data = await response.json()
        except OracleUnavailable:
            raise
        except Exception as e:
            raise OracleUnavailable(f"Error fetching exchange rates: {e}") from e

        rate = (data.get("rates") or {}).get(quote)
        if not rate:
            raise OracleUnavailable(f"Exchange-rate API has no {quote} rate")

        logger.debug("Exchange rate %s: %s", quote, rate)
        return float(rate)
