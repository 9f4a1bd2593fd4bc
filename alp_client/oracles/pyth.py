"""Pyth Network price oracle service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import OracleUnavailable
from ..models import PriceData

logger = logging.getLogger(__name__)


def _normalize_feed_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


def parse_price_item(item: dict) -> PriceData:
    """Convert one Hermes ``parsed`` entry into real units.

    Hermes publishes ``(mantissa, expo)`` pairs: price = mantissa * 10^expo.
    """
    price_data = item.get("price", {})
    expo = int(price_data.get("expo", 0))
    scale = 10.0**expo
    return PriceData(
        price=int(price_data.get("price", 0)) * scale,
        confidence=int(price_data.get("conf", 0)) * scale,
        publish_time=float(price_data.get("publish_time", 0)),
        expo=expo,
    )


class PythOracle:
    """Fetch prices from Pyth Network oracle."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout

    async def fetch_feeds(self, feed_ids: list[str]) -> dict[str, PriceData]:
        """Fetch the latest price for each feed id.

        Returned keys are the feed ids exactly as passed in. Feeds missing from
        the response are absent from the result.
        """
        if not feed_ids:
            return {}

        wanted = {_normalize_feed_id(fid): fid for fid in feed_ids}
        query_params = "&".join([f"ids[]={fid}" for fid in wanted])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        prices: dict[str, PriceData] = {}
        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise OracleUnavailable(
                            f"Pyth Hermes returned HTTP {response.status}"
                        )
                    data = await response.json()
        except OracleUnavailable:
            raise
        except Exception as e:
            raise OracleUnavailable(f"Error fetching prices from Pyth: {e}") from e

        for item in data.get("parsed", []):
            requested = wanted.get(_normalize_feed_id(item.get("id", "")))
            if requested is None:
                continue
            prices[requested] = parse_price_item(item)
            logger.debug("Pyth %s: %.6f", requested, prices[requested].price)

        return prices

    async def fetch_feed(self, feed_id: str) -> PriceData:
        """Fetch a single feed, raising ``OracleUnavailable`` if it is missing."""
        prices = await self.fetch_feeds([feed_id])
        if feed_id not in prices:
            raise OracleUnavailable(f"Pyth returned no price for feed {feed_id}")
        return prices[feed_id]
