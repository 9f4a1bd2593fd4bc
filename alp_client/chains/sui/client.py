"""SUI RPC client with fallback support."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import NetworkConfig
from ...errors import RemoteReadFailed

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


class SuiClient:
    """SUI blockchain RPC client with automatic endpoint fallback."""

    def __init__(self, config: NetworkConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RuntimeError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result", {})
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RemoteReadFailed(f"All RPC endpoints failed. Last error: {last_error}")

    async def _paginate(self, method: str, params: list[Any]) -> list[dict[str, Any]]:
        """Collect every page of a cursor-paginated suix_* query."""
        items: list[dict[str, Any]] = []
        cursor = None

        while True:
            result = await self.rpc_call(method, [*params, cursor, PAGE_SIZE])
            items.extend(result.get("data", []))

            cursor = result.get("nextCursor")
            if not result.get("hasNextPage", False) or not cursor:
                break

        return items

    async def get_object(self, object_id: str) -> dict[str, Any]:
        """Get an object with its type and content."""
        result = await self.rpc_call(
            "sui_getObject",
            [object_id, {"showType": True, "showContent": True, "showOwner": True}],
        )
        if "error" in result and "data" not in result:
            raise RemoteReadFailed(f"Object {object_id}: {result['error']}")
        return result

    async def get_owned_objects(
        self, owner: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]:
        """Get all objects owned by the address, optionally filtered by struct type."""
        query = {
            "filter": {"StructType": struct_type} if struct_type else None,
            "options": {"showType": True, "showContent": True, "showOwner": True},
        }
        return await self._paginate("suix_getOwnedObjects", [owner, query])

    async def get_coins(self, owner: str, coin_type: str) -> list[dict[str, Any]]:
        """Get all coin objects of one type owned by the address."""
        return await self._paginate("suix_getCoins", [owner, coin_type])
