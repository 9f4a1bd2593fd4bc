"""Fixed-fixture ledger: serves reads from a YAML file instead of RPC."""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

from ...errors import RemoteReadFailed

logger = logging.getLogger(__name__)


class FixtureLedger:
    """Read-only ledger backed by a YAML fixture.

    Layout::

        objects:            # object id -> sui_getObject result
          "0x1": {data: {objectId: "0x1", type: ..., content: {fields: {...}}}}
        owned:              # owner -> list of objects (same shape as above)
          "0xabc": [...]
        coins:              # owner -> coin type -> list of coins
          "0xabc":
            "0x2::sui::SUI": [{coinObjectId: "0xc1", balance: "1000"}]
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self._objects: dict[str, Any] = data.get("objects", {}) or {}
        self._owned: dict[str, list[Any]] = data.get("owned", {}) or {}
        self._coins: dict[str, dict[str, list[Any]]] = data.get("coins", {}) or {}

    @classmethod
    def from_file(cls, path: str | Path) -> FixtureLedger:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Fixture file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded ledger fixture from %s", path)
        return cls(data)

    async def get_object(self, object_id: str) -> dict[str, Any]:
        if object_id not in self._objects:
            raise RemoteReadFailed(f"Object {object_id} not in fixture")
        return copy.deepcopy(self._objects[object_id])

    async def get_owned_objects(
        self, owner: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]:
        objects = self._owned.get(owner, [])
        if struct_type:
            objects = [
                o for o in objects if o.get("data", {}).get("type") == struct_type
            ]
        return copy.deepcopy(objects)

    async def get_coins(self, owner: str, coin_type: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._coins.get(owner, {}).get(coin_type, []))
