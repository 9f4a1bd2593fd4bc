"""Ledger read protocol: blockchain RPC abstraction."""
from typing import Any, Protocol


class LedgerReader(Protocol):
    """Read-only view of the remote ledger.

    Implementations raise ``RemoteReadFailed`` when the ledger is unreachable.
    """

    async def get_object(self, object_id: str) -> dict[str, Any]: ...

    async def get_owned_objects(
        self, owner: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def get_coins(self, owner: str, coin_type: str) -> list[dict[str, Any]]: ...
