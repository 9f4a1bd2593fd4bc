"""Price source protocol: one tier of the oracle fallback chain."""
from typing import Protocol

from ..models import PriceData


class PriceSource(Protocol):
    """A single price source. Raises ``OracleUnavailable`` when it has no price."""

    @property
    def name(self) -> str: ...

    async def fetch(self) -> PriceData: ...
