"""Capability protocols for the ALP client."""
from .chain import LedgerReader
from .price_oracle import PriceSource
from .signer import Signer

__all__ = ["LedgerReader", "PriceSource", "Signer"]
