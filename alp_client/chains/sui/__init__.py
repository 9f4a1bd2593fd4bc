"""Sui ledger capabilities."""
from .client import SuiClient
from .fixture import FixtureLedger
from .signer import SuiCliSigner
from .transactions import TransactionPlan

__all__ = ["SuiClient", "FixtureLedger", "SuiCliSigner", "TransactionPlan"]
