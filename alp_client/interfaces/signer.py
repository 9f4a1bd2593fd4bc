"""Signer protocol: sign-and-submit abstraction."""
from typing import Any, Protocol

from ..chains.sui.transactions import TransactionPlan


class Signer(Protocol):
    """Signs a transaction plan and submits it to the ledger.

    Raises ``SignerRejected`` when signing is declined and
    ``RemoteWriteFailed`` when the ledger rejects the transaction.
    """

    async def sign_and_submit(self, plan: TransactionPlan) -> dict[str, Any]: ...
