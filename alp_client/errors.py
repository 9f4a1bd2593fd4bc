"""Exception taxonomy for the ALP client."""


class AlpClientError(Exception):
    """Base class for all client errors."""


class InvalidAmount(AlpClientError, ValueError):
    """A decimal amount string could not be converted to base units."""


class PrecheckFailed(AlpClientError):
    """A mutating operation was rejected locally before reaching the network."""


class RemoteReadFailed(AlpClientError):
    """The ledger read capability failed."""


class OracleUnavailable(AlpClientError):
    """A single price source could not produce a price."""


class SignerRejected(AlpClientError):
    """The signer declined or could not sign the transaction."""


class RemoteWriteFailed(AlpClientError):
    """The ledger rejected or reverted a submitted transaction."""
