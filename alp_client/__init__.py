"""Client-side accounting and transaction layer for the ALP stablecoin."""

__version__ = "0.1.0"
