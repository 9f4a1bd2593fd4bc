"""Fixed-point amount codec: decimal strings <-> integer base units."""
from __future__ import annotations

from .errors import InvalidAmount

DEFAULT_DECIMALS = 9


def parse_amount(text: str, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a human decimal string into integer base units.

    Either ``.`` or ``,`` is accepted as the decimal separator. A missing
    integer part counts as zero. Extra fractional digits are truncated, never
    rounded.

    Examples:
        "10.5"  -> 10_500_000_000
        "10,5"  -> 10_500_000_000
        ".25"   -> 250_000_000
    """
    if decimals < 0:
        raise InvalidAmount(f"Decimals must be nonnegative, got {decimals}")

    normalized = text.strip().replace(",", ".")
    if normalized.count(".") > 1:
        raise InvalidAmount(f"Invalid amount: {text!r}")

    whole, _, fractional = normalized.partition(".")
    if not whole and not fractional:
        raise InvalidAmount(f"Invalid amount: {text!r}")
    whole = whole or "0"
    if not whole.isdecimal() or (fractional and not fractional.isdecimal()):
        raise InvalidAmount(f"Invalid amount: {text!r}")

    fractional = fractional.ljust(decimals, "0")[:decimals]
    return int(whole) * 10**decimals + int(fractional or "0")


def format_amount(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render integer base units as a decimal string with full precision."""
    if amount < 0:
        raise InvalidAmount(f"Amount must be nonnegative, got {amount}")

    whole, fractional = divmod(amount, 10**decimals)
    if decimals == 0:
        return str(whole)
    return f"{whole}.{str(fractional).zfill(decimals)}"
