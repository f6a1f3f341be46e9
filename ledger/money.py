"""
Money helpers — conversion between Decimal amounts and integer cents.

The API speaks in decimal currency units (e.g. 1100.50), but balances and
amounts are persisted as integer cents (110050). Integer storage keeps every
sum exact: 0.1 + 0.2 is 0.30000000000000004 in IEEE 754, while 10 + 20 is
always 30. Conversion happens only at the storage boundary and in the
response serializers.
"""

from decimal import Decimal

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """
    Convert a decimal amount to integer cents.

    The caller is expected to have validated the scale already; a value
    with sub-cent digits raises ValueError rather than being rounded.
    """
    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValueError(f"{amount} has more than 2 decimal places")
    return int(cents)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def mask_account_number(account_number: str | None) -> str | None:
    """Show only the last 4 digits of an account number (****1001)."""
    if not account_number:
        return account_number
    return "****" + account_number[-4:]
