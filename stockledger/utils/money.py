"""Minor-unit money helpers. Amounts stay integers (cents) end to end."""
from decimal import Decimal, ROUND_HALF_UP


def to_minor_units(value) -> int:
    """Round a Decimal amount of minor units to a whole integer (presentation only)."""
    if value is None:
        return 0
    return int(Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def round_rate(value, places: int = 4) -> str:
    """Render a fractional unit cost with a fixed number of decimals."""
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part, whole) -> Decimal:
    """part / whole * 100 rounded to 2 decimals; 0 when whole is 0."""
    whole = Decimal(whole)
    if whole == 0:
        return Decimal('0.00')
    return (Decimal(part) / whole * 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
