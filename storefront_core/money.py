"""
money.py — Integer Minor-Unit Arithmetic and Tax Split

All amounts are integer counts of minor currency units (öre, cents). Floats are
rejected, never rounded. Tax is always derived from a tax-inclusive total with
compute_tax_portion(); it is never re-derived from a tax-exclusive base.
"""

from .errors import AmountError

# Largest integer every consumer (JSON clients included) represents exactly: 2**53 - 1
MAX_SAFE_INTEGER = 9007199254740991

BASIS_POINTS_DIVISOR = 10000


def ensure_amount(value, name: str = "amount") -> int:
    """
    Validates a money value in minor units.

    Args:
        value: The value to check.
        name (str): Field name used in the error context.

    Returns:
        int: The value itself.

    Raises:
        AmountError: If the value is not an int (bool excluded), is negative,
            or exceeds MAX_SAFE_INTEGER.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise AmountError(f"{name} must be an integer amount in minor units", field=name, value=value)
    if value < 0:
        raise AmountError(f"{name} must not be negative", field=name, value=value)
    if value > MAX_SAFE_INTEGER:
        raise AmountError(f"{name} exceeds the safe integer range", field=name, value=value)
    return value


def compute_tax_portion(total_incl_tax: int, tax_rate_bp: int) -> int:
    """
    Returns the tax contained in a tax-inclusive total.

    Uses round(total * rate / (10000 + rate)) with ties rounded half up, computed
    entirely in integers so no float ever touches the amount.

    Args:
        total_incl_tax (int): Amount including tax, in minor units.
        tax_rate_bp (int): Tax rate in basis points (2500 = 25%).

    Returns:
        int: The tax portion, 0 <= result <= total_incl_tax.

    Raises:
        AmountError: If either argument is not a safe non-negative integer.
    """
    ensure_amount(total_incl_tax, "total_incl_tax")
    ensure_amount(tax_rate_bp, "tax_rate_bp")

    numerator = total_incl_tax * tax_rate_bp
    divisor = BASIS_POINTS_DIVISOR + tax_rate_bp
    # half up: floor((2n + d) / 2d)
    return (2 * numerator + divisor) // (2 * divisor)


def compute_net_amount(total_incl_tax: int, tax_rate_bp: int) -> int:
    """Returns the tax-exclusive basis of a tax-inclusive total."""
    return total_incl_tax - compute_tax_portion(total_incl_tax, tax_rate_bp)


def compute_line_total(unit_price: int, quantity: int) -> int:
    """
    Returns unit_price * quantity.

    Raises:
        AmountError: If an operand is invalid or the product leaves the safe integer range.
    """
    ensure_amount(unit_price, "unit_price")
    ensure_amount(quantity, "quantity")
    return ensure_amount(unit_price * quantity, "line_total")


def sum_amounts(amounts) -> int:
    total = 0
    for amount in amounts:
        total += ensure_amount(amount)
    return ensure_amount(total, "sum")
