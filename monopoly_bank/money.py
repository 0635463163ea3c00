"""
Amount handling for the ledger.

All cash and property values are Decimal quantised to cents with
ROUND_HALF_UP. NEVER uses float for stored values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

from .errors import ValidationError

getcontext().prec = 28

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, float, str]


def to_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """
    Convert a user-supplied value to a cent-precision Decimal.

    Raises:
        ValidationError: If the value is missing, not numeric, or not finite
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field_name} is required")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")

    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")

    # quantize raises InvalidOperation past the context precision
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field_name} is too large")


def to_positive_amount(value: AmountLike, field_name: str = "amount") -> Decimal:
    """Like to_amount, but the result must be greater than zero"""
    amount = to_amount(value, field_name)
    if amount <= ZERO:
        raise ValidationError(f"{field_name} must be greater than 0")
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display, e.g. $1,500.00 or -$300.00"""
    if amount < ZERO:
        return f"-${abs(amount):,.2f}"
    return f"${amount:,.2f}"
