"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number to a two-decimal Decimal.

    Floats are converted through their string form so that values coming back
    from SQL aggregates (e.g. 1000.0) do not carry binary noise.

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Could not parse amount '{value}'") from None
    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number (got {value})")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount out of range (got {value})") from None


def parse_amount(amount_str: str, blank_as_zero: bool = False) -> Decimal:
    """Parse an amount string into a Decimal with two decimals.

    Handles various formats:
    - "123.45"
    - "$123.45" or "MXN 123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string
        blank_as_zero: Return zero for empty strings instead of failing
            (used for optional budget cells)

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        if blank_as_zero:
            return Decimal("0.00")
        raise ValueError("Empty amount string")

    amount_str = str(amount_str).strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"(?i)mxn|[$€]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'") from None
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if is_negative:
        amount = -amount
    return to_money(amount)
