"""
Amount Handling Module

Converts caller-supplied amounts to Decimal and rounds them to the configured
precision. NEVER keeps float values on an account.

``amount_precision`` is always read from the global configuration, so every
amount, balance and interest delta carries the same number of places.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext, localcontext
from typing import Optional, Union

from .config import get_config

AmountLike = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def amount_precision() -> int:
    """Decimal places kept on every amount"""
    return get_config().amount_precision


def quantize(value: Decimal, precision: Optional[int] = None) -> Decimal:
    """
    Round a finite Decimal to ``precision`` places (configured default).

    Rounds in a context wide enough for the value, so large finite values never
    raise ``InvalidOperation``.
    """
    if precision is None:
        precision = amount_precision()
    with localcontext() as ctx:
        ctx.prec = max(getcontext().prec, value.adjusted() + precision + 2)
        return value.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)


def parse_decimal(value: AmountLike) -> Decimal:
    """
    Parse an amount into an unrounded, finite Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal('0.1') rather than its
    binary expansion.

    Raises:
        ValueError: if the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a monetary amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, TypeError):
            raise ValueError(f"Not a monetary amount: {value!r}") from None

    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")

    return amount


def to_decimal(value: AmountLike) -> Decimal:
    """
    Parse an amount into a Decimal quantized to the configured precision.

    Balances are summed in the default decimal context, so amounts needing more
    significant digits than it keeps are rejected instead of silently rounded.

    Raises:
        ValueError: if the value is not a finite number or is out of range
    """
    max_digits = getcontext().prec
    amount = parse_decimal(value)
    if amount.adjusted() >= max_digits:
        raise ValueError(f"Amount out of range: {value!r}")
    amount = quantize(amount)
    if len(amount.as_tuple().digits) > max_digits:
        raise ValueError(f"Amount out of range: {value!r}")
    return amount


def format_amount(value: Decimal) -> str:
    """Format for display"""
    return f"{value:,.{amount_precision()}f}"
