"""
Amount Handling Module

Parses caller-supplied amounts into Decimal and formats them for display.
NEVER uses float for stored monetary values.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from .errors import InvalidInput


Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """
    Convert a caller-supplied amount to Decimal.
    
    Floats go through ``str`` so 0.1 stays 0.1. Booleans, NaN and infinities
    are rejected.
    
    Raises:
        InvalidInput: If the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"Amount must be a number, got {value!r}")
    
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInput(f"Amount must be a number, got {value!r}") from None
    else:
        raise InvalidInput(f"Amount must be a number, got {value!r}")
    
    if not amount.is_finite():
        raise InvalidInput(f"Amount must be finite, got {value!r}")
    
    return amount


def parse_positive_amount(value: Amount) -> Decimal:
    """Convert an amount and require it to be strictly positive"""
    amount = to_decimal(value)
    if amount <= 0:
        raise InvalidInput("Amount must be greater than zero")
    return amount


def amount_to_string(amount: Decimal) -> str:
    """Plain decimal notation without exponent, e.g. 5E+3 -> '5000'"""
    return format(amount, "f")


def _group_indian(digits: str) -> str:
    """Group an integer digit string as 12,34,567"""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Amount, symbol: str = "₹") -> str:
    """
    Format an amount for display with Indian digit grouping.
    
    >>> format_currency(Decimal("123456.5"))
    '₹1,23,456.5'
    """
    value = to_decimal(amount)
    sign = "-" if value < 0 else ""
    whole, _, fraction = amount_to_string(abs(value)).partition(".")
    text = _group_indian(whole)
    if fraction:
        text = f"{text}.{fraction}"
    return f"{sign}{symbol}{text}"
