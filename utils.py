"""
Utility functions for Bundle Builder Discounts
Includes grouping and decimal formatting helpers
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Dict, Hashable, Iterable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

CENTS = Decimal("0.01")


def group_by(items: Iterable[T], key: Callable[[T], Hashable]) -> Dict[Hashable, List[T]]:
    """
    Group items by the key returned for each one

    Args:
        items: Items to group
        key: Function returning the grouping key of an item

    Returns:
        Dict of key -> items, keys in order of first occurrence
    """
    groups: Dict[Hashable, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def to_decimal(value) -> Decimal:
    """
    Convert a JSON number or numeric string to Decimal

    Raises:
        ValueError: if the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not number.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def round_money(amount: Decimal) -> Decimal:
    """Round to two decimal places, halves away from zero"""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """
    Format amount with exactly two decimals

    Args:
        amount: Monetary amount

    Returns:
        Formatted string (e.g., '20.00', '-5.50')
    """
    return f"{round_money(amount):f}"


def format_number(number: Decimal) -> str:
    """
    Format a number without trailing zeros or exponent

    Returns:
        Plain string (e.g., '10', '17.5')
    """
    if number == number.to_integral_value():
        return str(int(number))
    return f"{number.normalize():f}"


def format_currency(amount: Decimal, currency_symbol: str = "$") -> str:
    """Format amount as currency (e.g., '$25.00')"""
    return f"{currency_symbol}{format_money(amount)}"
