"""
Money helpers.

Responsibility:
    Centralizes money precision and rounding so that validation, services
    and selectors all use identical definitions.

Invariants enforced:
    - No floats for money.  round_money() is the only sanctioned rounding
      function: two minor digits, half-up.

Failure modes:
    - ValueError on non-numeric string passed to money_from_str().
    - TypeError when a float or bool is passed to to_money().
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)

ZERO = Decimal("0.00")


def round_money(amount: Decimal) -> Decimal:
    """
    Round a monetary amount to two decimal places, half-up.

    Preconditions: amount is a Decimal.
    Postconditions: Returns a Decimal with exactly two decimal places.
    """
    return amount.quantize(_MONEY_QUANTUM, rounding=DEFAULT_ROUNDING)


def money_from_str(value: str) -> Decimal:
    """
    Create a Money value from string.

    Raises:
        ValueError: If the string is not a valid number.
    """
    try:
        result = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")
    return result


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal to a rounded money Decimal.

    Floats are rejected outright; a float price has already lost precision.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Money must not be {type(value).__name__}")
    if isinstance(value, Decimal):
        return round_money(value)
    if isinstance(value, int):
        return round_money(Decimal(value))
    return round_money(money_from_str(value))
