"""Exact decimal helpers shared by the parameter model and the engine."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from pllcompose.errors import RangeError


def to_decimal(value) -> Decimal:
    """Coerce a table or caller value to an exact Decimal.

    ints, strings and Decimals convert exactly.  Floats go through their
    shortest repr so ``0.1`` becomes ``Decimal("0.1")`` rather than the
    binary approximation.  NaN and infinities are rejected.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not numeric parameter values")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"not a decimal number: {value!r}") from None
    else:
        raise TypeError(f"cannot use {type(value).__name__} as a parameter value")

    if not result.is_finite():
        raise RangeError(f"non-finite value {value!r}")
    return result


def is_integral(value: Decimal) -> bool:
    return value == value.to_integral_value()


def is_power_of_two(value: Decimal) -> bool:
    """True for 1, 2, 4, 8, ... (2**0 counts)."""
    if value < 1 or not is_integral(value):
        return False
    n = int(value)
    return n & (n - 1) == 0


def fmt(value: Decimal | None) -> str:
    """Render a decimal the way it was written (``4E+9``, ``0.00005``)."""
    return "None" if value is None else str(value)
