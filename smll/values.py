"""Runtime values: `num` is an IEEE double, `bool` a Python bool."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Union

from .ast import TYPE_NAMES, TypeKind

Value = Union[bool, float]

# Magnitudes outside [_EXPONENT_BELOW, _EXPONENT_ABOVE) print in exponent form.
_EXPONENT_ABOVE = 1e21
_EXPONENT_BELOW = 1e-6


def type_of(value: Value) -> TypeKind:
    # bool is an int subclass, so it has to be checked first.
    if isinstance(value, bool):
        return TypeKind.BOOLEAN
    return TypeKind.NUMBER


def type_name(value: Value) -> str:
    return TYPE_NAMES[type_of(value)]


def number_from_literal(lexeme: str) -> float:
    # Literals too long for a double become infinity rather than failing.
    return float(lexeme)


def boolean_from_literal(lexeme: str) -> bool:
    return lexeme == "true"


def format_value(value: Value) -> str:
    """Render a value the way `print` shows it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    text = repr(value)
    if "e" in text:
        if _EXPONENT_BELOW <= abs(value) < _EXPONENT_ABOVE:
            # shortest digits, written out positionally
            return format(Decimal(text), "f")
        mantissa, _, exponent = text.partition("e")
        return f"{mantissa}e{int(exponent):+d}"
    if value.is_integer():
        return str(int(value))
    return text


def power(base: float, exponent: float) -> float:
    try:
        result = base ** exponent
    except OverflowError:
        odd_exponent = exponent.is_integer() and exponent % 2 == 1
        return -math.inf if base < 0 and odd_exponent else math.inf
    except ZeroDivisionError:
        # 0 raised to a negative power
        return math.inf
    if isinstance(result, complex):
        return math.nan
    return result


def floor_divide(dividend: float, divisor: float) -> float:
    """`floor(dividend / divisor)`, keeping infinities and NaN as they are."""
    quotient = dividend / divisor
    if not math.isfinite(quotient):
        return quotient
    return float(math.floor(quotient))


def remainder(dividend: float, divisor: float) -> float:
    """Remainder carrying the sign of the dividend."""
    return math.fmod(dividend, divisor)
