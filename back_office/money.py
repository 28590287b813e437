"""
Exact decimal arithmetic for money, quantities and rates.

Floats never enter a financial calculation. Every value is a
Decimal, and every stored value is quantized half-up to the
precision of its domain:

    money      2 places
    quantity   4 places
    unit cost  4 places
    rate       4 places
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Iterable

from back_office.exceptions import InvalidInputError

MONEY_PLACES = 2
QUANTITY_PLACES = 4
UNIT_COST_PLACES = 4
RATE_PLACES = 4

ZERO = Decimal("0")

# Working precision for intermediate results
PRECISION = 28


def to_decimal(value) -> Decimal:
    """
    Convert an incoming value to Decimal.

    Strings, ints and Decimals are accepted. Floats are refused
    because they already carry a binary rounding error.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or isinstance(value, float):
        raise InvalidInputError(f"Refusing non-exact numeric value: {value!r}")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInputError(f"Not a decimal number: {value!r}")
    else:
        raise InvalidInputError(f"Not a decimal number: {value!r}")

    if not result.is_finite():
        raise InvalidInputError(f"Not a finite number: {value!r}")
    return result


def quantize(value, places: int) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def money(value) -> Decimal:
    return quantize(value, MONEY_PLACES)


def quantity(value) -> Decimal:
    return quantize(value, QUANTITY_PLACES)


def unit_cost(value) -> Decimal:
    return quantize(value, UNIT_COST_PLACES)


def rate(value) -> Decimal:
    return quantize(value, RATE_PLACES)


def add(a, b, places: int = MONEY_PLACES) -> Decimal:
    return quantize(to_decimal(a) + to_decimal(b), places)


def subtract(a, b, places: int = MONEY_PLACES) -> Decimal:
    return quantize(to_decimal(a) - to_decimal(b), places)


def multiply(a, b, places: int = MONEY_PLACES) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        product = to_decimal(a) * to_decimal(b)
    return quantize(product, places)


def divide(a, b, places: int = MONEY_PLACES) -> Decimal:
    """Divide a by b. A zero divisor yields zero instead of raising."""
    divisor = to_decimal(b)
    if divisor.is_zero():
        return quantize(ZERO, places)
    with localcontext() as ctx:
        ctx.prec = PRECISION
        result = to_decimal(a) / divisor
    return quantize(result, places)


def percentage(amount, pct) -> Decimal:
    """Return pct percent of amount, e.g. VAT at 20 on 150.00 is 30.00."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        result = to_decimal(amount) * to_decimal(pct) / Decimal(100)
    return money(result)


def total(values: Iterable, places: int = MONEY_PLACES) -> Decimal:
    result = ZERO
    for value in values:
        result += to_decimal(value)
    return quantize(result, places)


def is_positive(value) -> bool:
    return to_decimal(value) > 0


def is_zero(value) -> bool:
    return to_decimal(value).is_zero()
