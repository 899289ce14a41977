"""Fixed-point micro-unit arithmetic for money and quantity values.

Every monetary and quantity value is held as one signed integer of micro-units
(one millionth of a unit). Parsing, formatting and the overflow-safe multiply
mirror the integer rules used by broker statements so results are exact and
replay-stable across runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .errors import FixedPointError

MICROS_FACTOR = 1_000_000
MICROS_DIGITS = 6

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_FIXED_TEXT_PATTERN = re.compile(r"(-)?([0-9]*)(?:\.([0-9]*))?")


def _fixed_trunc_div(numerator: int, denominator: int) -> int:
    """Divide two integers truncating toward zero.

    Args:
        numerator: Dividend.
        denominator: Non-zero divisor.

    Returns:
        int: Quotient truncated toward zero.

    Raises:
        ZeroDivisionError: Raised when denominator is zero.
    """

    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


@dataclass(frozen=True, order=True)
class FixedDecimal:
    """Signed decimal value stored as total micro-units.

    Attributes:
        micros: Total value scaled by one million.
    """

    micros: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.micros, bool) or not isinstance(self.micros, int):
            raise FixedPointError(f"micros must be an int, got {type(self.micros).__name__}")

    @property
    def units(self) -> int:
        """Whole-unit part, truncated toward zero."""
        return _fixed_trunc_div(self.micros, MICROS_FACTOR)

    @property
    def remainder(self) -> int:
        """Fractional micro part carrying the same sign as the value."""
        return self.micros - self.units * MICROS_FACTOR

    def is_zero(self) -> bool:
        return self.micros == 0

    def __add__(self, other: FixedDecimal) -> FixedDecimal:
        if not isinstance(other, FixedDecimal):
            return NotImplemented
        return FixedDecimal(self.micros + other.micros)

    def __sub__(self, other: FixedDecimal) -> FixedDecimal:
        if not isinstance(other, FixedDecimal):
            return NotImplemented
        return FixedDecimal(self.micros - other.micros)

    def __neg__(self) -> FixedDecimal:
        return FixedDecimal(-self.micros)

    def __abs__(self) -> FixedDecimal:
        return FixedDecimal(abs(self.micros))

    def __str__(self) -> str:
        return fixed_to_string(self)


FIXED_ZERO = FixedDecimal(0)


@dataclass(frozen=True)
class Money:
    """Monetary amount tagged with an ISO currency code.

    Attributes:
        currency_code: ISO-4217 currency code.
        amount: Fixed-point amount.
    """

    currency_code: str
    amount: FixedDecimal


def fixed_from_units_micros(units: int, micros: int) -> FixedDecimal:
    """Build a fixed-point value from a (units, micros) pair.

    Args:
        units: Whole-unit part.
        micros: Fractional part in micro-units, same sign as units or zero.

    Returns:
        FixedDecimal: Combined fixed-point value.

    Raises:
        FixedPointError: Raised when micros is out of range or signs disagree.
    """

    if micros <= -MICROS_FACTOR or micros >= MICROS_FACTOR:
        raise FixedPointError(f"micros out of range: {micros}")
    if (units > 0 and micros < 0) or (units < 0 and micros > 0):
        raise FixedPointError(f"sign mismatch: units={units} micros={micros}")

    total_micros = units * MICROS_FACTOR + micros
    if total_micros < _INT64_MIN or total_micros > _INT64_MAX:
        raise FixedPointError(f"value out of range: units={units}")
    return FixedDecimal(total_micros)


def fixed_parse(text: str) -> FixedDecimal:
    """Parse decimal text such as `-123.456789` into a fixed-point value.

    Fractions shorter than six digits are padded with zeros; longer fractions
    are truncated to six digits. Empty text parses as zero.

    Args:
        text: Decimal text.

    Returns:
        FixedDecimal: Parsed fixed-point value.

    Raises:
        FixedPointError: Raised when text is not a plain decimal number.
    """

    if not isinstance(text, str):
        raise FixedPointError(f"decimal text must be a string, got {type(text).__name__}")

    normalized_text = text.strip()
    if not normalized_text:
        return FIXED_ZERO

    match = _FIXED_TEXT_PATTERN.fullmatch(normalized_text)
    if match is None:
        raise FixedPointError(f"invalid decimal value {text!r}")

    sign_text, units_text, fraction_text = match.groups()
    fraction_text = fraction_text or ""
    if not units_text and not fraction_text:
        raise FixedPointError(f"invalid decimal value {text!r}")

    units = int(units_text) if units_text else 0
    micros = int(fraction_text[:MICROS_DIGITS].ljust(MICROS_DIGITS, "0")) if fraction_text else 0
    if sign_text:
        units = -units
        micros = -micros

    try:
        return fixed_from_units_micros(units, micros)
    except FixedPointError as error:
        raise FixedPointError(f"invalid decimal value {text!r}: {error}") from error


def fixed_to_string(value: FixedDecimal) -> str:
    """Format a fixed-point value as plain decimal text.

    Trailing fractional zeros are trimmed and zero never carries a sign.

    Args:
        value: Fixed-point value.

    Returns:
        str: Decimal text such as `120`, `-0.5` or `3.141593`.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    sign = "-" if value.micros < 0 else ""
    units, micros = divmod(abs(value.micros), MICROS_FACTOR)
    if micros == 0:
        return f"{sign}{units}"
    fraction_text = f"{micros:06d}".rstrip("0")
    return f"{sign}{units}.{fraction_text}"


def fixed_format(value: FixedDecimal, precision: int) -> str:
    """Format a value rounded to `precision` decimals with thousands separators.

    Examples with precision 2: `1234567.891` -> `1,234,567.89`, `-42.5` -> `-42.50`.

    Args:
        value: Fixed-point value.
        precision: Decimal places to keep, between 0 and 6.

    Returns:
        str: Rounded display text.

    Raises:
        ValueError: Raised when precision is outside the supported range.
    """

    if precision < 0 or precision > MICROS_DIGITS:
        raise ValueError(f"precision must be between 0 and {MICROS_DIGITS}, got {precision}")

    negative = value.micros < 0
    divisor = 10 ** (MICROS_DIGITS - precision)
    rounded = (abs(value.micros) + divisor // 2) // divisor
    integer_part, fraction_part = divmod(rounded, 10**precision)

    sign = "-" if negative else ""
    if precision == 0:
        return f"{sign}{integer_part:,}"
    return f"{sign}{integer_part:,}.{fraction_part:0{precision}d}"


def fixed_format_usd(value: FixedDecimal) -> str:
    """Format a value as dollars rounded to cents, e.g. `$1,234.56` or `-$789.01`."""

    formatted = fixed_format(value, 2)
    if formatted.startswith("-"):
        return "-$" + formatted[1:]
    return "$" + formatted


def fixed_format_usd_text(text: str) -> str:
    """Format raw decimal text as dollars.

    Args:
        text: Raw decimal text, possibly empty.

    Returns:
        str: Dollar display text, empty for empty input, or the input unchanged when it does not parse.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if not text:
        return ""
    try:
        value = fixed_parse(text)
    except FixedPointError:
        return text
    return fixed_format_usd(value)


def fixed_multiply(left: FixedDecimal, right: FixedDecimal) -> FixedDecimal:
    """Multiply two micro-precision values without widening intermediates.

    The left operand is split into whole units and a fractional remainder
    first: `left * right = left.units * right + left.remainder * right / 1e6`.
    The fractional term truncates toward zero.

    Args:
        left: Value that is decomposed, typically a quantity.
        right: Micro-precision multiplier, typically a price or rate.

    Returns:
        FixedDecimal: Product at micro precision.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    whole_term = left.units * right.micros
    fraction_term = _fixed_trunc_div(left.remainder * right.micros, MICROS_FACTOR)
    return FixedDecimal(whole_term + fraction_term)


def fixed_divide_rounded(numerator: FixedDecimal, denominator: FixedDecimal) -> FixedDecimal | None:
    """Divide two values at micro precision, rounding half away from zero.

    Args:
        numerator: Dividend.
        denominator: Divisor.

    Returns:
        FixedDecimal | None: Rounded quotient, or None when the divisor is zero.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if denominator.micros == 0:
        return None

    scaled_numerator = numerator.micros * MICROS_FACTOR
    quotient, remainder = divmod(abs(scaled_numerator), abs(denominator.micros))
    if remainder * 2 >= abs(denominator.micros):
        quotient += 1
    if (scaled_numerator < 0) != (denominator.micros < 0):
        quotient = -quotient
    return FixedDecimal(quotient)


def fixed_divide_int(value: FixedDecimal, divisor: int) -> FixedDecimal:
    """Divide a value by an integer, truncating toward zero.

    Raises:
        FixedPointError: Raised when divisor is zero.
    """

    if divisor == 0:
        raise FixedPointError("divisor must not be zero")
    return FixedDecimal(_fixed_trunc_div(value.micros, divisor))


def fixed_sum(values: Iterable[FixedDecimal]) -> FixedDecimal:
    return FixedDecimal(sum((value.micros for value in values), 0))


def fixed_from_decimal(value: Decimal) -> FixedDecimal:
    """Convert a `Decimal` into a fixed-point value, truncating past six decimals.

    Raises:
        FixedPointError: Raised when value is not finite.
    """

    if not value.is_finite():
        raise FixedPointError(f"decimal value must be finite, got {value}")
    return fixed_parse(format(value, "f"))


def fixed_to_decimal(value: FixedDecimal) -> Decimal:
    return Decimal(fixed_to_string(value))


def money_parse(currency_code: str, text: str) -> Money:
    """Build a `Money` value from a currency code and decimal text.

    Raises:
        FixedPointError: Raised when text does not parse.
        ValueError: Raised when currency code is blank.
    """

    normalized_currency = currency_code.strip().upper()
    if not normalized_currency:
        raise ValueError("currency_code must not be blank")
    return Money(currency_code=normalized_currency, amount=fixed_parse(text))


__all__ = [
    "FIXED_ZERO",
    "MICROS_FACTOR",
    "FixedDecimal",
    "Money",
    "fixed_divide_int",
    "fixed_divide_rounded",
    "fixed_format",
    "fixed_format_usd",
    "fixed_format_usd_text",
    "fixed_from_decimal",
    "fixed_from_units_micros",
    "fixed_multiply",
    "fixed_parse",
    "fixed_sum",
    "fixed_to_decimal",
    "fixed_to_string",
    "money_parse",
]
