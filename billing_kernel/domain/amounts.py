"""
Amounts -- Decimal coercion at the engine boundary.

Responsibility:
    Turns the numeric values a form hands over (already parsed from text
    by the caller) into ``Decimal`` and rejects the ones no engine can
    work with. Every engine calls these helpers instead of ``Decimal()``
    directly so that the error taxonomy is uniform.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - Non-finite values (NaN, Infinity) never reach an engine.
    - Magnitudes stay below MAX_AMOUNT, so no engine step overflows or
      loses cents to the context precision.

Failure modes:
    - NonFiniteAmountError on NaN, Infinity, booleans or unparseable text.
    - AmountOutOfRangeError on a magnitude of MAX_AMOUNT or more.
    - NegativeAmountError from ``to_non_negative_amount``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from billing_kernel.exceptions import (
    AmountOutOfRangeError,
    InvalidInputError,
    NegativeAmountError,
    NonFiniteAmountError,
)

ZERO = Decimal("0")
ONE = Decimal("1")
_HUNDRED = Decimal("100")

# Below this, engine products and cent quantization fit the default 28-digit context
MAX_AMOUNT = Decimal("1e18")


def to_amount(value: Any, field_name: str) -> Decimal:
    """
    Coerce a numeric input to a finite Decimal.

    ``None`` is read as zero: optional form fields left empty.

    Raises:
        NonFiniteAmountError: If the value is not a finite number.
        AmountOutOfRangeError: If its magnitude is MAX_AMOUNT or more.
    """
    if value is None:
        return ZERO
    # bool is an int subclass; a checkbox value is never an amount
    if isinstance(value, bool):
        raise NonFiniteAmountError(field_name, value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise NonFiniteAmountError(field_name, value) from e
    else:
        raise NonFiniteAmountError(field_name, value)

    if not amount.is_finite():
        raise NonFiniteAmountError(field_name, value)
    if abs(amount) >= MAX_AMOUNT:
        raise AmountOutOfRangeError(field_name, amount, MAX_AMOUNT)
    return amount


def to_non_negative_amount(value: Any, field_name: str) -> Decimal:
    """Coerce to a finite Decimal and reject values below zero."""
    amount = to_amount(value, field_name)
    if amount < ZERO:
        raise NegativeAmountError(field_name, amount)
    return amount


def parse_pct(value: Any) -> Decimal | None:
    """
    Parse a percentage as typed by an agency administrator.

    Accepts a fraction (``0.024``) or a percentage (``2.4``); anything
    above 1 is taken as a percentage. A comma decimal separator is
    accepted (``"2,4"``).

    Returns:
        The fraction as Decimal, or None if the value is negative,
        non-finite or unreadable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", ".").strip()
        if not value:
            return None
    try:
        pct = to_amount(value, "pct")
    except InvalidInputError:
        return None
    if pct < ZERO:
        return None
    if pct > ONE:
        return pct / _HUNDRED
    return pct


def quantize_amount(value: Decimal, places: int = 2) -> Decimal:
    """Round half-up to ``places`` decimals (display and voucher use only)."""
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)
