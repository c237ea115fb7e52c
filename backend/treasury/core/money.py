"""Money Helpers - parsing and rounding of monetary amounts.

Invariants:
    - Every amount entering the core is a finite, non-negative Decimal
    - Rounding is to cents, ROUND_HALF_UP
    - Floats are converted through str() so 19.99 stays 19.99

Design Decisions:
    - Decimal over float: independent rounding of two shares is then bounded
      by half a cent each, so owner + agent is within one cent of the amount
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from treasury.core.domain_types import CENT
from treasury.core.errors import ErrorContext, InvalidAmountError


def to_amount(value: object, operation: str = "process_revenue") -> Decimal:
    """Parse a caller-supplied amount. Raises InvalidAmountError."""
    ctx = ErrorContext(operation=operation, amount=repr(value))
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(value, "amount must be a number", ctx)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(value, "amount is not a number", ctx)
    else:
        raise InvalidAmountError(value, f"unsupported type {type(value).__name__}", ctx)

    if not amount.is_finite():
        raise InvalidAmountError(value, "amount must be finite", ctx)
    if amount < 0:
        raise InvalidAmountError(value, "amount must not be negative", ctx)
    return amount


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_dollars(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, pct: int) -> Decimal:
    """`pct`% of `amount`, rounded to cents."""
    return round_cents(amount * Decimal(pct) / Decimal(100))


def from_stored(value: object) -> Decimal:
    """Decimal from a persisted snapshot value (str, int or legacy float).

    Raises ValueError for NaN, infinities and negatives.
    """
    if value is None:
        return Decimal("0")
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"stored amount {value!r} is not finite")
    if amount < 0:
        raise ValueError(f"stored amount {value!r} is negative")
    return amount
