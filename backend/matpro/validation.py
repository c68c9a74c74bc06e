from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from .errors import ValidationError


# Maximum amount: 9,999,999,999.99 (Numeric(12, 2))
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")
MAX_INT = 2**31 - 1
MIN_INT = -(2**31)


def new_id() -> str:
    """Server-assigned identifier for records the server originates."""
    return str(uuid.uuid4())


def coerce_id(value: Any, field: str) -> str:
    """Identifiers are opaque strings; clients usually send UUIDs."""
    if value is None:
        raise ValidationError.missing([field])
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f"{field} must be a string identifier")
    s = str(value).strip()
    if not s:
        raise ValidationError.missing([field])
    if len(s) > 64:
        raise ValidationError(f"{field} must be at most 64 characters")
    return s


def coerce_int(value: Any, field: str) -> int:
    """Strict integer in the 32-bit INTEGER range: rejects floats, decimals and scientific notation."""
    number = _parse_int(value, field)
    if not MIN_INT <= number <= MAX_INT:
        raise ValidationError(f"{field} is out of range")
    return number


def _parse_int(value: Any, field: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        # JSON clients send 3.0 for 3
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_money(value: Any, field: str, *, allow_negative: bool = False) -> Decimal:
    """Parse a monetary amount to a 2-place Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        # str() keeps 0.1 from turning into 0.1000000000000000055511151231257827
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    return amount


def coerce_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if not isinstance(value, str) or value.upper() not in choices:
        raise ValidationError(f"{field} must be one of {', '.join(choices)}")
    return value.upper()


def optional_str(value: Any, field: str, max_len: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    s = value.strip()
    if len(s) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters")
    return s or None


def money_str(value: Decimal | None) -> str | None:
    """JSON form of a Numeric(12, 2) column: a fixed 2-place string."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
