# Overview: Human-facing document numbers (INV-YYYYMMDD-###, PAY-YYYYMMDD-###).

from __future__ import annotations

from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..extensions import db
from ..models import DocumentSequence, Payment, Sale
from ..time_utils import day_stamp
from .concurrency import savepoint


SALE_PREFIX = "INV"
PAYMENT_PREFIX = "PAY"

# Which column must stay unique for numbers of each prefix
_NUMBERED_COLUMNS = {
    SALE_PREFIX: Sale.sale_number,
    PAYMENT_PREFIX: Payment.payment_number,
}

# Give up rather than spin if a day's numbers are mostly taken by clients
MAX_SKIPS = 1000


class DocumentSequenceError(ConflictError):
    """No document number could be allocated; surfaces as a 409."""
    pass


def format_number(prefix: str, day: str, ordinal: int) -> str:
    return f"{prefix}-{day}-{ordinal:03d}"


def _allocate_ordinal(prefix: str, day: str) -> int:
    """
    Atomically take the next ordinal for (prefix, day).

    One UPDATE ... SET next_number = next_number + 1 per call; the row lock
    it takes serializes concurrent allocators until commit.
    """
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.prefix == prefix,
            DocumentSequence.day == day,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with savepoint():
                db.session.add(DocumentSequence(prefix=prefix, day=day, next_number=2))
                db.session.flush()
            return 1
        except IntegrityError:
            # Another transaction created today's row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise DocumentSequenceError(f"Could not allocate {prefix} number for {day}")

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(prefix=prefix, day=day)
        .scalar()
    )
    return current - 1


def next_number(prefix: str, day: date | None = None) -> str:
    """
    Allocate the next document number for prefix on day (default: today, UTC).

    Numbers already present (for example pushed by an offline client that
    numbered its own documents) are skipped.
    """
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    stamp = day_stamp(day)
    column = _NUMBERED_COLUMNS.get(prefix)

    for _ in range(MAX_SKIPS):
        number = format_number(prefix, stamp, _allocate_ordinal(prefix, stamp))
        if column is None:
            return number
        taken = db.session.query(column).filter(column == number).first()
        if not taken:
            return number

    raise DocumentSequenceError(f"No free {prefix} number left for {stamp}")


def next_sale_number(day: date | None = None) -> str:
    return next_number(SALE_PREFIX, day)


def next_payment_number(day: date | None = None) -> str:
    return next_number(PAYMENT_PREFIX, day)
