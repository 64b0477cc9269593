"""Small helpers shared by the store-facing services.

`store_errors()` turns database failures into `StoreFailure` once the
surrounding transaction has rolled back, and `as_int()` is the one place
user-supplied numbers are parsed.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator
import logging

from django.db import DatabaseError

from tracker.exceptions import InvalidInput, StoreFailure

logger = logging.getLogger(__name__)

# Upper bound of the PositiveIntegerField columns on every supported backend.
MAX_STORED_INT = 2147483647


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise database errors from the wrapped block as `StoreFailure`.

    Wrap the *outside* of `transaction.atomic()` so the rollback has already
    happened when the error is translated.
    """
    try:
        yield
    except DatabaseError as exc:
        logger.error("Store failure during %s: %s", action, exc, exc_info=True)
        raise StoreFailure(f"Could not {action}.") from exc


def as_int(value: Any, field: str) -> int:
    """Parse an integer strictly; blanks, floats, booleans and out-of-range values are rejected."""
    number: int | None = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw:
            try:
                number = int(raw)
            except ValueError:
                number = None
    if number is None:
        raise InvalidInput(f"{field} must be a whole number.")
    if not -MAX_STORED_INT <= number <= MAX_STORED_INT:
        raise InvalidInput(f"{field} is out of range (at most {MAX_STORED_INT}).")
    return number
