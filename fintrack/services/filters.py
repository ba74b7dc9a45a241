"""
Query-string filters for transaction listings.

Both parsers return keyword arguments for TransactionFilter, or an empty
dict when the query names none of their parameters. Day boundaries are UTC.
"""

import math
import re
from datetime import datetime, time, timezone
from typing import Mapping

DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


class FilterError(ValueError):
    """A query parameter is malformed or the requested range is empty."""
    pass


def _parse_day(name: str, value: str) -> datetime:
    if not DATE_PATTERN.match(value):
        raise FilterError(
            f"The query parameter `{name}` has an invalid value: it must be in the form YYYY-MM-DD"
        )
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        raise FilterError(
            f"The query parameter `{name}` has an invalid value: it must be in the form YYYY-MM-DD"
        )


def _start_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.min, tzinfo=timezone.utc)


def _end_of_day(day: datetime) -> datetime:
    return datetime.combine(day.date(), time.max, tzinfo=timezone.utc)


def parse_date_filter(query: Mapping[str, str]) -> dict:
    """
    Read `date`, `from` and `upTo` (YYYY-MM-DD).

    `date` selects one whole day; `from` and `upTo` bound an inclusive range
    and may be given alone. Mixing `date` with a range is an error.

    Raises:
        FilterError: malformed value, conflicting parameters or from > upTo
    """
    date = query.get("date")
    date_from = query.get("from")
    date_to = query.get("upTo")

    if not date and not date_from and not date_to:
        return {}

    exact = _parse_day("date", date) if date else None
    lower = _parse_day("from", date_from) if date_from else None
    upper = _parse_day("upTo", date_to) if date_to else None

    if exact and (lower or upper):
        raise FilterError("You cannot specify an exact date and a date range")

    if exact:
        return {"date_from": _start_of_day(exact), "date_to": _end_of_day(exact)}

    if lower and upper and lower > upper:
        raise FilterError("Invalid date range")

    bounds = {}
    if lower:
        bounds["date_from"] = _start_of_day(lower)
    if upper:
        bounds["date_to"] = _end_of_day(upper)
    return bounds


def _parse_amount(name: str, value: str) -> float:
    try:
        amount = float(value)
    except ValueError:
        amount = math.nan
    if not math.isfinite(amount):
        raise FilterError(
            f"The query parameter `{name}` has an invalid value: it must be a number"
        )
    return amount


def parse_amount_filter(query: Mapping[str, str]) -> dict:
    """
    Read `min` and `max`; either may be given alone.

    Raises:
        FilterError: non-numeric value or min > max
    """
    minimum = query.get("min")
    maximum = query.get("max")

    if not minimum and not maximum:
        return {}

    lower = _parse_amount("min", minimum) if minimum else None
    upper = _parse_amount("max", maximum) if maximum else None

    if lower is not None and upper is not None and lower > upper:
        raise FilterError("Invalid amount range")

    bounds = {}
    if lower is not None:
        bounds["min_amount"] = lower
    if upper is not None:
        bounds["max_amount"] = upper
    return bounds
