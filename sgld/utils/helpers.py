"""Shared utility functions.

parse_iso_date:  returns None on bad input (draft values are free text)
parse_int_arg:   query-string integers with bounds, for list endpoints
"""
import re
from datetime import date

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_iso_date(value):
    """Parse an ISO 8601 calendar date (YYYY-MM-DD) to a date object.

    Returns None for empty/invalid input, including day-first, compact,
    week-date and datetime spellings.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _ISO_DATE.fullmatch(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_int_arg(value, default, minimum=0, maximum=None):
    """Parse an integer query argument, clamping into [minimum, maximum]."""
    try:
        result = int(value)
    except (TypeError, ValueError):
        return default
    result = max(result, minimum)
    if maximum is not None:
        result = min(result, maximum)
    return result
