"""
Input validation and coercion utilities.

Provides normalization for currency codes, strict validation for exchange
rates pushed into the rate store, and lenient coercion for user-entered
transaction amounts and dates.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from btc_tracker.lib.errors import InvalidRateError


def normalize_currency(currency: Any) -> str:
    """
    Normalize a currency code for comparison.

    Args:
        currency: Currency code as supplied by the caller

    Returns:
        Upper-case, trimmed code ("" for non-string input)

    Examples:
        >>> normalize_currency(" eur ")
        'EUR'
        >>> normalize_currency(None)
        ''
    """
    if not isinstance(currency, str):
        return ""
    return currency.strip().upper()


def coerce_float(value: Any, default: float = 0.0) -> float:
    """
    Convert user input to a finite float, falling back to a default.

    None, NaN, infinities and unparsable strings all map to ``default``.

    Examples:
        >>> coerce_float("0.5")
        0.5
        >>> coerce_float(None)
        0.0
        >>> coerce_float("abc", default=1.0)
        1.0
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def validate_rate(currency: str, value: Any) -> float:
    """
    Validate an exchange rate or price.

    Args:
        currency: Currency the value belongs to (used in the error message)
        value: Candidate rate

    Returns:
        The rate as float

    Raises:
        InvalidRateError: If the value is not a strictly positive finite number

    Examples:
        >>> validate_rate("USD", 1.14)
        1.14
        >>> validate_rate("USD", 0)
        Traceback (most recent call last):
        ...
        btc_tracker.lib.errors.InvalidRateError: Invalid rate for USD: 0 (must be a positive finite number)
    """
    if isinstance(value, bool):
        raise InvalidRateError(currency, value)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise InvalidRateError(currency, value) from None
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidRateError(currency, value)
    return rate


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a transaction date into an aware UTC datetime.

    Accepts datetime/date objects, ISO-8601 strings and other formats
    understood by dateutil. Naive values are treated as UTC.

    Returns:
        Parsed datetime, or None when the value is missing or unparsable
    """
    if value is None or value == "":
        return None

    parsed: datetime
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            try:
                parsed = date_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_timestamp(value: Any) -> str:
    """
    Normalize a transaction date to an ISO-8601 UTC string.

    Examples:
        >>> normalize_timestamp("2024-01-15T10:30:00+02:00")
        '2024-01-15T08:30:00Z'
        >>> normalize_timestamp("not a date")
        ''
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.isoformat().replace("+00:00", "Z")
