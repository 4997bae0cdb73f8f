"""Module to validate and normalize timestamps used to filter experiments."""

from __future__ import annotations

import re
import warnings
from datetime import datetime, timezone
from typing import Final

# Canonical output format (RFC3339 with the Z suffix)
TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%SZ"

SUPPORTED_FORMATS: Final[str] = """Supported formats:
  - ISO 8601 with UTC: 'YYYY-MM-DDTHH:MM:SSZ'
  - ISO 8601 with timezone: 'YYYY-MM-DDTHH:MM:SS+HH:MM' or 'YYYY-MM-DDTHH:MM:SS+HHMM'
  - ISO 8601: 'YYYY-MM-DDTHH:MM:SS' (assumes UTC)
  - Date only: 'YYYY-MM-DD' (assumes 00:00:00 UTC)
  - Date with slashes: 'YYYY/MM/DD' (assumes 00:00:00 UTC)
  - Date and time with space: 'YYYY-MM-DD HH:MM:SS' (assumes UTC)"""

_RE_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")
_RE_OFFSET = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:?\d{2}$")
_RE_NAIVE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}$")
_RE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RE_SLASH_DATE = re.compile(r"^\d{4}/\d{2}/\d{2}$")
_RE_SPACE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


class TimestampError(ValueError):
    """Base class for timestamp validation errors."""


class EmptyTimestampError(TimestampError):
    """Error emitted when the timestamp is an empty string."""


class UnrecognizedFormatError(TimestampError):
    """Error emitted when the timestamp does not match any supported format."""


class InvalidDateError(TimestampError):
    """Error emitted when a recognized timestamp has out-of-range values."""


class InvalidTypeError(TimestampError, TypeError):
    """Error emitted when the timestamp is neither a string nor a datetime."""


class TimestampWarning(UserWarning):
    """Warning emitted when we make assumptions about a timestamp."""


def normalize_timestamp(timestamp: datetime | str) -> str:
    """
    Validate a timestamp and return it as `YYYY-MM-DDTHH:MM:SSZ`.

    Naive datetimes, and strings without timezone information, are
    assumed to be UTC and we emit a TimestampWarning. Aware datetimes and
    strings with offsets are converted to UTC.

    Example:

        >>> normalize_timestamp("2024-01-01T10:30:00+02:00")
        '2024-01-01T08:30:00Z'

    Raises:
        EmptyTimestampError: the string is empty.
        UnrecognizedFormatError: the string format is not supported.
        InvalidDateError: the date or time values are out of range.
        InvalidTypeError: the value is neither a string nor a datetime.
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None or timestamp.utcoffset() is None:
            warnings.warn(
                "datetime object has no timezone information. Assuming UTC.",
                TimestampWarning,
                stacklevel=2,
            )
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

    if isinstance(timestamp, str):
        return _normalize_string(timestamp)

    raise InvalidTypeError(
        f"Must be a datetime object or string, got {type(timestamp).__name__}."
    )


def _normalize_string(value: str) -> str:
    timestamp = value.strip()
    if not timestamp:
        raise EmptyTimestampError("Empty string is not a valid timestamp.")

    if _RE_UTC.match(timestamp):
        return _validated(timestamp, timestamp)

    if _RE_OFFSET.match(timestamp):
        try:
            parsed = datetime.strptime(timestamp, "%Y-%m-%dT%H:%M:%S%z")
        except ValueError as exc:
            raise InvalidDateError(_invalid_message(timestamp)) from exc
        return parsed.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

    if _RE_NAIVE.match(timestamp):
        normalized = _validated(f"{timestamp}Z", timestamp)
        _warn(f"Timestamp '{timestamp}' has no timezone information. Assuming UTC.")
        return normalized

    if _RE_DATE.match(timestamp):
        normalized = _validated(f"{timestamp}T00:00:00Z", timestamp)
        _warn(f"Date-only timestamp '{timestamp}' provided. Assuming 00:00:00 UTC time.")
        return normalized

    if _RE_SLASH_DATE.match(timestamp):
        normalized = _validated(f"{timestamp.replace('/', '-')}T00:00:00Z", timestamp)
        _warn(
            f"Date '{timestamp}' provided with '/' separators. Assuming 00:00:00 UTC time. "
            "Use ISO format 'YYYY-MM-DD' for better compatibility."
        )
        return normalized

    if _RE_SPACE.match(timestamp):
        normalized = _validated(f"{timestamp.replace(' ', 'T')}Z", timestamp)
        _warn(f"Timestamp '{timestamp}' has no timezone information. Assuming UTC.")
        return normalized

    raise UnrecognizedFormatError(
        f"Unrecognized timestamp format '{timestamp}'. {SUPPORTED_FORMATS}"
    )


def _validated(normalized: str, original: str) -> str:
    """Ensure the normalized timestamp holds valid calendar and clock values."""
    try:
        datetime.strptime(normalized, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise InvalidDateError(_invalid_message(original)) from exc
    return normalized


def _invalid_message(timestamp: str) -> str:
    return (
        f"Invalid date '{timestamp}'. Please check the year, month, and day values "
        f"as well as the hour, minute, and second values. {SUPPORTED_FORMATS}"
    )


def _warn(message: str) -> None:
    # stacklevel points at the caller of normalize_timestamp
    warnings.warn(message, TimestampWarning, stacklevel=4)
