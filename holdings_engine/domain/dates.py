"""Calendar-date helpers shared by the lot engine and rate loaders."""

from __future__ import annotations

from datetime import date, datetime

from .errors import InvalidDateError

_DOMAIN_SUPPORTED_DATE_FORMATS = ("%Y-%m-%d", "%Y%m%d", "%Y/%m/%d")


def domain_parse_date(value: str) -> date:
    """Parse one date text value into `date`.

    Args:
        value: Date text in `YYYY-MM-DD`, `YYYYMMDD` or `YYYY/MM/DD` form.

    Returns:
        date: Parsed calendar date.

    Raises:
        InvalidDateError: Raised when value is blank or uses an unsupported format.
    """

    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError("date value must be a non-empty string", value=value)

    normalized_value = value.strip()
    for supported_format in _DOMAIN_SUPPORTED_DATE_FORMATS:
        try:
            return datetime.strptime(normalized_value, supported_format).date()
        except ValueError:
            continue

    raise InvalidDateError(f"invalid date value={value}", value=value)


def domain_require_date(value: object, field_name: str) -> date:
    """Return `value` when it is a plain calendar date.

    Datetimes are rejected so lot open dates never carry a time component.

    Args:
        value: Candidate date value.
        field_name: Field label used in error messages.

    Returns:
        date: The validated date.

    Raises:
        InvalidDateError: Raised when value is not a `date`.
    """

    if isinstance(value, datetime) or not isinstance(value, date):
        raise InvalidDateError(f"{field_name} must be a calendar date, got {value!r}", value=value)
    return value


__all__ = ["domain_parse_date", "domain_require_date"]
