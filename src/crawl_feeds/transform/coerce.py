"""Value coercion and defaulting policies for field-mappings."""

import re
from datetime import date

from crawl_feeds.errors import ConfigurationError
from crawl_feeds.models import Scalar

INT_TYPE = "int"
STRING_TYPE = "string"
VALUE_TYPES = (INT_TYPE, STRING_TYPE)

DATE_FIELD = "date"
DATE_FORMAT = "%Y-%m-%d"

_INT_RE = re.compile(r"[+-]?[0-9]+")
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


def coerce_or_zero(value: str) -> int:
    """Parse `value` as a base-10 integer, returning 0 when it is not one.

    A non-numeric value stored with type "int" becomes 0, and so does a
    number outside the signed 64-bit range.
    """
    if not _INT_RE.fullmatch(value):
        return 0
    number = int(value)
    if not INT_MIN <= number <= INT_MAX:
        return 0
    return number


def check_value_type(value_type: str) -> str:
    """Return `value_type` if it is a supported storage type."""
    if value_type not in VALUE_TYPES:
        raise ConfigurationError(f"unknown type {value_type!r}")
    return value_type


def coerce_value(value: str, value_type: str) -> Scalar:
    """Convert an extracted string to the declared storage type."""
    if value_type == INT_TYPE:
        return coerce_or_zero(value)
    if value_type == STRING_TYPE:
        return value
    raise ConfigurationError(f"unknown type {value_type!r}")


def default_date(today: date | None = None) -> str:
    """Default value for the `date` field: today's date as YYYY-MM-DD."""
    return (today or date.today()).strftime(DATE_FORMAT)
