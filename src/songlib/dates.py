"""Date codec for the wire format used across the API."""

from datetime import date, datetime
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator, PlainSerializer

from songlib.errors import FormatError

DATE_FORMAT = "%Y-%m-%d"

# Unset marker for optional dates in filters and partial updates
UNSET_DATE: Optional[date] = None


def parse_date(text: str, fmt: str = DATE_FORMAT) -> date:
    """Parse text in the given format into a date.

    Raises:
        FormatError: If the text does not match the format
    """
    try:
        return datetime.strptime(text.strip(), fmt).date()
    except (ValueError, AttributeError) as e:
        example = date(2006, 1, 2).strftime(fmt)
        raise FormatError(f"invalid date {text!r}, expected format like {example}") from e


def format_date(value: date, fmt: str = DATE_FORMAT) -> str:
    """Format a date in the given format."""
    return value.strftime(fmt)


def is_unset_date(value: Optional[date]) -> bool:
    """Check whether a date carries the unset marker."""
    return value is UNSET_DATE


def _serialize_date(value: date) -> str:
    return format_date(value)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, str):
        return parse_date(value)
    if isinstance(value, datetime):
        return value.date()
    return value


SongDate = Annotated[
    date,
    BeforeValidator(_coerce_date),
    PlainSerializer(_serialize_date, return_type=str),
]
