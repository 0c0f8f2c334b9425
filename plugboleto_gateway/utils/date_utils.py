"""Date parsing for the Brazilian formats used by PlugBoleto"""

from datetime import date, datetime
from typing import Optional

_DATETIME_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)
_DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d")


def parse_br_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse "dd/mm/yyyy hh:mm:ss" (or ISO); date-only input yields midnight"""
    if not value:
        return None
    text = str(value).strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    parsed = parse_br_date(text)
    return datetime(parsed.year, parsed.month, parsed.day)


def parse_br_date(value: Optional[str]) -> Optional[date]:
    """Parse the date part of "dd/mm/yyyy[ hh:mm:ss]" (or ISO)"""
    if not value:
        return None
    text = str(value).strip().split(" ")[0].split("T")[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date: {value!r}")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """datetime → "YYYY-MM-DD HH:MM:SS" """
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else None
