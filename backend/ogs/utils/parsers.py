"""Parsing helpers for request values that arrive as plain strings.

Feedback days use `YYYY-MM-DD`, feedback times `HH:MM:SS`. RFID tags
are normalised so readers that print `04:a3:2b:...` and readers that
print `04A32B...` resolve to the same person.
"""

import re
from datetime import date, datetime, time
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
_TAG_SEPARATORS = re.compile(r"[\s:\-]")


def parse_day(value: str) -> date:
    """Parse a `YYYY-MM-DD` string, raising ValueError on anything else."""
    if not value:
        raise ValueError("day is required")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValueError("invalid date format, expected YYYY-MM-DD")


def parse_time_of_day(value: str) -> time:
    if not value:
        raise ValueError("time is required")
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except ValueError:
        raise ValueError("invalid time format, expected HH:MM:SS")


def parse_bool_flag(value: Optional[str], default: bool = True) -> bool:
    """Interpret a query flag; only `false` and `0` switch it off."""
    if value is None or value == "":
        return default
    return value.strip().lower() not in ("false", "0")


def normalize_tag(tag: Optional[str]) -> Optional[str]:
    """Upper-case a tag id and strip separators. Empty input gives None."""
    if tag is None:
        return None
    cleaned = _TAG_SEPARATORS.sub("", tag).upper()
    return cleaned or None
