"""Shared validation utilities"""

import re
from datetime import date, datetime, time
from typing import Optional

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_hhmm(value) -> time:
    """
    Parse a wall-clock time in 24h HH:MM format.

    Args:
        value: "HH:MM" string, or a time object (passed through)

    Returns:
        datetime.time with seconds stripped

    Raises:
        ValueError: If the value is not a valid HH:MM time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    if not isinstance(value, str) or not HHMM_PATTERN.match(value.strip()):
        raise ValueError("Time must use the HH:MM format")

    return datetime.strptime(value.strip(), "%H:%M").time()


def format_hhmm(value: Optional[time]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%H:%M")


def parse_time_range(value: str) -> tuple[time, time]:
    """
    Parse an "HH:MM-HH:MM" range as stored on hold requests.

    Raises:
        ValueError: If either end is malformed or the range is empty
    """
    if not isinstance(value, str) or "-" not in value:
        raise ValueError("Time range must look like HH:MM-HH:MM")

    start_text, _, end_text = value.partition("-")
    start = parse_hhmm(start_text)
    end = parse_hhmm(end_text)
    if end <= start:
        raise ValueError("Time range end must be after its start")
    return start, end


def normalize_weekday(value: int) -> int:
    """
    Map a weekday number onto ISO numbering (1=Monday..7=Sunday).

    Clients that count Sunday as 0 are accepted; 0 becomes 7.

    Raises:
        ValueError: If the value is outside 0..7
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("Weekday must be an integer")
    if value == 0:
        return 7
    if not 1 <= value <= 7:
        raise ValueError("Weekday must be between 1 (Monday) and 7 (Sunday)")
    return value


def booking_date_error(day: date, today: Optional[date] = None) -> Optional[str]:
    """Return a message when a booking date is in the past, else None"""
    today = today or date.today()
    if day < today:
        return "Date must be today or later"
    return None


def errors_from_pydantic(errors: list[dict]) -> dict[str, str]:
    """
    Flatten pydantic/FastAPI error entries into a field -> message mapping.

    The leading "body"/"query"/"path" location segment is dropped.
    """
    mapping: dict[str, str] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        field = ".".join(loc) or "__root__"
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        mapping.setdefault(field, message)
    return mapping
