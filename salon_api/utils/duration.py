import re
from typing import Union

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")
_DECIMAL = re.compile(r"^\d+(\.\d+)?$")


def format_duration(minutes: int) -> str:
    """90 -> '1:30'"""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}:{mins:02d}"


def is_valid_duration(value: Union[str, int, float, None]) -> bool:
    """Accepts 'H:MM' / 'HH:MM' (minutes below 60) or positive decimal hours ('2.5')."""
    if value is None:
        return False
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value > 0
    text = str(value).strip()
    match = _HHMM.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        return minutes < 60 and (hours > 0 or minutes > 0)
    if _DECIMAL.match(text):
        return float(text) > 0
    return False


def parse_duration(value: Union[str, int, float]) -> int:
    """
    Converts a duration to minutes.
    '1:30' -> 90, '2.5' -> 150, 2 -> 120 (numbers are hours).
    Raises ValueError for anything is_valid_duration rejects.
    """
    if not is_valid_duration(value):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return int(round(value * 60))
    text = str(value).strip()
    match = _HHMM.match(text)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2))
    return int(round(float(text) * 60))
