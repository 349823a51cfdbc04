"""Heuristic parsing of dates and times written in many layouts.

Log files and users write dates in whatever order they like: "20230115",
"15-Jan-2023", "1/5/23", "Jan 15th". parse_date() and parse_time() guess the
layout from the number of fields, their widths and their magnitudes. The
rules favour year-month-day and fall back to month-day-year and then
day-month-year when a field is out of range for its default position.
"""

import datetime
import re
from types import MappingProxyType
from typing import List, Optional, Tuple

from .errors import DateTimeFormatError

MONTHS = MappingProxyType({
    "JAN": 1, "JANUARY": 1,
    "FEB": 2, "FEBRUARY": 2,
    "MAR": 3, "MARCH": 3,
    "APR": 4, "APRIL": 4,
    "MAY": 5,
    "JUN": 6, "JUNE": 6,
    "JUL": 7, "JULY": 7,
    "AUG": 8, "AUGUST": 8,
    "SEP": 9, "SEPT": 9, "SEPTEMBER": 9,
    "OCT": 10, "OCTOBER": 10,
    "NOV": 11, "NOVEMBER": 11,
    "DEC": 12, "DECEMBER": 12,
})

# Day zero of Excel / OLE automation date serials
EXCEL_EPOCH = datetime.datetime(1899, 12, 30)

_ORDINAL_RE = re.compile(r"(?<=\d)\s*(st|nd|rd|th)", re.IGNORECASE)
_ALPHA_RE = re.compile(r"([a-zA-Z]+)")
_SEPARATOR_RE = re.compile(r"[\W_]+")
_PM_RE = re.compile(r"pm*", re.IGNORECASE)
_AM_RE = re.compile(r"am*", re.IGNORECASE)
_FRACTION_RE = re.compile(r"^(?P<head>.*?\d+\D+\d+\D+\d+)[.,](?P<fraction>\d+)\s*$", re.ASCII)


def _tokens(text: str) -> List[str]:
    return [token for token in _SEPARATOR_RE.split(text) if token]


def _month(name: str, text: str) -> int:
    try:
        return MONTHS[name.upper()]
    except KeyError:
        raise DateTimeFormatError(f"Invalid Date: unknown month {name!r} in {text!r}") from None


def _is_digits(token: str) -> bool:
    return token.isascii() and token.isdigit()


def _number(token: str, text: str, what: str = "Date") -> int:
    if not _is_digits(token):
        raise DateTimeFormatError(f"Invalid {what}: {text!r}")
    return int(token)


def _current_year(today: Optional[datetime.date]) -> int:
    return (today or datetime.date.today()).year


def _out_of_range(month: int, day: int) -> bool:
    return month > 12 or day > 31 or day == 0


def _parse_digits(digits: str, text: str, today: Optional[datetime.date]) -> Tuple[int, int, int]:
    """Split a single run of digits into year, month and day by its length."""
    value = int(digits)
    length = len(digits)

    if length == 2:
        return _current_year(today), value // 10, value % 10
    if length in (3, 4):
        return _current_year(today), value // 100, value % 100
    if length == 5:
        # MDDYY
        return value % 100 + 2000, value // 10000, (value // 100) % 100
    if length == 6:
        # YYMMDD, else MMDDYY, else DDMMYY
        year, month, day = value // 10000 + 2000, (value // 100) % 100, value % 100
        if _out_of_range(month, day):
            year, month, day = value % 100 + 2000, value // 10000, (value // 100) % 100
            if _out_of_range(month, day):
                month, day = day, month
        return year, month, day
    if length == 7:
        # MDDYYYY, else DMMYYYY
        year, month, day = value % 10000, value // 1000000, (value // 10000) % 100
        if _out_of_range(month, day):
            month, day = day, month
        return year, month, day
    if length == 8:
        # YYYYMMDD, else MMDDYYYY, else DDMMYYYY
        year, month, day = value // 10000, (value // 100) % 100, value % 100
        if _out_of_range(month, day):
            year, month, day = value % 10000, value // 1000000, (value // 10000) % 100
            if _out_of_range(month, day):
                month, day = day, month
        return year, month, day

    raise DateTimeFormatError(f"Invalid Date: {text!r}")


def _parse_two(tokens: List[str], text: str, today: Optional[datetime.date]) -> Tuple[int, int, int]:
    """Month and day without a year."""
    first, second = tokens
    year = _current_year(today)
    if first.isalpha():
        return year, _month(first, text), _number(second, text)
    if second.isalpha():
        return year, _month(second, text), _number(first, text)

    month, day = _number(first, text), _number(second, text)
    if month > 12:
        month, day = day, month
    return year, month, day


def _parse_three(tokens: List[str], text: str) -> Tuple[int, int, int]:
    first, second, third = tokens

    if first.isalpha():
        # MMM DD YYYY
        month = _month(first, text)
        day = _number(second, text)
        year = _number(third, text)
        if year < 100:
            year += 2000
        return year, month, day

    if second.isalpha():
        # YYYY MMM DD, or DD MMM YYYY when the last field cannot be a day
        month = _month(second, text)
        day = _number(third, text)
        if len(first) >= 2 and day <= 31:
            year = _number(first, text)
        else:
            year, day = day, _number(first, text)
        if year < 100:
            year += 2000
        return year, month, day

    year, month, day = (_number(token, text) for token in tokens)
    if day > 31:
        # Last field is the year: MM DD YYYY when possible, else DD MM YYYY
        leading = year
        year = day
        if len(third) == 2:
            year += 2000
        if leading <= 12:
            month, day = leading, month
        else:
            day = leading
    elif month > 12:
        # MM DD YYYY
        year, month, day = day, year, month
        if len(third) == 2:
            year += 2000
    elif len(first) == 1:
        # A one-digit year is never meant, read as M/D/YY
        year, month, day = day, year, month
        if len(third) <= 2:
            year += 2000
    elif len(first) == 2:
        year += 2000
    return year, month, day


def parse_date(text: str, today: Optional[datetime.date] = None) -> datetime.date:
    """Parse a date written in one of many common layouts.

    Args:
        text: Date text, e.g. "20230115", "15-Jan-2023", "Jan 15th, 23", "1/5/23"
        today: Reference date supplying the year when the text has none

    Returns:
        The parsed date

    Raises:
        DateTimeFormatError: If no layout matches or the result is not a valid date
    """
    normalized = _ORDINAL_RE.sub(" ", text)
    normalized = _ALPHA_RE.sub(r" \1 ", normalized)
    tokens = _tokens(normalized)

    if len(tokens) == 1:
        if not _is_digits(tokens[0]):
            raise DateTimeFormatError(f"Invalid Date: {text!r}")
        year, month, day = _parse_digits(tokens[0], text, today)
    elif len(tokens) == 2:
        year, month, day = _parse_two(tokens, text, today)
    elif len(tokens) == 3:
        year, month, day = _parse_three(tokens, text)
    else:
        raise DateTimeFormatError(f"Invalid Date: {text!r}")

    try:
        return datetime.date(year, month, day)
    except ValueError:
        raise DateTimeFormatError(f"Invalid Date: {text!r}") from None


def parse_time(text: str) -> datetime.time:
    """Parse a time of day written in one of many common layouts.

    Accepts "HH:MM:SS", "HH:MM", "HHMMSS", "HHMM", "H" with an optional
    am/pm marker, and fractional seconds such as "12:00:00.500". An hour of
    24 means the last second of the day.

    Args:
        text: Time text

    Returns:
        The parsed time

    Raises:
        DateTimeFormatError: If no layout matches or a field is out of range
    """
    is_pm = bool(_PM_RE.search(text))
    if is_pm:
        text = _PM_RE.sub("", text)
    is_am = bool(_AM_RE.search(text))
    if is_am:
        text = _AM_RE.sub("", text)
    text = _ALPHA_RE.sub("", text)

    microsecond = 0
    fraction = _FRACTION_RE.match(text)
    if fraction:
        microsecond = int(fraction.group("fraction")[:6].ljust(6, "0"))
        text = fraction.group("head")
    tokens = _tokens(text)

    if len(tokens) == 1:
        token = tokens[0]
        value = _number(token, text, "Time")
        if len(token) in (5, 6):
            hour, minute, second = value // 10000, (value // 100) % 100, value % 100
        elif len(token) in (3, 4):
            hour, minute, second = value // 100, value % 100, 0
        elif len(token) in (1, 2):
            hour, minute, second = value, 0, 0
        else:
            raise DateTimeFormatError(f"Invalid Time: {text!r}")
    elif len(tokens) == 2:
        hour, minute = (_number(token, text, "Time") for token in tokens)
        second = 0
    elif len(tokens) == 3:
        hour, minute, second = (_number(token, text, "Time") for token in tokens)
    else:
        raise DateTimeFormatError(f"Invalid Time: {text!r}")

    if hour > 24 or minute > 59 or second > 59:
        raise DateTimeFormatError(f"Invalid Time: {text!r}")

    if is_pm and hour <= 11:
        hour += 12
    elif is_am and hour == 12:
        hour = 0
    elif hour == 24:
        hour, minute, second, microsecond = 23, 59, 59, 0

    return datetime.time(hour, minute, second, microsecond)


def parse_datetime(text: str) -> datetime.datetime:
    """Parse "date time" text where the first space separates date from time.

    Text without a space is read as a date at midnight.
    """
    stripped = text.strip()
    date_text, _, time_text = stripped.partition(" ")
    date = parse_date(date_text)
    if not time_text.strip():
        return datetime.datetime.combine(date, datetime.time())
    return datetime.datetime.combine(date, parse_time(time_text.strip()))


def from_excel_serial(value: float) -> datetime.datetime:
    """Convert an Excel date serial to a datetime rounded to the millisecond.

    Args:
        value: Days since 1899-12-30, the fraction being the time of day

    Returns:
        The corresponding datetime

    Raises:
        DateTimeFormatError: If the serial is NaN or out of range
    """
    if value != value:
        raise DateTimeFormatError("Invalid date serial: NaN")
    milliseconds = round(value * 86400000.0)
    try:
        return EXCEL_EPOCH + datetime.timedelta(milliseconds=milliseconds)
    except OverflowError:
        raise DateTimeFormatError(f"Invalid date serial: {value}") from None
