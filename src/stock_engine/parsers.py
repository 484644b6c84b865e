"""
Reusable parsers for loosely-typed spreadsheet rows.

These parsers handle the messy reality of ERP exports:
- Dates as native values, Excel serial numbers or free-form strings
- Numbers with thousands separators in either decimal convention
- Header names that vary in case, accents and spacing
"""

from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
import math
import numbers
import re
import unicodedata
from typing import Any

import pandas as pd

# Excel's day zero (1899-12-30 keeps the 1900 leap-year bug aligned)
EXCEL_EPOCH = datetime(1899, 12, 30)

# Distinct date strings remembered per process
DATE_CACHE_SIZE = 4096

_NON_NUMERIC = re.compile(r"[^0-9,.\-]")


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and empty strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_text(value: Any) -> str:
    """Lowercase, strip accents and surrounding whitespace."""
    if is_blank(value):
        return ""
    text = unicodedata.normalize("NFD", str(value).lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return text.strip()


def normalize_key(value: Any) -> str:
    """Header comparison key: like normalize_text but with all whitespace removed."""
    return re.sub(r"\s+", "", normalize_text(value))


def get_field(row: dict, aliases: list[str]) -> Any:
    """
    Return the first field of ``row`` matching one of ``aliases``.

    Each alias is tried verbatim first, then against every header of the
    row after accent/case/space folding. Returns None when nothing matches.
    """
    for alias in aliases:
        if alias in row:
            return row[alias]
        target = normalize_key(alias)
        for key in row:
            if normalize_key(key) == target:
                return row[key]
    return None


def get_text(row: dict, aliases: list[str], default: str = "") -> str:
    value = get_field(row, aliases)
    if is_blank(value):
        return default
    return str(value).strip() or default


class NumberParser:
    """
    Locale-tolerant number parser.

    Rules:
    - Both "," and "." present: the right-most one is the decimal point
    - Only ",": decimal when a single comma is followed by at most 2 digits,
      thousands separator otherwise
    - Only ".": same rule as the comma
    - Anything unparseable becomes NaN (never raises)
    """

    def parse(self, value: Any) -> float:
        if is_blank(value) or isinstance(value, bool):
            return math.nan
        if isinstance(value, numbers.Real):
            number = float(value)
            return number if math.isfinite(number) else math.nan

        raw = str(value).strip()
        if not raw:
            return math.nan

        negative = raw.startswith("-")
        raw = _NON_NUMERIC.sub("", raw).replace("-", "")
        if not any(ch.isdigit() for ch in raw):
            return math.nan

        has_comma = "," in raw
        has_dot = "." in raw
        if has_comma and has_dot:
            if raw.rfind(",") > raw.rfind("."):
                raw = raw.replace(".", "").replace(",", ".")
            else:
                raw = raw.replace(",", "")
        elif has_comma:
            parts = raw.split(",")
            if len(parts) == 2 and len(parts[1]) <= 2:
                raw = f"{parts[0]}.{parts[1]}"
            else:
                raw = raw.replace(",", "")
        elif has_dot:
            parts = raw.split(".")
            if not (len(parts) == 2 and len(parts[1]) <= 2):
                raw = raw.replace(".", "")

        try:
            number = float(raw)
        except ValueError:
            return math.nan
        if not math.isfinite(number):
            return math.nan
        return -number if negative else number


class DateParser:
    """
    Date parser for spreadsheet cells.

    Accepts native date/datetime values, Excel serial-day numbers and
    strings. String parsing tries the known ERP formats first and then
    ISO 8601. Timezone-aware values are converted to naive UTC so every
    event shares one timeline.
    """

    DATE_FORMATS = [
        "%Y-%m-%d",           # ISO: 2024-07-25
        "%Y-%m-%d %H:%M:%S",  # ISO with time
        "%d/%m/%Y",           # Local: 25/07/2024
        "%d/%m/%Y %H:%M",
        "%d-%m-%Y",           # 25-07-2024
        "%Y/%m/%d",           # 2024/07/25
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        self.formats = tuple(custom_formats or []) + tuple(self.DATE_FORMATS)

    def parse(self, value: Any) -> datetime | None:
        if is_blank(value) or isinstance(value, bool):
            return None
        if isinstance(value, pd.Timestamp):
            value = value.to_pydatetime()
        if isinstance(value, datetime):
            return _as_naive_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, numbers.Real):
            return self._from_serial(float(value))
        if isinstance(value, str):
            return self._from_string(value)
        return None

    def _from_serial(self, serial: float) -> datetime | None:
        if not math.isfinite(serial):
            return None
        try:
            return EXCEL_EPOCH + timedelta(milliseconds=round(serial * 86_400_000))
        except OverflowError:
            return None

    def _from_string(self, value: str) -> datetime | None:
        text = value.strip()
        if not text:
            return None
        return _parse_date_text(text, self.formats)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@lru_cache(maxsize=DATE_CACHE_SIZE)
def _parse_date_text(text: str, formats: tuple[str, ...]) -> datetime | None:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return _as_naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


_numbers = NumberParser()
_dates = DateParser()


def to_number(value: Any) -> float:
    """Module-level shortcut for NumberParser().parse."""
    return _numbers.parse(value)


def parse_date(value: Any) -> datetime | None:
    """Module-level shortcut for DateParser().parse."""
    return _dates.parse(value)
