"""
Period bucketer.

Maps instants to day/week/month/year keys and keys back to the first
instant of their bucket. Week keys ("2025-W01") do not sort correctly as
strings across year boundaries, so ordering always goes through
``period_start``.
"""

from datetime import datetime
from enum import Enum


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def coerce(cls, value: "Granularity | str | None") -> "Granularity":
        """None -> MONTH; unknown strings raise ValueError."""
        if value is None:
            return cls.MONTH
        return cls(value)


def iso_week(moment: datetime) -> tuple[int, int]:
    """ISO 8601 (year, week); the year is the one holding the week's Thursday."""
    year, week, _ = moment.isocalendar()
    return year, week


def period_key(moment: datetime, granularity: Granularity | str) -> str:
    granularity = Granularity.coerce(granularity)
    if granularity is Granularity.DAY:
        return moment.strftime("%Y-%m-%d")
    if granularity is Granularity.WEEK:
        year, week = iso_week(moment)
        return f"{year}-W{week:02d}"
    if granularity is Granularity.MONTH:
        return f"{moment.year:04d}-{moment.month:02d}"
    return f"{moment.year:04d}"


def period_start(key: str, granularity: Granularity | str) -> datetime:
    """First instant of the bucket named by ``key``."""
    granularity = Granularity.coerce(granularity)
    if granularity is Granularity.DAY:
        return datetime.strptime(key, "%Y-%m-%d")
    if granularity is Granularity.WEEK:
        year, week = key.split("-W")
        return datetime.fromisocalendar(int(year), int(week), 1)
    if granularity is Granularity.MONTH:
        year, month = key.split("-")
        return datetime(int(year), int(month), 1)
    return datetime(int(key), 1, 1)


def snap(moment: datetime, granularity: Granularity | str) -> datetime:
    """Start of the bucket containing ``moment``."""
    return period_start(period_key(moment, granularity), granularity)


def sort_keys(keys, granularity: Granularity | str) -> list[str]:
    return sorted(keys, key=lambda key: period_start(key, granularity))
