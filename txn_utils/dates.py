from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union


# ---------------- Date strings at three granularities ----------------

# "2020", "2020-03" / "2020/03", "2020-03-15" / "2020/03/15"
Y_RX = re.compile(r"^\s*(\d{4})\s*$")
YM_RX = re.compile(r"^\s*(\d{4})[/-](\d{1,2})\s*$")
YMD_RX = re.compile(r"^\s*(\d{4})[/-](\d{1,2})[/-](\d{1,2})\s*$")

BUCKETS = ("day", "week", "month", "year")


@dataclass(frozen=True)
class Period:
    """Inclusive calendar span described by a date string."""

    granularity: str  # "year" | "month" | "day"
    start: date
    end: date

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and self.start <= d <= self.end


def _month_end(y: int, m: int) -> date:
    if m == 12:
        return date(y, 12, 31)
    return date(y, m + 1, 1) - timedelta(days=1)


def parse_period(raw: str) -> Optional[Period]:
    """
    Parse a year, year/month or year/month/day string into a Period.
    Returns None when the string matches none of the three forms or names an
    impossible date.
    """
    if not isinstance(raw, str):
        return None

    m = YMD_RX.match(raw)
    if m:
        try:
            d = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None
        return Period("day", d, d)

    m = YM_RX.match(raw)
    if m:
        y, mon = int(m.group(1)), int(m.group(2))
        if not 1 <= mon <= 12:
            return None
        return Period("month", date(y, mon, 1), _month_end(y, mon))

    m = Y_RX.match(raw)
    if m:
        y = int(m.group(1))
        if y < 1:
            return None
        return Period("year", date(y, 1, 1), date(y, 12, 31))

    return None


def to_date(raw: Union[str, date, datetime, None]) -> Optional[date]:
    """Coerce an ISO-ish value to a date. Raises ValueError for garbage."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    period = parse_period(str(raw))
    if period is None or period.granularity != "day":
        raise ValueError(f"not a calendar date: {raw!r}")
    return period.start


# ---------------- Bucketing ----------------


def bucket_start(d: date, bucket: str) -> date:
    """Return the first day of the calendar period that contains ``d``."""
    if bucket == "day":
        return d
    if bucket == "week":
        return d - timedelta(days=d.weekday())  # ISO week starts Monday
    if bucket == "month":
        return d.replace(day=1)
    if bucket == "year":
        return d.replace(month=1, day=1)
    raise ValueError(f"unknown bucket: {bucket!r}")
