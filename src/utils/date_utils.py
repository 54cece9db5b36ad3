"""Date helpers shared across calculations and data layers."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd


def to_timestamp(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    """Convert an input value to a timezone-naive, midnight-normalized pandas Timestamp."""
    ts = pd.Timestamp(value)
    if ts.tz is not None:
        ts = ts.tz_convert(None)
    return ts.normalize()


def month_start(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    return to_timestamp(value).replace(day=1)


def month_end(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    return to_timestamp(value) + pd.offsets.MonthEnd(0)


def quarter_start(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    ts = to_timestamp(value)
    return pd.Timestamp(year=ts.year, month=3 * ((ts.month - 1) // 3) + 1, day=1)


def quarter_end(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    return to_timestamp(value) + pd.offsets.QuarterEnd(0)


def year_start(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    return pd.Timestamp(year=to_timestamp(value).year, month=1, day=1)


def year_end(value: pd.Timestamp | datetime | date | str) -> pd.Timestamp:
    return pd.Timestamp(year=to_timestamp(value).year, month=12, day=31)


def days_between(start: pd.Timestamp | datetime | date | str, end: pd.Timestamp | datetime | date | str) -> int:
    """Whole calendar days from start to end (negative when end precedes start)."""
    return int((to_timestamp(end) - to_timestamp(start)).days)


def month_label(value: pd.Timestamp | datetime | date | str) -> str:
    """Return a `YYYY-MM` key."""
    return to_timestamp(value).strftime('%Y-%m')


def quarter_label(value: pd.Timestamp | datetime | date | str) -> str:
    """Return a `Q# YYYY` key."""
    ts = to_timestamp(value)
    return f'Q{(ts.month - 1) // 3 + 1} {ts.year}'


def in_range(
    dates: pd.Series,
    start: pd.Timestamp | datetime | date | str,
    end: pd.Timestamp | datetime | date | str,
) -> pd.Series:
    """Boolean mask for dates inside the inclusive day range [start, end]."""
    normalized = pd.to_datetime(dates).dt.normalize()
    return (normalized >= to_timestamp(start)) & (normalized <= to_timestamp(end))
