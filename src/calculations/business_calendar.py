"""US bank-holiday calendar and business-day counting."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd
from pandas.tseries.holiday import (
    AbstractHolidayCalendar,
    Holiday,
    USColumbusDay,
    USLaborDay,
    USMartinLutherKingJr,
    USMemorialDay,
    USPresidentsDay,
    USThanksgivingDay,
    nearest_workday,
)
from pandas.tseries.offsets import Day

from src.utils.date_utils import to_timestamp


class USBankHolidayCalendar(AbstractHolidayCalendar):
    """Federal Reserve holidays; fixed-date holidays move to the nearest weekday."""

    rules = [
        Holiday("New Year's Day", month=1, day=1, observance=nearest_workday),
        USMartinLutherKingJr,
        USPresidentsDay,
        USMemorialDay,
        Holiday('Juneteenth', month=6, day=19, observance=nearest_workday),
        Holiday('Independence Day', month=7, day=4, observance=nearest_workday),
        USLaborDay,
        USColumbusDay,
        Holiday('Veterans Day', month=11, day=11, observance=nearest_workday),
        USThanksgivingDay,
        Holiday('Christmas Day', month=12, day=25, observance=nearest_workday),
    ]


BANK_CALENDAR = USBankHolidayCalendar()


def _holidays(start: pd.Timestamp, end: pd.Timestamp) -> pd.DatetimeIndex:
    return BANK_CALENDAR.holidays(start=start, end=end)


def bank_holidays(year: int) -> list[pd.Timestamp]:
    """Observed bank holidays belonging to ``year``.

    New Year's Day falling on a Saturday is observed on December 31 of the
    previous year, so the window starts one day before January 1.
    """
    start = pd.Timestamp(year=int(year), month=1, day=1) - Day(1)
    end = pd.Timestamp(year=int(year), month=12, day=31)
    return list(_holidays(start, end))


def is_business_day(value: pd.Timestamp | datetime | date | str) -> bool:
    """False on Saturdays, Sundays and observed bank holidays."""
    ts = to_timestamp(value)
    if ts.weekday() >= 5:
        return False
    return len(_holidays(ts, ts)) == 0


def business_day_range(
    start: pd.Timestamp | datetime | date | str,
    end: pd.Timestamp | datetime | date | str,
) -> pd.DatetimeIndex:
    """Business dates in the inclusive range [start, end]."""
    s = to_timestamp(start)
    e = to_timestamp(end)
    if e < s:
        return pd.DatetimeIndex([])
    return pd.bdate_range(start=s, end=e, freq='C', holidays=list(_holidays(s, e)))


def business_days_between(
    start: pd.Timestamp | datetime | date | str,
    end: pd.Timestamp | datetime | date | str,
) -> int:
    """Inclusive count of business days in [start, end]; 0 when end precedes start."""
    return int(len(business_day_range(start, end)))
