"""Period-over-period deal comparison with a momentum-weighted forecast."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from src.calculations.aggregation import compute_deal_summary
from src.utils.date_utils import (
    days_between,
    in_range,
    month_end,
    month_start,
    quarter_end,
    quarter_label,
    quarter_start,
    to_timestamp,
    year_end,
    year_start,
)
from src.utils.logging import get_logger
from src.utils.math_utils import pct_change, safe_div

LOGGER = get_logger(__name__)

COMPARISON_TYPES = ('none', 'month-vs-month', 'quarter-vs-quarter', 'year-vs-year', 'ytd-vs-ytd', 'custom')
FORECAST_TYPES = ('year-vs-year', 'ytd-vs-ytd')
MOMENTUM_WEIGHT = 0.3
CHANGE_METRICS = ('total_funded', 'total_fees', 'deal_count', 'avg_ticket_size')

DateLike = pd.Timestamp | datetime | date | str


@dataclass(frozen=True)
class Period:
    label: str
    start: pd.Timestamp
    end: pd.Timestamp


@dataclass(frozen=True)
class ComparisonConfig:
    comparison_type: str
    current: Period
    comparison: Period


@dataclass(frozen=True)
class PeriodMetrics:
    total_funded: float
    total_fees: float
    deal_count: int
    avg_ticket_size: float
    avg_fee_percent: float
    new_deals_funded: float
    renewal_deals_funded: float
    deals: pd.DataFrame = field(repr=False, compare=False)


@dataclass(frozen=True)
class ForecastPoint:
    date: pd.Timestamp
    value: float
    label: str


@dataclass(frozen=True)
class ForecastData:
    projected_total: float
    growth_rate: float
    momentum_factor: float
    points: list[ForecastPoint]


@dataclass(frozen=True)
class ComparisonResult:
    current: PeriodMetrics
    comparison: PeriodMetrics
    percent_changes: dict[str, float]
    forecast: ForecastData | None = None


def make_period(label: str, start: DateLike, end: DateLike) -> Period:
    return Period(label=label, start=to_timestamp(start), end=to_timestamp(end))


def _shift_months(value: pd.Timestamp, months: int) -> pd.Timestamp:
    return value - pd.DateOffset(months=months)


def comparison_periods(
    comparison_type: str,
    reference_date: DateLike,
    custom_current: Period | None = None,
    custom_comparison: Period | None = None,
) -> ComparisonConfig | None:
    """Resolve a comparison type to its two periods.

    Returns None for ``none`` and for ``custom`` when either period is missing.
    """
    if comparison_type not in COMPARISON_TYPES:
        raise ValueError(f'Unknown comparison type: {comparison_type!r}')
    if comparison_type == 'none':
        return None
    if comparison_type == 'custom':
        if custom_current is None or custom_comparison is None:
            return None
        return ComparisonConfig(comparison_type, custom_current, custom_comparison)

    ref = to_timestamp(reference_date)
    if comparison_type == 'month-vs-month':
        prev = _shift_months(ref, 1)
        current = Period(f'{ref:%B %Y}', month_start(ref), month_end(ref))
        comparison = Period(f'{prev:%B %Y}', month_start(prev), month_end(prev))
    elif comparison_type == 'quarter-vs-quarter':
        prev = _shift_months(ref, 3)
        current = Period(quarter_label(ref), quarter_start(ref), quarter_end(ref))
        comparison = Period(quarter_label(prev), quarter_start(prev), quarter_end(prev))
    elif comparison_type == 'year-vs-year':
        prev = _shift_months(ref, 12)
        current = Period(str(ref.year), year_start(ref), year_end(ref))
        comparison = Period(str(prev.year), year_start(prev), year_end(prev))
    else:
        prev_start = year_start(_shift_months(ref, 12))
        elapsed = days_between(year_start(ref), ref)
        current = Period(f'YTD {ref.year}', year_start(ref), ref)
        comparison = Period(f'YTD {prev_start.year}', prev_start, prev_start + pd.Timedelta(days=elapsed))
    return ComparisonConfig(comparison_type, current, comparison)


def available_periods(deals_df: pd.DataFrame) -> dict[str, list[Period]]:
    """Month, quarter and year periods that contain deals, newest first."""
    out: dict[str, list[Period]] = {'months': [], 'quarters': [], 'years': []}
    if deals_df.empty:
        return out
    dates = pd.to_datetime(deals_df['funding_date'], errors='coerce').dropna()
    for ts in sorted({month_start(d) for d in dates}, reverse=True):
        out['months'].append(Period(f'{ts:%B %Y}', ts, month_end(ts)))
    for ts in sorted({quarter_start(d) for d in dates}, reverse=True):
        out['quarters'].append(Period(quarter_label(ts), ts, quarter_end(ts)))
    for ts in sorted({year_start(d) for d in dates}, reverse=True):
        out['years'].append(Period(str(ts.year), ts, year_end(ts)))
    return out


def _deals_in(deals_df: pd.DataFrame, start: DateLike, end: DateLike) -> pd.DataFrame:
    if deals_df.empty:
        return deals_df.copy()
    return deals_df.loc[in_range(deals_df['funding_date'], start, end)].copy()


def period_metrics(deals_df: pd.DataFrame) -> PeriodMetrics:
    summary = compute_deal_summary(deals_df)
    return PeriodMetrics(
        total_funded=summary.total_funded,
        total_fees=summary.total_fees,
        deal_count=summary.deal_count,
        avg_ticket_size=summary.avg_ticket_size,
        avg_fee_percent=summary.avg_fee_percent,
        new_deals_funded=summary.new_deals_funded,
        renewal_deals_funded=summary.renewal_deals_funded,
        deals=deals_df,
    )


def momentum(deals_df: pd.DataFrame, start: DateLike, now: DateLike) -> tuple[float, float]:
    """Growth of the daily funding rate between the two halves of [start, now].

    Returns ``(growth_rate, momentum_factor)``; fewer than two deals give (0, 1).
    """
    if len(deals_df) < 2:
        return 0.0, 1.0
    start_ts = to_timestamp(start)
    total_days = days_between(start_ts, now) or 1
    first_half_days = total_days // 2 or 1
    second_half_days = (total_days - first_half_days) or 1
    halfway = start_ts + pd.Timedelta(days=total_days // 2)

    dates = pd.to_datetime(deals_df['funding_date'])
    funded = pd.to_numeric(deals_df['funded_amount'], errors='coerce').fillna(0.0)
    first_daily = float(funded[dates < halfway].sum()) / first_half_days
    second_daily = float(funded[dates >= halfway].sum()) / second_half_days
    growth = safe_div(second_daily - first_daily, first_daily)
    return growth, 1.0 + growth * MOMENTUM_WEIGHT


def forecast_period(
    current_period: Period,
    comparison_period: Period,
    current: PeriodMetrics,
    comparison_deals: pd.DataFrame,
    now: DateLike,
) -> ForecastData | None:
    """Project the current period's full total from last period's remaining run.

    The comparison period's remaining window starts the same number of days in
    as ``now`` sits in the current period. Returns None unless ``now`` falls
    inside the current period, before its last day.
    """
    now_ts = to_timestamp(now)
    if now_ts < current_period.start or now_ts >= current_period.end:
        return None

    growth, factor = momentum(current.deals, current_period.start, now_ts)
    elapsed = days_between(current_period.start, now_ts)
    remaining_start = comparison_period.start + pd.Timedelta(days=elapsed)
    remaining_deals = _deals_in(comparison_deals, remaining_start, comparison_period.end)
    remaining_total = float(pd.to_numeric(remaining_deals['funded_amount'], errors='coerce').fillna(0.0).sum()) if len(remaining_deals) else 0.0
    forecast_remaining = remaining_total * factor
    projected = current.total_funded + forecast_remaining

    weeks = math.ceil(days_between(now_ts, current_period.end) / 7)
    points: list[ForecastPoint] = []
    for week in range(weeks + 1):
        point_date = now_ts + pd.Timedelta(days=7 * week)
        if point_date > current_period.end:
            break
        value = current.total_funded + forecast_remaining * week / weeks
        points.append(ForecastPoint(date=point_date, value=value, label=f'{point_date:%b} {point_date.day}'))
    return ForecastData(projected_total=projected, growth_rate=growth, momentum_factor=factor, points=points)


def compare_periods(
    deals_df: pd.DataFrame,
    current_period: Period,
    comparison_period: Period,
    comparison_type: str = 'custom',
    now: DateLike | None = None,
) -> ComparisonResult:
    """Summaries for both periods, percent changes and, for yearly types, a forecast."""
    current_deals = _deals_in(deals_df, current_period.start, current_period.end)
    comparison_deals = _deals_in(deals_df, comparison_period.start, comparison_period.end)
    current = period_metrics(current_deals)
    comparison = period_metrics(comparison_deals)

    changes = {name: pct_change(getattr(current, name), getattr(comparison, name)) for name in CHANGE_METRICS}

    forecast = None
    if comparison_type in FORECAST_TYPES:
        if now is None:
            LOGGER.info('No reference date given; skipping %s forecast', comparison_type)
        else:
            forecast = forecast_period(current_period, comparison_period, current, comparison_deals, now)
    return ComparisonResult(current=current, comparison=comparison, percent_changes=changes, forecast=forecast)


def compare(deals_df: pd.DataFrame, config: ComparisonConfig, now: DateLike | None = None) -> ComparisonResult:
    return compare_periods(deals_df, config.current, config.comparison, config.comparison_type, now)
