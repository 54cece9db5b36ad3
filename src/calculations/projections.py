"""Month-to-date pacing and month-end projection on a business-day basis."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from src.calculations.business_calendar import business_days_between
from src.utils.date_utils import days_between, in_range, month_end, month_start, to_timestamp
from src.utils.math_utils import safe_div, safe_pct

MIN_BUSINESS_DAYS_FOR_BURN_PROJECTION = 3
BURN_RATE_TOLERANCE_PCT = 10.0
PACE_TOLERANCE_POINTS = 5.0


@dataclass(frozen=True)
class MTDMetrics:
    mtd_funded: float
    mtd_deals: int
    mtd_avg_ticket: float
    monthly_target: float
    target_progress: float
    remaining_to_target: float
    days_elapsed: int
    days_remaining: int
    days_in_month: int
    business_days_elapsed: int
    business_days_remaining: int
    business_days_in_month: int
    month_progress: float
    projected_month_end: float
    projected_vs_target: float
    projection_confidence: str
    daily_burn_rate: float
    business_daily_burn_rate: float
    target_daily_burn_rate: float
    burn_rate_status: str
    required_daily_pace: float
    current_pace_vs_required: float
    pace_status: str


def monthly_target_from_annual(annual_target: float) -> float:
    return float(annual_target) / 12.0


def _band(value: float, reference: float, tolerance: float) -> str:
    if value > reference + tolerance:
        return 'Ahead'
    if value < reference - tolerance:
        return 'Behind'
    return 'On Track'


def _confidence(business_days_elapsed: int) -> str:
    if business_days_elapsed >= 10:
        return 'High'
    if business_days_elapsed >= 5:
        return 'Medium'
    return 'Low'


def project_month_end(
    deals_df: pd.DataFrame,
    monthly_target: float,
    today: pd.Timestamp | datetime | date | str,
) -> MTDMetrics:
    """Pace the current month against ``monthly_target`` as of ``today``.

    Only deals funded between the first of the month and ``today`` (inclusive)
    count. The burn rate is measured per business day; with fewer than three
    business days elapsed the projection falls back to the calendar share of
    the target.
    """
    today_ts = to_timestamp(today)
    first = month_start(today_ts)
    last = month_end(today_ts)

    if deals_df.empty:
        mtd = deals_df
    else:
        mtd = deals_df.loc[in_range(deals_df['funding_date'], first, today_ts)]
    mtd_funded = float(pd.to_numeric(mtd['funded_amount'], errors='coerce').fillna(0.0).sum()) if len(mtd) else 0.0
    mtd_deals = int(len(mtd))
    target = float(monthly_target)

    days_elapsed = days_between(first, today_ts) + 1
    days_in_month = days_between(first, last) + 1
    days_remaining = days_in_month - days_elapsed
    month_progress = safe_pct(days_elapsed, days_in_month)

    bd_elapsed = business_days_between(first, today_ts)
    bd_total = business_days_between(first, last)
    bd_remaining = bd_total - bd_elapsed

    business_burn = safe_div(mtd_funded, bd_elapsed)
    target_daily = safe_div(target, bd_total)
    burn_diff_pct = safe_pct(business_burn - target_daily, target_daily)

    if bd_elapsed >= MIN_BUSINESS_DAYS_FOR_BURN_PROJECTION:
        projected = business_burn * bd_total
    else:
        projected = target * safe_div(days_elapsed, days_in_month)

    target_progress = safe_pct(mtd_funded, target)
    remaining = max(0.0, target - mtd_funded)
    required = safe_div(remaining, bd_remaining)

    return MTDMetrics(
        mtd_funded=mtd_funded,
        mtd_deals=mtd_deals,
        mtd_avg_ticket=safe_div(mtd_funded, mtd_deals),
        monthly_target=target,
        target_progress=target_progress,
        remaining_to_target=remaining,
        days_elapsed=days_elapsed,
        days_remaining=days_remaining,
        days_in_month=days_in_month,
        business_days_elapsed=bd_elapsed,
        business_days_remaining=bd_remaining,
        business_days_in_month=bd_total,
        month_progress=month_progress,
        projected_month_end=projected,
        projected_vs_target=projected - target,
        projection_confidence=_confidence(bd_elapsed),
        daily_burn_rate=safe_div(mtd_funded, days_elapsed),
        business_daily_burn_rate=business_burn,
        target_daily_burn_rate=target_daily,
        burn_rate_status=_band(burn_diff_pct, 0.0, BURN_RATE_TOLERANCE_PCT),
        required_daily_pace=required,
        current_pace_vs_required=safe_pct(business_burn - required, required),
        pace_status=_band(target_progress, month_progress, PACE_TOLERANCE_POINTS),
    )
