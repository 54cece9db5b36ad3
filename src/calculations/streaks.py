"""Per-partner consistency and streak metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

from src.calculations.business_calendar import business_day_range
from src.calculations.deal_types import is_new_mask
from src.calculations.normalization import UNKNOWN_PARTNER
from src.utils.math_utils import round_half_up

MAX_BUSINESS_DAY_STREAK = 20
MAX_MULTI_DEAL_DAYS = 10
MAX_DEAL_TYPE_STREAK = 10

CONSISTENCY_COLUMNS = [
    'consecutive_business_days',
    'consecutive_new_deals',
    'consecutive_renewal_deals',
    'days_with_multiple_deals',
    'consistency_score',
]


@dataclass(frozen=True)
class ConsistencyMetrics:
    consecutive_business_days: int = 0
    consecutive_new_deals: int = 0
    consecutive_renewal_deals: int = 0
    days_with_multiple_deals: int = 0
    consistency_score: int = 0


def consecutive_business_days(deal_dates: pd.Series) -> int:
    """Business days with at least one deal, walking back from the latest deal day.

    Weekends and bank holidays are stepped over; the first business day with
    no deal ends the streak.
    """
    days = pd.to_datetime(deal_dates, errors='coerce').dropna().dt.normalize()
    if days.empty:
        return 0
    seen = set(days.tolist())
    streak = 0
    for day in reversed(business_day_range(days.min(), days.max())):
        if day not in seen:
            break
        streak += 1
    return streak


def _leading_run(flags: pd.Series) -> int:
    run = 0
    for flag in flags.tolist():
        if not flag:
            break
        run += 1
    return run


def compute_consistency_metrics(deals_df: pd.DataFrame) -> ConsistencyMetrics:
    """Streaks and a 0-100 consistency score for one set of deals."""
    if deals_df.empty:
        return ConsistencyMetrics()

    deals = deals_df.assign(_date=pd.to_datetime(deals_df['funding_date'], errors='coerce').dt.normalize())
    deals = deals.dropna(subset=['_date'])
    if deals.empty:
        return ConsistencyMetrics()
    # most recent first; same-day deals keep input order
    recent = deals.sort_values('_date', ascending=False, kind='mergesort')
    new_flags = is_new_mask(recent['deal_type'])

    business_streak = consecutive_business_days(recent['_date'])
    new_streak = _leading_run(new_flags)
    renewal_streak = _leading_run(~new_flags)
    multi_days = int((recent.groupby('_date').size() >= 2).sum())

    score = (
        min(business_streak / MAX_BUSINESS_DAY_STREAK, 1.0) * 40
        + min(multi_days / MAX_MULTI_DEAL_DAYS, 1.0) * 30
        + min(max(new_streak, renewal_streak) / MAX_DEAL_TYPE_STREAK, 1.0) * 30
    )
    return ConsistencyMetrics(
        consecutive_business_days=business_streak,
        consecutive_new_deals=new_streak,
        consecutive_renewal_deals=renewal_streak,
        days_with_multiple_deals=multi_days,
        consistency_score=round_half_up(score),
    )


def compute_all_partner_consistency(deals_df: pd.DataFrame, group_col: str = 'partner_normalized') -> pd.DataFrame:
    """One row of consistency metrics per normalized partner, UNKNOWN excluded."""
    rows = []
    if not deals_df.empty:
        for partner, partner_deals in deals_df.groupby(group_col, sort=False):
            if partner == UNKNOWN_PARTNER:
                continue
            rows.append({'partner': partner, **asdict(compute_consistency_metrics(partner_deals))})
    return pd.DataFrame(rows, columns=['partner'] + CONSISTENCY_COLUMNS)
