"""Weekly and monthly funding trends."""

from __future__ import annotations

import pandas as pd

from src.calculations.deal_types import is_new_mask
from src.utils.math_utils import safe_div_series

DEFAULT_ANNUAL_TARGET = 360_000_000.0

TREND_VALUE_COLUMNS = ['total_funded', 'deal_count', 'avg_ticket', 'new_deals_funded', 'renewal_deals_funded', 'fees']


def _period_totals(deals_df: pd.DataFrame, freq: str) -> pd.DataFrame:
    dates = pd.to_datetime(deals_df['funding_date'], errors='coerce')
    funded = pd.to_numeric(deals_df['funded_amount'], errors='coerce').fillna(0.0)
    work = pd.DataFrame(
        {
            'period': dates.dt.to_period(freq),
            'funded': funded,
            'new_funded': funded.where(is_new_mask(deals_df['deal_type']), 0.0),
            'fees': pd.to_numeric(deals_df['mgmt_fee_total'], errors='coerce').fillna(0.0),
        }
    ).dropna(subset=['period'])
    grouped = work.groupby('period', sort=True).agg(
        total_funded=('funded', 'sum'),
        deal_count=('funded', 'size'),
        new_deals_funded=('new_funded', 'sum'),
        fees=('fees', 'sum'),
    )
    grouped['deal_count'] = grouped['deal_count'].astype(int)
    grouped['avg_ticket'] = safe_div_series(grouped['total_funded'], grouped['deal_count'])
    grouped['renewal_deals_funded'] = grouped['total_funded'] - grouped['new_deals_funded']
    return grouped[TREND_VALUE_COLUMNS]


def compute_weekly_trends(deals_df: pd.DataFrame) -> pd.DataFrame:
    """Monday-to-Sunday weeks that contain at least one deal."""
    columns = ['week_start', 'week_end', 'week_label'] + TREND_VALUE_COLUMNS
    if deals_df.empty:
        return pd.DataFrame(columns=columns)
    grouped = _period_totals(deals_df, 'W-SUN')
    out = grouped.reset_index()
    out['week_start'] = out['period'].dt.start_time.dt.normalize()
    out['week_end'] = out['period'].dt.end_time.dt.normalize()
    out['week_label'] = [f'{s:%b} {s.day} - {e:%b} {e.day}' for s, e in zip(out['week_start'], out['week_end'])]
    return out[columns]


def compute_monthly_trends(deals_df: pd.DataFrame, annual_target: float = DEFAULT_ANNUAL_TARGET) -> pd.DataFrame:
    """Calendar months that contain at least one deal, with progress toward the monthly target."""
    columns = ['month', 'month_label'] + TREND_VALUE_COLUMNS + ['target_amount', 'target_progress']
    if deals_df.empty:
        return pd.DataFrame(columns=columns)
    grouped = _period_totals(deals_df, 'M')
    out = grouped.reset_index()
    out['month'] = out['period'].dt.start_time.dt.normalize()
    out['month_label'] = out['month'].dt.strftime('%b %Y')
    monthly_target = float(annual_target) / 12.0
    out['target_amount'] = monthly_target
    out['target_progress'] = safe_div_series(out['total_funded'], monthly_target) * 100.0
    return out[columns]


def compute_cumulative_trends(monthly_trends: pd.DataFrame) -> pd.DataFrame:
    """Running funded total across the monthly trend rows."""
    out = monthly_trends.copy()
    out['total_funded'] = out['total_funded'].astype(float).cumsum()
    return out
