"""Submission-to-funding conversion metrics per ISO, per rep and per month."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from src.calculations.aggregation import sort_metrics
from src.calculations.normalization import UNKNOWN_PARTNER
from src.utils.math_utils import safe_div, safe_pct

LEADERBOARD_SORTS = {
    'conversion': 'overall_conversion_rate',
    'revenue': 'total_revenue',
    'volume': 'total_submissions',
}

CONVERSION_COLUMNS = [
    'iso',
    'total_submissions',
    'funded_count',
    'offered_count',
    'overall_conversion_rate',
    'submission_to_offer_rate',
    'offer_to_funded_rate',
    'total_revenue',
    'avg_days_to_fund',
    'min_days_to_fund',
    'max_days_to_fund',
    'avg_offer_to_funded_ratio',
    'avg_offer_amount',
    'avg_funded_amount',
]

REP_COLUMNS = [
    'rep',
    'iso',
    'total_submissions',
    'funded_count',
    'offered_count',
    'overall_conversion_rate',
    'submission_to_offer_rate',
    'offer_to_funded_rate',
    'total_revenue',
    'avg_offer_amount',
    'avg_funded_amount',
    'avg_days_to_fund',
    'offer_accuracy_rate',
    'rank_within_iso',
    'total_reps_in_iso',
]

TREND_COLUMNS = ['month', 'iso', 'submissions', 'funded', 'offers', 'conversion_rate', 'revenue']


@dataclass(frozen=True)
class ConversionStats:
    total_submissions: int
    funded_count: int
    offered_count: int
    overall_conversion_rate: float
    submission_to_offer_rate: float
    offer_to_funded_rate: float
    total_revenue: float
    avg_days_to_fund: float


def _funnel(subs: pd.DataFrame) -> dict[str, float]:
    """Counts and the three conversion rates for one group of enriched submissions."""
    total = int(len(subs))
    funded_mask = subs['is_funded'].astype(bool)
    funded = int(funded_mask.sum())
    offered = int(((subs['funding_status'] == 'Offered') | funded_mask).sum())
    return {
        'total_submissions': total,
        'funded_count': funded,
        'offered_count': offered,
        'overall_conversion_rate': safe_pct(funded, total),
        'submission_to_offer_rate': safe_pct(offered, total),
        'offer_to_funded_rate': safe_pct(funded, offered),
        'total_revenue': float(pd.to_numeric(subs.loc[funded_mask, 'management_fee'], errors='coerce').fillna(0.0).sum()),
    }


def _mean_or_zero(values: pd.Series) -> float:
    values = pd.to_numeric(values, errors='coerce').dropna()
    return float(values.mean()) if not values.empty else 0.0


def compute_conversion_metrics(
    enriched_df: pd.DataFrame,
    sort_by: str = 'total_submissions',
    ascending: bool = False,
) -> pd.DataFrame:
    """Conversion funnel per normalized ISO, sorted by submission volume unless told otherwise."""
    rows: list[dict[str, object]] = []
    if enriched_df.empty:
        return pd.DataFrame(columns=CONVERSION_COLUMNS)

    for iso, subs in enriched_df.groupby('iso_normalized', sort=False):
        if iso == UNKNOWN_PARTNER:
            continue
        funded = subs[subs['is_funded'].astype(bool)]
        days = pd.to_numeric(funded['days_to_fund'], errors='coerce').dropna()
        offers = pd.to_numeric(subs['offer_amount'], errors='coerce')
        funded_amounts = pd.to_numeric(funded['funded_amount'], errors='coerce')
        row: dict[str, object] = {'iso': iso, **_funnel(subs)}
        row.update(
            avg_days_to_fund=float(days.mean()) if not days.empty else 0.0,
            min_days_to_fund=float(days.min()) if not days.empty else np.nan,
            max_days_to_fund=float(days.max()) if not days.empty else np.nan,
            avg_offer_to_funded_ratio=_mean_or_zero(funded['offer_to_funded_ratio']),
            avg_offer_amount=_mean_or_zero(offers[offers > 0]),
            avg_funded_amount=_mean_or_zero(funded_amounts[funded_amounts > 0]),
        )
        rows.append(row)
    return sort_metrics(pd.DataFrame(rows, columns=CONVERSION_COLUMNS), sort_by, ascending)


def compute_overall_conversion_stats(enriched_df: pd.DataFrame) -> ConversionStats:
    """Funnel across every submission, UNKNOWN ISOs included."""
    if enriched_df.empty:
        return ConversionStats(0, 0, 0, 0.0, 0.0, 0.0, 0.0, 0.0)
    funnel = _funnel(enriched_df)
    funded = enriched_df[enriched_df['is_funded'].astype(bool)]
    days = pd.to_numeric(funded['days_to_fund'], errors='coerce').fillna(0.0)
    return ConversionStats(avg_days_to_fund=safe_div(days.sum(), len(funded)), **funnel)


def compute_rep_performance(enriched_df: pd.DataFrame) -> pd.DataFrame:
    """Per (ISO, rep) funnel with each rep ranked by conversion inside its ISO."""
    if enriched_df.empty:
        return pd.DataFrame(columns=REP_COLUMNS)
    reps = enriched_df['rep'].fillna('').astype(str)
    named = enriched_df[reps.str.strip() != '']
    rows: list[dict[str, object]] = []
    for (iso, rep), subs in named.groupby(['iso_normalized', 'rep'], sort=False):
        funded = subs[subs['is_funded'].astype(bool)]
        offers = pd.to_numeric(subs['offer_amount'], errors='coerce').fillna(0.0)
        funded_amounts = pd.to_numeric(funded['funded_amount'], errors='coerce').fillna(0.0)
        funded_offers = pd.to_numeric(funded['offer_amount'], errors='coerce').fillna(0.0)
        accuracy = (funded_amounts / funded_offers.where(funded_offers > 0))[funded_amounts > 0].dropna()
        row: dict[str, object] = {'rep': rep, 'iso': iso, **_funnel(subs)}
        row.update(
            avg_offer_amount=safe_div(offers.sum(), len(subs)),
            avg_funded_amount=safe_div(funded_amounts.sum(), len(funded)),
            avg_days_to_fund=safe_div(pd.to_numeric(funded['days_to_fund'], errors='coerce').fillna(0.0).sum(), len(funded)),
            offer_accuracy_rate=float(accuracy.mean()) * 100.0 if not accuracy.empty else 0.0,
        )
        rows.append(row)

    out = pd.DataFrame(rows, columns=REP_COLUMNS)
    if out.empty:
        return out
    ordered = out.sort_values('overall_conversion_rate', ascending=False, kind='mergesort')
    out['rank_within_iso'] = ordered.groupby('iso', sort=False).cumcount().reindex(out.index) + 1
    out['total_reps_in_iso'] = out.groupby('iso')['rep'].transform('size')
    return out


def reps_for_iso(rep_df: pd.DataFrame, iso: str) -> pd.DataFrame:
    return sort_metrics(rep_df[rep_df['iso'] == iso], 'overall_conversion_rate')


def rep_leaderboard(rep_df: pd.DataFrame, sort_by: str = 'conversion', min_submissions: int = 5) -> pd.DataFrame:
    """Reps with at least ``min_submissions`` ranked by conversion, revenue or volume."""
    if sort_by not in LEADERBOARD_SORTS:
        raise ValueError(f'Unknown leaderboard sort: {sort_by!r}')
    qualified = rep_df[rep_df['total_submissions'] >= min_submissions]
    return sort_metrics(qualified, LEADERBOARD_SORTS[sort_by])


def compute_iso_monthly_trends(enriched_df: pd.DataFrame) -> pd.DataFrame:
    """Submissions, funded, offers, conversion rate and revenue per (ISO, month)."""
    rows: list[dict[str, object]] = []
    if not enriched_df.empty:
        for (iso, month), subs in enriched_df.groupby(['iso_normalized', 'submission_month'], sort=False):
            funnel = _funnel(subs)
            rows.append(
                {
                    'month': month,
                    'iso': iso,
                    'submissions': funnel['total_submissions'],
                    'funded': funnel['funded_count'],
                    'offers': funnel['offered_count'],
                    'conversion_rate': funnel['overall_conversion_rate'],
                    'revenue': funnel['total_revenue'],
                }
            )
    return sort_metrics(pd.DataFrame(rows, columns=TREND_COLUMNS), 'month', ascending=True)


def conversion_trend_direction(trends: pd.DataFrame, iso: str, months: int = 3) -> float:
    """Newest minus oldest conversion rate over the latest ``months`` months of ``iso``."""
    recent = trends[trends['iso'] == iso].sort_values('month', ascending=False, kind='mergesort').head(months)
    if len(recent) < 2:
        return 0.0
    return float(recent['conversion_rate'].iloc[0] - recent['conversion_rate'].iloc[-1])


def conversion_std_dev(trends: pd.DataFrame, iso: str) -> float:
    """Population standard deviation of monthly conversion rates; 0 below two months."""
    rates = trends.loc[trends['iso'] == iso, 'conversion_rate'].astype(float)
    if len(rates) < 2:
        return 0.0
    return float(np.std(rates.to_numpy()))


def conversion_trend_table(trends: pd.DataFrame, isos: list[str]) -> pd.DataFrame:
    """Month x ISO conversion-rate table; months without data show 0."""
    months = sorted(trends['month'].unique().tolist())
    table = trends[trends['iso'].isin(isos)].pivot_table(
        index='month', columns='iso', values='conversion_rate', aggfunc='first'
    )
    table = table.reindex(index=months, columns=isos).fillna(0.0)
    table.index.name = 'month'
    table.columns.name = None
    return table.reset_index()
