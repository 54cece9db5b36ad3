"""Group-level deal and submission aggregates.

Every aggregate is recomputed from the record frame passed in. Group keys are
normalized partner / ISO names and the UNKNOWN sentinel group is never
published, although overall totals still include it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import pandas as pd

from src.calculations.deal_types import is_new_mask
from src.calculations.normalization import UNKNOWN_PARTNER, apply_partner_merges, channel_type
from src.calculations.streaks import compute_all_partner_consistency
from src.utils.math_utils import safe_div, safe_div_series, safe_pct

DEFAULT_MONTHLY_TARGET = 30_000_000.0

GROUP_AGGREGATE_COLUMNS = [
    'count',
    'total_amount',
    'total_fees',
    'avg_ticket',
    'avg_fee_percent',
    'new_count',
    'renewal_count',
    'new_amount',
    'renewal_amount',
]

PARTNER_METRIC_COLUMNS = [
    'partner',
    'channel_type',
    'total_funded',
    'total_fees',
    'deal_count',
    'avg_ticket_size',
    'avg_fee_percent',
    'new_deals_count',
    'renewal_deals_count',
]


@dataclass(frozen=True)
class DealSummary:
    total_funded: float
    total_fees: float
    deal_count: int
    avg_ticket_size: float
    avg_fee_percent: float
    monthly_target: float
    target_progress: float
    new_deals_funded: float
    renewal_deals_funded: float


def sort_metrics(df: pd.DataFrame, sort_by: str, ascending: bool = False) -> pd.DataFrame:
    """Stable sort; ties keep their current row order."""
    if df.empty or sort_by not in df.columns:
        return df.reset_index(drop=True)
    return df.sort_values(sort_by, ascending=ascending, kind='mergesort').reset_index(drop=True)


def aggregate_by_group(
    df: pd.DataFrame,
    group_col: str,
    amount_col: str = 'funded_amount',
    fee_col: str = 'mgmt_fee_total',
    type_col: str | None = 'deal_type',
) -> pd.DataFrame:
    """Count, sums, averages and New/Renewal split per group in first-seen order."""
    columns = [group_col] + GROUP_AGGREGATE_COLUMNS
    if df.empty:
        return pd.DataFrame(columns=columns)

    work = df.loc[df[group_col] != UNKNOWN_PARTNER].copy()
    if work.empty:
        return pd.DataFrame(columns=columns)
    work['_amount'] = pd.to_numeric(work[amount_col], errors='coerce').fillna(0.0)
    work['_fee'] = pd.to_numeric(work[fee_col], errors='coerce').fillna(0.0) if fee_col else 0.0
    if type_col and type_col in work.columns:
        work['_is_new'] = is_new_mask(work[type_col])
    else:
        work['_is_new'] = False
    work['_new_amount'] = work['_amount'].where(work['_is_new'], 0.0)

    grouped = work.groupby(group_col, sort=False).agg(
        count=('_amount', 'size'),
        total_amount=('_amount', 'sum'),
        total_fees=('_fee', 'sum'),
        new_count=('_is_new', 'sum'),
        new_amount=('_new_amount', 'sum'),
    )
    grouped = grouped.reset_index()
    grouped['count'] = grouped['count'].astype(int)
    grouped['new_count'] = grouped['new_count'].astype(int)
    grouped['renewal_count'] = grouped['count'] - grouped['new_count']
    grouped['renewal_amount'] = grouped['total_amount'] - grouped['new_amount']
    grouped['avg_ticket'] = safe_div_series(grouped['total_amount'], grouped['count'])
    grouped['avg_fee_percent'] = safe_div_series(grouped['total_fees'], grouped['total_amount']) * 100.0
    return grouped[columns]


def compute_deal_summary(deals_df: pd.DataFrame, monthly_target: float = DEFAULT_MONTHLY_TARGET) -> DealSummary:
    """Headline totals across all deals, UNKNOWN partners included."""
    funded = pd.to_numeric(deals_df['funded_amount'], errors='coerce').fillna(0.0) if not deals_df.empty else pd.Series(dtype=float)
    fees = pd.to_numeric(deals_df['mgmt_fee_total'], errors='coerce').fillna(0.0) if not deals_df.empty else pd.Series(dtype=float)
    total_funded = float(funded.sum())
    total_fees = float(fees.sum())
    deal_count = int(len(deals_df))
    new_mask = is_new_mask(deals_df['deal_type']) if not deals_df.empty else pd.Series(dtype=bool)
    new_funded = float(funded[new_mask].sum()) if deal_count else 0.0
    return DealSummary(
        total_funded=total_funded,
        total_fees=total_fees,
        deal_count=deal_count,
        avg_ticket_size=safe_div(total_funded, deal_count),
        avg_fee_percent=safe_pct(total_fees, total_funded),
        monthly_target=float(monthly_target),
        target_progress=safe_pct(total_funded, monthly_target),
        new_deals_funded=new_funded,
        renewal_deals_funded=total_funded - new_funded,
    )


def compute_partner_metrics(
    deals_df: pd.DataFrame,
    merges: Mapping[str, list[str]] | None = None,
    sort_by: str = 'total_funded',
    ascending: bool = False,
    include_consistency: bool = True,
) -> pd.DataFrame:
    """Per-partner deal metrics with optional consistency / streak columns."""
    deals = apply_partner_merges(deals_df, merges)
    grouped = aggregate_by_group(deals, 'partner_normalized')
    out = grouped.rename(
        columns={
            'partner_normalized': 'partner',
            'total_amount': 'total_funded',
            'count': 'deal_count',
            'avg_ticket': 'avg_ticket_size',
            'new_count': 'new_deals_count',
            'renewal_count': 'renewal_deals_count',
        }
    )
    out['channel_type'] = out['partner'].map(channel_type)
    out = out[PARTNER_METRIC_COLUMNS]
    if include_consistency and not out.empty:
        consistency = compute_all_partner_consistency(deals)
        out = out.merge(consistency, on='partner', how='left')
    return sort_metrics(out, sort_by, ascending)


def compute_iso_metrics(
    submissions_df: pd.DataFrame,
    sort_by: str = 'total_submissions',
    ascending: bool = False,
) -> pd.DataFrame:
    """Per-ISO pipeline metrics, sorted by submission volume unless told otherwise."""
    columns = [
        'iso',
        'total_submissions',
        'avg_offer_amount',
        'min_offer',
        'max_offer',
        'offers_made',
        'avg_days_in_pipeline',
        'unique_reps',
        'reps',
        'submissions_by_month',
    ]
    rows: list[dict[str, object]] = []
    if submissions_df.empty:
        return pd.DataFrame(columns=columns)

    for iso, subs in submissions_df.groupby('iso_normalized', sort=False):
        if iso == UNKNOWN_PARTNER:
            continue
        offers = pd.to_numeric(subs['offer_amount'], errors='coerce').fillna(0.0)
        positive = offers[offers > 0]
        reps = [r for r in dict.fromkeys(subs['rep'].fillna('').astype(str).tolist()) if r.strip()]
        rows.append(
            {
                'iso': iso,
                'total_submissions': int(len(subs)),
                'avg_offer_amount': float(positive.mean()) if not positive.empty else 0.0,
                'min_offer': float(positive.min()) if not positive.empty else 0.0,
                'max_offer': float(positive.max()) if not positive.empty else 0.0,
                'offers_made': int(subs['stage_category'].isin(['Offered', 'Funded']).sum()),
                'avg_days_in_pipeline': float(subs['days_in_pipeline'].mean()) if len(subs) else 0.0,
                'unique_reps': len(reps),
                'reps': reps,
                'submissions_by_month': subs['submission_month'].value_counts(sort=False).to_dict(),
            }
        )
    return sort_metrics(pd.DataFrame(rows, columns=columns), sort_by, ascending)


def top_isos_by_volume(iso_metrics: pd.DataFrame, n: int = 5) -> list[str]:
    return iso_metrics['iso'].head(n).astype(str).tolist()


def submission_timeline(submissions_df: pd.DataFrame, isos: list[str]) -> pd.DataFrame:
    """Month x ISO submission counts for the selected ISOs, months ascending."""
    months = sorted(submissions_df['submission_month'].dropna().unique().tolist())
    subset = submissions_df[submissions_df['iso_normalized'].isin(isos)]
    table = pd.crosstab(subset['submission_month'], subset['iso_normalized'])
    table = table.reindex(index=months, columns=isos, fill_value=0)
    table.index.name = 'month'
    table.columns.name = None
    return table.reset_index()
