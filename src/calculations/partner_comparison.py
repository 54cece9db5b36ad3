"""Partner rankings, head-to-head comparison and radar profiles."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from src.utils.math_utils import safe_div, safe_pct

RANK_FIELDS = {
    'funded_rank': 'total_funded',
    'fee_rank': 'total_fees',
    'deal_count_rank': 'deal_count',
    'avg_ticket_rank': 'avg_ticket_size',
}

HEAD_TO_HEAD_FIELDS = [
    ('Total Funded', 'total_funded'),
    ('Total Fees', 'total_fees'),
    ('Deal Count', 'deal_count'),
    ('Avg Ticket Size', 'avg_ticket_size'),
    ('Avg Fee %', 'avg_fee_percent'),
    ('New Deals', 'new_deals_count'),
    ('Renewals', 'renewal_deals_count'),
]

RADAR_FIELDS = [
    ('Volume', 'total_funded'),
    ('Fees', 'total_fees'),
    ('Deal Count', 'deal_count'),
    ('Avg Ticket', 'avg_ticket_size'),
    ('Fee %', 'avg_fee_percent'),
]


@dataclass(frozen=True)
class HeadToHead:
    label: str
    partner1_value: float
    partner2_value: float
    winner: str
    difference: float
    difference_percent: float


def _positional_rank(values: pd.Series) -> pd.Series:
    order = values.sort_values(ascending=False, kind='mergesort').index
    return pd.Series(range(1, len(order) + 1), index=order).reindex(values.index)


def rank_partners(partner_metrics: pd.DataFrame) -> pd.DataFrame:
    """Partners ordered by funded volume with per-metric ranks and a percentile rank."""
    if partner_metrics.empty:
        return partner_metrics.assign(rank=pd.Series(dtype=int), percentile_rank=pd.Series(dtype=float))
    out = partner_metrics.reset_index(drop=True).copy()
    for rank_col, metric in RANK_FIELDS.items():
        out[rank_col] = _positional_rank(out[metric].astype(float))
    out['rank'] = out['funded_rank']
    n = len(out)
    out['percentile_rank'] = (n - out['rank'] + 1) / n * 100.0
    return out.sort_values('rank', kind='mergesort').reset_index(drop=True)


def compare_partners(partner1: pd.Series, partner2: pd.Series) -> list[HeadToHead]:
    """Metric-by-metric comparison of two partner metric rows.

    ``difference_percent`` is the gap relative to the smaller value.
    """
    rows: list[HeadToHead] = []
    for label, column in HEAD_TO_HEAD_FIELDS:
        v1 = float(partner1[column])
        v2 = float(partner2[column])
        diff = v1 - v2
        if diff > 0:
            winner, loser = 'partner1', v2
        elif diff < 0:
            winner, loser = 'partner2', v1
        else:
            winner, loser = 'tie', v1
        rows.append(
            HeadToHead(
                label=label,
                partner1_value=v1,
                partner2_value=v2,
                winner=winner,
                difference=abs(diff),
                difference_percent=safe_pct(abs(diff), loser) if loser > 0 else 0.0,
            )
        )
    return rows


def partner_radar(partner: pd.Series, all_partners: pd.DataFrame) -> dict[str, float]:
    """Each radar metric scaled 0-100 against the best partner's value."""
    radar: dict[str, float] = {}
    for label, column in RADAR_FIELDS:
        best = float(all_partners[column].max()) if not all_partners.empty else 0.0
        radar[label] = safe_div(float(partner[column]), best) * 100.0 if best > 0 else 0.0
    return radar
