"""Date presets and record filters for deals and submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from src.calculations.deal_types import is_new_mask, normalize_lifecycle, ticket_size_bucket
from src.calculations.normalization import UNKNOWN_PARTNER, channel_type
from src.utils.date_utils import in_range, month_end, month_start, quarter_end, quarter_start, to_timestamp, year_end, year_start

DATE_PRESETS = [
    'mtd',
    'today',
    'yesterday',
    'last7',
    'last30',
    'last60',
    'qtd',
    'ytd',
    'lastMonth',
    'lastQuarter',
    'lastYear',
    'last12months',
    'all',
    'custom',
]
DEAL_TYPE_CHOICES = ('all', 'new', 'renewal')

DateLike = pd.Timestamp | datetime | date | str


@dataclass(frozen=True)
class DealFilters:
    date_preset: str = 'all'
    custom_start: DateLike | None = None
    custom_end: DateLike | None = None
    deal_type: str = 'all'
    partners: list[str] = field(default_factory=list)
    channel_types: list[str] = field(default_factory=list)
    lifecycle_types: list[str] = field(default_factory=list)
    ticket_size_buckets: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionFilters:
    date_preset: str = 'all'
    custom_start: DateLike | None = None
    custom_end: DateLike | None = None
    isos: list[str] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)
    offer_size_buckets: list[str] = field(default_factory=list)
    pipeline_age_buckets: list[str] = field(default_factory=list)
    reps: list[str] = field(default_factory=list)


def available_years(dates: pd.Series) -> list[int]:
    """Distinct years, most recent first."""
    parsed = pd.to_datetime(dates, errors='coerce').dropna()
    return sorted({int(y) for y in parsed.dt.year}, reverse=True)


def date_presets(dates: pd.Series) -> list[str]:
    """Base presets plus one `year-YYYY` preset per year when data spans several years."""
    presets = [p for p in DATE_PRESETS if p != 'custom']
    years = available_years(dates)
    if len(years) > 1:
        presets.extend(f'year-{y}' for y in years)
    presets.append('custom')
    return presets


def _check_preset(preset: str) -> None:
    if preset in DATE_PRESETS:
        return
    if preset.startswith('year-') and preset[len('year-'):].isdigit():
        return
    raise ValueError(f'Unknown date preset: {preset!r}')


def date_range_from_preset(preset: str, reference_date: DateLike) -> tuple[pd.Timestamp, pd.Timestamp] | None:
    """Inclusive (start, end) for a preset relative to ``reference_date``.

    Returns None for ``all`` and ``custom``, which carry no implied range.
    """
    _check_preset(preset)
    ref = to_timestamp(reference_date)
    if preset.startswith('year-'):
        year = int(preset[len('year-'):])
        return pd.Timestamp(year=year, month=1, day=1), pd.Timestamp(year=year, month=12, day=31)
    if preset in ('all', 'custom'):
        return None
    if preset == 'today':
        return ref, ref
    if preset == 'yesterday':
        day = ref - pd.Timedelta(days=1)
        return day, day
    if preset in ('last7', 'last30', 'last60'):
        return ref - pd.Timedelta(days=int(preset[4:])), ref
    if preset == 'qtd':
        return quarter_start(ref), ref
    if preset == 'ytd':
        return year_start(ref), ref
    if preset == 'lastMonth':
        prev = ref - pd.DateOffset(months=1)
        return month_start(prev), month_end(prev)
    if preset == 'lastQuarter':
        prev = ref - pd.DateOffset(months=3)
        return quarter_start(prev), quarter_end(prev)
    if preset == 'lastYear':
        prev = pd.Timestamp(year=ref.year - 1, month=1, day=1)
        return prev, year_end(prev)
    if preset == 'last12months':
        return ref - pd.DateOffset(months=12), ref
    # mtd
    return month_start(ref), ref


def _date_mask(
    dates: pd.Series,
    preset: str,
    custom_start: DateLike | None,
    custom_end: DateLike | None,
    reference_date: DateLike | None,
) -> pd.Series:
    _check_preset(preset)
    if preset == 'all':
        return pd.Series(True, index=dates.index)
    if preset == 'custom':
        if custom_start is None:
            return pd.Series(True, index=dates.index)
        normalized = pd.to_datetime(dates).dt.normalize()
        mask = normalized >= to_timestamp(custom_start)
        if custom_end is not None:
            mask &= normalized <= to_timestamp(custom_end)
        return mask
    if reference_date is None:
        if dates.dropna().empty:
            return pd.Series(False, index=dates.index)
        reference_date = pd.to_datetime(dates).max()
    start, end = date_range_from_preset(preset, reference_date)
    return in_range(dates, start, end)


def apply_deal_filters(deals_df: pd.DataFrame, filters: DealFilters, reference_date: DateLike | None = None) -> pd.DataFrame:
    """Deals passing every active filter; presets default to the latest funding date as reference."""
    if filters.deal_type not in DEAL_TYPE_CHOICES:
        raise ValueError(f'Unknown deal type filter: {filters.deal_type!r}')
    if deals_df.empty:
        return deals_df.copy()

    mask = _date_mask(deals_df['funding_date'], filters.date_preset, filters.custom_start, filters.custom_end, reference_date)
    if filters.deal_type != 'all':
        new = is_new_mask(deals_df['deal_type'])
        mask &= new if filters.deal_type == 'new' else ~new
    if filters.partners:
        mask &= deals_df['partner_normalized'].isin(filters.partners)
    if filters.channel_types:
        mask &= deals_df['partner_normalized'].map(channel_type).isin(filters.channel_types)
    if filters.lifecycle_types:
        mask &= deals_df['deal_type'].map(normalize_lifecycle).isin(filters.lifecycle_types)
    if filters.ticket_size_buckets:
        mask &= deals_df['funded_amount'].map(ticket_size_bucket).isin(filters.ticket_size_buckets)
    return deals_df.loc[mask].copy()


def apply_submission_filters(
    submissions_df: pd.DataFrame,
    filters: SubmissionFilters,
    reference_date: DateLike | None = None,
) -> pd.DataFrame:
    """Submissions passing every active filter; dates are matched on ``lead_submitted``."""
    if submissions_df.empty:
        return submissions_df.copy()
    mask = _date_mask(submissions_df['lead_submitted'], filters.date_preset, filters.custom_start, filters.custom_end, reference_date)
    for column, wanted in (
        ('iso_normalized', filters.isos),
        ('stage_category', filters.stages),
        ('offer_size_bucket', filters.offer_size_buckets),
        ('pipeline_age_bucket', filters.pipeline_age_buckets),
        ('rep', filters.reps),
    ):
        if wanted:
            mask &= submissions_df[column].isin(wanted)
    return submissions_df.loc[mask].copy()


def deal_filter_options(deals_df: pd.DataFrame) -> dict[str, list[str]]:
    if deals_df.empty:
        return {'partners': [], 'months': [], 'quarters': []}
    dates = pd.to_datetime(deals_df['funding_date'])
    return {
        'partners': sorted(deals_df['partner_normalized'].dropna().astype(str).unique().tolist()),
        'months': sorted(dates.dt.strftime('%Y-%m').unique().tolist()),
        'quarters': sorted({f'Q{q} {y}' for y, q in zip(dates.dt.year, dates.dt.quarter)}),
    }


def submission_filter_options(submissions_df: pd.DataFrame) -> dict[str, list[str]]:
    isos = {str(v) for v in submissions_df.get('iso_normalized', pd.Series(dtype=object)).dropna()} - {UNKNOWN_PARTNER}
    reps = {str(v) for v in submissions_df.get('rep', pd.Series(dtype=object)).dropna() if str(v).strip()}
    return {'isos': sorted(isos), 'reps': sorted(reps)}
