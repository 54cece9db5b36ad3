"""Derived submission fields: buckets, stage category and pipeline age."""

from __future__ import annotations

from datetime import date, datetime

import numpy as np
import pandas as pd

from src.utils.date_utils import to_timestamp

STAGE_CATEGORIES = ['Submitted', 'In Review', 'Offered', 'Funded', 'Other']

OFFER_SIZE_BUCKETS = ['<$100K', '$100-250K', '$250-500K', '$500K-$1M', '$1M+']

PIPELINE_AGE_BUCKETS = ['Fresh <30d', 'Warm 30-60d', 'Cooling 60-90d', 'Stale 90+d']


def pipeline_age_bucket(days: float) -> str:
    if days < 30:
        return 'Fresh <30d'
    if days < 60:
        return 'Warm 30-60d'
    if days < 90:
        return 'Cooling 60-90d'
    return 'Stale 90+d'


def offer_size_bucket(amount: float) -> str:
    if amount < 100_000:
        return '<$100K'
    if amount < 250_000:
        return '$100-250K'
    if amount < 500_000:
        return '$250-500K'
    if amount < 1_000_000:
        return '$500K-$1M'
    return '$1M+'


def stage_category(stage: object) -> str:
    """Collapse free-text board stages into Submitted / In Review / Offered / Funded / Other."""
    s = '' if stage is None or (isinstance(stage, float) and pd.isna(stage)) else str(stage).lower()
    if 'submission' in s or 'queue' in s:
        return 'Submitted'
    if 'pending' in s or 'review' in s:
        return 'In Review'
    if 'offer out' in s or 'offered' in s:
        return 'Offered'
    if 'fund' in s:
        return 'Funded'
    return 'Other'


def derive_submission_fields(
    submissions_df: pd.DataFrame,
    as_of: pd.Timestamp | datetime | date | str,
) -> pd.DataFrame:
    """Return a copy with month, quarter, pipeline age, buckets and stage category.

    ``days_in_pipeline`` is the absolute whole-day distance between ``as_of``
    and the submitted date. Re-running on its own output gives the same columns.
    """
    out = submissions_df.copy()
    reference = to_timestamp(as_of)
    submitted = pd.to_datetime(out['lead_submitted']).dt.normalize()

    out['submission_month'] = submitted.dt.strftime('%Y-%m')
    out['submission_quarter'] = 'Q' + submitted.dt.quarter.astype(str) + ' ' + submitted.dt.year.astype(str)
    days = (reference - submitted).dt.days.abs()
    out['days_in_pipeline'] = days.astype(int)
    out['pipeline_age_bucket'] = out['days_in_pipeline'].map(pipeline_age_bucket)
    offers = pd.to_numeric(out['offer_amount'], errors='coerce').fillna(0.0)
    out['offer_size_bucket'] = offers.map(offer_size_bucket)
    out['stage_category'] = out['stage'].map(stage_category)
    return out


def days_to_fund(funding_dates: pd.Series, submitted_dates: pd.Series) -> pd.Series:
    """Whole days from submission to funding; NaN where no funding date."""
    funded = pd.to_datetime(funding_dates)
    submitted = pd.to_datetime(submitted_dates)
    delta = (funded - submitted) / pd.Timedelta(days=1)
    return pd.Series(np.floor(delta.astype(float)), index=funding_dates.index, dtype=float)
