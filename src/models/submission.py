"""Pipeline submission domain model."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

import pandas as pd

SUBMISSION_COLUMNS = [
    'name',
    'iso',
    'iso_normalized',
    'rep',
    'stage',
    'offer_amount',
    'lead_received',
    'lead_submitted',
    'days_since_sub',
]

DERIVED_SUBMISSION_COLUMNS = [
    'submission_month',
    'submission_quarter',
    'days_in_pipeline',
    'pipeline_age_bucket',
    'offer_size_bucket',
    'stage_category',
]

ENRICHMENT_COLUMNS = [
    'funding_date',
    'funded_amount',
    'management_fee',
    'funding_iso',
    'is_funded',
    'days_to_fund',
    'offer_to_funded_ratio',
    'funding_status',
]


@dataclass(frozen=True)
class Submission:
    """Raw pipeline entry as exported from the submission board."""

    name: str
    iso: str
    iso_normalized: str
    rep: str
    stage: str
    offer_amount: float
    lead_submitted: pd.Timestamp
    lead_received: pd.Timestamp | None = None
    days_since_sub: int = 0


def submissions_to_frame(submissions: Iterable[Submission]) -> pd.DataFrame:
    """Build the submission DataFrame contract (without derived columns)."""
    rows = [asdict(s) for s in submissions]
    df = pd.DataFrame(rows, columns=SUBMISSION_COLUMNS)
    df['offer_amount'] = df['offer_amount'].astype(float)
    df['lead_submitted'] = pd.to_datetime(df['lead_submitted'])
    df['lead_received'] = pd.to_datetime(df['lead_received'])
    df['days_since_sub'] = df['days_since_sub'].fillna(0).astype(int)
    return df
