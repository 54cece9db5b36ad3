"""Deal and funding-ledger domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

import pandas as pd

DEAL_COLUMNS = [
    'deal_name',
    'fee_percent',
    'funding_date',
    'funded_amount',
    'mgmt_fee_total',
    'partner',
    'partner_normalized',
    'deal_type',
    'notes',
]

FUNDING_COLUMNS = [
    'deal_name',
    'funding_date',
    'funded_amount',
    'management_fee',
    'partner',
    'partner_normalized',
    'deal_type',
]


@dataclass(frozen=True)
class Deal:
    """A funded transaction from the deal ledger."""

    deal_name: str
    fee_percent: float
    funding_date: pd.Timestamp
    funded_amount: float
    mgmt_fee_total: float
    partner: str
    partner_normalized: str
    deal_type: str
    notes: str = ''


@dataclass(frozen=True)
class FundingRecord:
    """A funding-ledger row used to enrich pipeline submissions."""

    deal_name: str
    funding_date: pd.Timestamp
    funded_amount: float
    management_fee: float
    partner: str
    partner_normalized: str
    deal_type: str | None = None


def _records_to_frame(records: Iterable[object], columns: list[str]) -> pd.DataFrame:
    rows = [asdict(r) for r in records]
    df = pd.DataFrame(rows, columns=columns)
    if 'funding_date' in df.columns:
        df['funding_date'] = pd.to_datetime(df['funding_date'])
    return df


def deals_to_frame(deals: Iterable[Deal]) -> pd.DataFrame:
    """Build the deal DataFrame contract from typed records."""
    df = _records_to_frame(deals, DEAL_COLUMNS)
    for col in ['fee_percent', 'funded_amount', 'mgmt_fee_total']:
        df[col] = df[col].astype(float)
    return df


def funding_to_frame(records: Iterable[FundingRecord]) -> pd.DataFrame:
    """Build the funding-ledger DataFrame contract from typed records."""
    df = _records_to_frame(records, FUNDING_COLUMNS)
    for col in ['funded_amount', 'management_fee']:
        df[col] = df[col].astype(float)
    return df
