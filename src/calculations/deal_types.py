"""Deal-type classification (New vs Renewal) and deal size buckets."""

from __future__ import annotations

import pandas as pd

LIFECYCLE_TYPES = ['New', 'Renewal', 'New - Add On', 'New - PIF', 'Other']

TICKET_SIZE_BUCKETS = [
    ('<50k', 0.0, 50_000.0),
    ('50k-250k', 50_000.0, 250_000.0),
    ('250k-500k', 250_000.0, 500_000.0),
    ('500k-1m', 500_000.0, 1_000_000.0),
    ('1m+', 1_000_000.0, float('inf')),
]


def is_deal_type_new(deal_type: object) -> bool:
    """New when the text starts with `new` or is just `n`; anything starting with `renew` is a renewal."""
    if deal_type is None or (isinstance(deal_type, float) and pd.isna(deal_type)):
        return False
    normalized = str(deal_type).strip().lower()
    if normalized.startswith('renew'):
        return False
    return normalized.startswith('new') or normalized == 'n'


def classify_deal_type(deal_type: object) -> str:
    return 'New' if is_deal_type_new(deal_type) else 'Renewal'


def is_new_mask(deal_types: pd.Series) -> pd.Series:
    """Vectorized `is_deal_type_new` over a column of deal-type strings."""
    text = deal_types.fillna('').astype(str).str.strip().str.lower()
    return (text.str.startswith('new') | (text == 'n')) & ~text.str.startswith('renew')


def normalize_lifecycle(deal_type: object) -> str:
    """Finer lifecycle label used by dashboard filters."""
    text = '' if deal_type is None or (isinstance(deal_type, float) and pd.isna(deal_type)) else str(deal_type)
    normalized = text.upper().strip()
    if 'NEW' in normalized and 'PIF' in normalized:
        return 'New - PIF'
    if 'ADD' in normalized and 'ON' in normalized:
        return 'New - Add On'
    if 'RENEW' in normalized:
        return 'Renewal'
    if 'NEW' in normalized:
        return 'New'
    return 'Other'


def ticket_size_bucket(amount: float) -> str:
    for label, lower, upper in TICKET_SIZE_BUCKETS:
        if lower <= float(amount) < upper:
            return label
    return TICKET_SIZE_BUCKETS[0][0]
