"""Input data validation for deal, submission and funding tables."""

from __future__ import annotations

import pandas as pd

from src.calculations.normalization import UNKNOWN_PARTNER

DEAL_REQUIRED_COLUMNS = [
    'deal_name',
    'funding_date',
    'funded_amount',
    'mgmt_fee_total',
    'partner_normalized',
    'deal_type',
]

SUBMISSION_REQUIRED_COLUMNS = [
    'name',
    'iso_normalized',
    'stage',
    'offer_amount',
    'lead_submitted',
]

FUNDING_REQUIRED_COLUMNS = [
    'deal_name',
    'funding_date',
    'funded_amount',
    'management_fee',
    'partner_normalized',
]


def _missing_columns(df: pd.DataFrame, required: list[str]) -> list[str]:
    cols = set(df.columns)
    return [col for col in required if col not in cols]


def _check_dtypes(df: pd.DataFrame, date_cols: list[str], numeric_cols: list[str]) -> None:
    for col in date_cols:
        if not pd.api.types.is_datetime64_any_dtype(df[col]):
            raise ValueError(f'Column {col} must be datetime64 dtype.')
    for col in numeric_cols:
        if not pd.api.types.is_numeric_dtype(df[col]):
            raise ValueError(f'Column {col} must be numeric dtype.')


def validate_deals(df: pd.DataFrame) -> list[str]:
    """Validate normalized deal ledger data and return non-fatal warnings."""
    missing = _missing_columns(df, DEAL_REQUIRED_COLUMNS)
    if missing:
        raise ValueError(f'Missing required deal columns: {missing}')

    _check_dtypes(df, ['funding_date'], ['funded_amount', 'mgmt_fee_total'])

    if df[['deal_name', 'funding_date', 'funded_amount']].isna().any().any():
        raise ValueError('Deals contain nulls in required columns.')

    warnings: list[str] = []

    non_positive = int((df['funded_amount'] <= 0).sum())
    if non_positive:
        warnings.append(f'{non_positive} deals have a non-positive funded amount.')

    unknown = int((df['partner_normalized'] == UNKNOWN_PARTNER).sum())
    if unknown:
        warnings.append(f'{unknown} deals have no partner and are grouped as {UNKNOWN_PARTNER}.')

    fee_over_amount = int((df['mgmt_fee_total'] > df['funded_amount']).sum())
    if fee_over_amount:
        warnings.append(f'{fee_over_amount} deals have a management fee larger than the funded amount.')

    dupes = int(df.duplicated(subset=['deal_name', 'funding_date']).sum())
    if dupes:
        warnings.append(f'{dupes} duplicate deals found (deal_name, funding_date).')

    return warnings


def validate_submissions(df: pd.DataFrame) -> list[str]:
    """Validate normalized submission data and return non-fatal warnings."""
    missing = _missing_columns(df, SUBMISSION_REQUIRED_COLUMNS)
    if missing:
        raise ValueError(f'Missing required submission columns: {missing}')

    _check_dtypes(df, ['lead_submitted'], ['offer_amount'])

    if df[['name', 'lead_submitted']].isna().any().any():
        raise ValueError('Submissions contain nulls in required columns.')

    warnings: list[str] = []

    negative_offers = int((df['offer_amount'] < 0).sum())
    if negative_offers:
        warnings.append(f'{negative_offers} submissions have a negative offer amount.')

    unknown = int((df['iso_normalized'] == UNKNOWN_PARTNER).sum())
    if unknown:
        warnings.append(f'{unknown} submissions have no ISO and are grouped as {UNKNOWN_PARTNER}.')

    if 'lead_received' in df.columns and pd.api.types.is_datetime64_any_dtype(df['lead_received']):
        reversed_dates = int((df['lead_received'] > df['lead_submitted']).sum())
        if reversed_dates:
            warnings.append(f'{reversed_dates} submissions were submitted before they were received.')

    dupes = int(df['name'].duplicated().sum())
    if dupes:
        warnings.append(f'{dupes} submissions share a business name with an earlier row.')

    return warnings


def validate_funding(df: pd.DataFrame) -> list[str]:
    """Validate normalized funding ledger data and return non-fatal warnings."""
    missing = _missing_columns(df, FUNDING_REQUIRED_COLUMNS)
    if missing:
        raise ValueError(f'Missing required funding columns: {missing}')

    _check_dtypes(df, ['funding_date'], ['funded_amount', 'management_fee'])

    if df[['deal_name', 'funding_date', 'funded_amount']].isna().any().any():
        raise ValueError('Funding records contain nulls in required columns.')

    warnings: list[str] = []

    non_positive = int((df['funded_amount'] <= 0).sum())
    if non_positive:
        warnings.append(f'{non_positive} funding records have a non-positive funded amount.')

    dupes = int(df['deal_name'].duplicated().sum())
    if dupes:
        warnings.append(f'{dupes} funding records share a deal name with an earlier row.')

    return warnings
