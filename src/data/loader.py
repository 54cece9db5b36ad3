"""Excel loaders and schema normalization for deal, submission and funding sheets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from src.calculations.normalization import UNKNOWN_PARTNER, normalize_partner_series
from src.calculations.submission_fields import derive_submission_fields
from src.data.validator import validate_deals, validate_funding, validate_submissions
from src.models.deal import DEAL_COLUMNS, FUNDING_COLUMNS
from src.models.submission import SUBMISSION_COLUMNS
from src.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEAL_NAME_FEE_RE = re.compile(r'^(.+?)\s*-\s*([\d.]+)%$')
_NON_NUMERIC_RE = r'[^0-9.\-]'

DEAL_COLUMN_MAP = {
    'deal': 'deal_label',
    'deal_name': 'deal_label',
    'funded': 'funded_amount',
    'funded_amount': 'funded_amount',
    'mgmt_fee': 'mgmt_fee_total',
    'mgmt_fee_total': 'mgmt_fee_total',
    'funding_date': 'funding_date',
    'date_funded': 'funding_date',
    'partner': 'partner',
    'iso': 'partner',
    'deal_type': 'deal_type',
    'type': 'deal_type',
    'notes': 'notes',
}

SUBMISSION_COLUMN_MAP = {
    'name': 'name',
    'business_name': 'name',
    'iso': 'iso',
    'rep': 'rep',
    'stage': 'stage',
    'status': 'stage',
    'offer': 'offer_amount',
    'offer_amount': 'offer_amount',
    'lead_received': 'lead_received',
    'lead_submitted': 'lead_submitted',
    'days_since_sub': 'days_since_sub',
}

FUNDING_COLUMN_MAP = {
    'deal_name': 'deal_name',
    'merchant': 'deal_name',
    'funding_date': 'funding_date',
    'date_funded': 'funding_date',
    'funded_amount': 'funded_amount',
    'funded': 'funded_amount',
    'management_fee': 'management_fee',
    'mgmt_fee': 'management_fee',
    'partner': 'partner',
    'iso': 'partner',
    'deal_type': 'deal_type',
    'type': 'deal_type',
}


@dataclass(frozen=True)
class DataQualitySummary:
    total_rows: int
    valid_rows: int
    dropped_rows: int
    unknown_partners: int
    normalized_names: int


@dataclass(frozen=True)
class LoadResult:
    records: pd.DataFrame
    normalization_log: pd.DataFrame
    quality: DataQualitySummary
    warnings: list[str] = field(default_factory=list)


def _normalize_columns(df: pd.DataFrame, column_map: dict[str, str]) -> pd.DataFrame:
    out = df.copy()
    out.columns = [re.sub(r'\s+', '_', str(c).strip().lower()) for c in out.columns]
    out = out.rename(columns=column_map)
    return out.loc[:, ~out.columns.duplicated()]


def _to_amount(values: pd.Series) -> pd.Series:
    """Numbers pass through; strings lose currency symbols and thousands separators."""
    if pd.api.types.is_numeric_dtype(values):
        return values.astype(float)
    cleaned = values.astype(str).str.replace(_NON_NUMERIC_RE, '', regex=True)
    return pd.to_numeric(cleaned, errors='coerce')


def _text(df: pd.DataFrame, column: str, default: str = '') -> pd.Series:
    if column not in df.columns:
        return pd.Series(default, index=df.index, dtype=object)
    values = df[column].where(df[column].notna(), default).astype(str).str.strip()
    return values.mask(values.isin(['nan', 'None']), default)


def _drop_invalid(df: pd.DataFrame, invalid: pd.Series, what: str) -> pd.DataFrame:
    count = int(invalid.sum())
    if count:
        LOGGER.warning('%s %s rows could not be parsed and were excluded.', count, what)
    return df.loc[~invalid].copy()


def _require(df: pd.DataFrame, columns: list[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f'Missing required {what} columns: {missing}')


def _summary(total: int, records: pd.DataFrame, partner_col: str, log: pd.DataFrame) -> DataQualitySummary:
    return DataQualitySummary(
        total_rows=total,
        valid_rows=int(len(records)),
        dropped_rows=total - int(len(records)),
        unknown_partners=int((records[partner_col] == UNKNOWN_PARTNER).sum()),
        normalized_names=int(len(log)),
    )


def split_deal_label(label: object) -> tuple[str, float] | None:
    """Split ``"<name> - <fee>%"`` into (name, fee percent); None when the label has no fee suffix."""
    if not isinstance(label, str):
        return None
    match = DEAL_NAME_FEE_RE.match(label.strip())
    if not match:
        return None
    try:
        return match.group(1).strip(), float(match.group(2))
    except ValueError:
        return None


def parse_deal_frame(raw: pd.DataFrame) -> LoadResult:
    """Coerce a raw deal sheet into the deal contract.

    Rows without a ``name - fee%`` label, a parseable funding date or a positive
    funded amount are dropped.
    """
    total = int(len(raw))
    df = _normalize_columns(raw, DEAL_COLUMN_MAP)
    _require(df, ['deal_label', 'funded_amount', 'funding_date'], 'deal')

    labels = df['deal_label'].map(split_deal_label)
    df = _drop_invalid(df, labels.isna(), 'deal label')
    labels = labels.loc[df.index]
    df['deal_name'] = labels.map(lambda x: x[0])
    df['fee_percent'] = labels.map(lambda x: x[1]).astype(float)

    df['funded_amount'] = _to_amount(df['funded_amount'])
    df['mgmt_fee_total'] = _to_amount(df['mgmt_fee_total']).fillna(0.0) if 'mgmt_fee_total' in df.columns else 0.0
    df['funding_date'] = pd.to_datetime(df['funding_date'], errors='coerce', format='mixed')
    invalid = df['funding_date'].isna() | df['funded_amount'].isna() | (df['funded_amount'] <= 0)
    df = _drop_invalid(df, invalid, 'deal')

    df['partner'] = _text(df, 'partner', 'Unknown')
    df['deal_type'] = _text(df, 'deal_type', 'Unknown')
    df['notes'] = _text(df, 'notes')
    df['partner_normalized'], log = normalize_partner_series(df['partner'])

    deals = df[DEAL_COLUMNS].reset_index(drop=True)
    warnings = validate_deals(deals)
    for warning in warnings:
        LOGGER.warning(warning)
    return LoadResult(deals, log, _summary(total, deals, 'partner_normalized', log), warnings)


def parse_submission_frame(raw: pd.DataFrame, as_of: pd.Timestamp | datetime | date | str) -> LoadResult:
    """Coerce a raw submission sheet into the submission contract plus derived fields.

    ``as_of`` is the reference date for pipeline age.
    """
    total = int(len(raw))
    df = _normalize_columns(raw, SUBMISSION_COLUMN_MAP)
    _require(df, ['name', 'lead_submitted'], 'submission')

    df['name'] = _text(df, 'name')
    df['lead_submitted'] = pd.to_datetime(df['lead_submitted'], errors='coerce', format='mixed')
    invalid = df['lead_submitted'].isna() | (df['name'] == '')
    df = _drop_invalid(df, invalid, 'submission')

    df['lead_received'] = pd.to_datetime(df['lead_received'], errors='coerce', format='mixed') if 'lead_received' in df.columns else pd.NaT
    df['offer_amount'] = _to_amount(df['offer_amount']).fillna(0.0) if 'offer_amount' in df.columns else 0.0
    if 'days_since_sub' in df.columns:
        df['days_since_sub'] = pd.to_numeric(df['days_since_sub'], errors='coerce').fillna(0).astype(int)
    else:
        df['days_since_sub'] = 0
    df['iso'] = _text(df, 'iso')
    df['rep'] = _text(df, 'rep')
    df['stage'] = _text(df, 'stage')
    df['iso_normalized'], log = normalize_partner_series(df['iso'])

    submissions = derive_submission_fields(df[SUBMISSION_COLUMNS].reset_index(drop=True), as_of)
    warnings = validate_submissions(submissions)
    for warning in warnings:
        LOGGER.warning(warning)
    return LoadResult(submissions, log, _summary(total, submissions, 'iso_normalized', log), warnings)


def parse_funding_frame(raw: pd.DataFrame) -> LoadResult:
    """Coerce a raw funding ledger into the funding-record contract."""
    total = int(len(raw))
    df = _normalize_columns(raw, FUNDING_COLUMN_MAP)
    _require(df, ['deal_name', 'funding_date', 'funded_amount'], 'funding')

    df['deal_name'] = _text(df, 'deal_name')
    df['funding_date'] = pd.to_datetime(df['funding_date'], errors='coerce', format='mixed')
    df['funded_amount'] = _to_amount(df['funded_amount'])
    invalid = (df['deal_name'] == '') | df['funding_date'].isna() | df['funded_amount'].isna() | (df['funded_amount'] <= 0)
    df = _drop_invalid(df, invalid, 'funding')

    df['management_fee'] = _to_amount(df['management_fee']).fillna(0.0) if 'management_fee' in df.columns else 0.0
    df['partner'] = _text(df, 'partner')
    deal_types = _text(df, 'deal_type')
    df['deal_type'] = deal_types.where(deal_types != '', None)
    df['partner_normalized'], log = normalize_partner_series(df['partner'])

    funding = df[FUNDING_COLUMNS].reset_index(drop=True)
    warnings = validate_funding(funding)
    for warning in warnings:
        LOGGER.warning(warning)
    return LoadResult(funding, log, _summary(total, funding, 'partner_normalized', log), warnings)


def load_deals_workbook(path: str, sheet_name: str | int = 0, skiprows: int = 0) -> LoadResult:
    """Load and normalize the deal ledger sheet; ``skiprows`` skips report banner rows above the header."""
    raw = pd.read_excel(path, sheet_name=sheet_name, skiprows=skiprows, engine='openpyxl')
    return parse_deal_frame(raw)


def load_submissions_workbook(
    path: str,
    as_of: pd.Timestamp | datetime | date | str,
    sheet_name: str | int = 0,
) -> LoadResult:
    raw = pd.read_excel(path, sheet_name=sheet_name, engine='openpyxl')
    return parse_submission_frame(raw, as_of)


def load_funding_workbook(path: str, sheet_name: str | int = 0) -> LoadResult:
    raw = pd.read_excel(path, sheet_name=sheet_name, engine='openpyxl')
    return parse_funding_frame(raw)
