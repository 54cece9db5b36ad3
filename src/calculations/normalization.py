"""Partner / ISO name normalization.

Free-text partner names are canonicalized by cleanup, slash-pair reordering,
an alias table of known misspellings and, last, an edit-distance snap to the
master partner list.
"""

from __future__ import annotations

from typing import Mapping

import pandas as pd

from src.utils.logging import get_logger
from src.utils.text import collapse_whitespace, levenshtein_distance

LOGGER = get_logger(__name__)

UNKNOWN_PARTNER = 'UNKNOWN'
MAX_SNAP_DISTANCE = 2

MASTER_PARTNERS = (
    'CAPITAL GURUS',
    'AFN',
    'LENDFLOW',
    'GLAZER/SAMSON',
    'PLATFORM',
    'DIRECT',
)

PARTNER_ALIASES = {
    'CAPTIAL GURUS': 'CAPITAL GURUS',
    'CAPITALGURUS': 'CAPITAL GURUS',
    'CAPITAL GURU': 'CAPITAL GURUS',
    'CAP GURUS': 'CAPITAL GURUS',
    'CAPITAL GUROS': 'CAPITAL GURUS',
    'CAPITAL GRUS': 'CAPITAL GURUS',
    'A.F.N.': 'AFN',
    'A.F.N': 'AFN',
    'A F N': 'AFN',
    'ALTERNATIVE FUNDING NETWORK': 'AFN',
    'ALT FUNDING NETWORK': 'AFN',
    'ALTFUNDING': 'AFN',
    'LEND FLOW': 'LENDFLOW',
    'LENFLOW': 'LENDFLOW',
    'LEND-FLOW': 'LENDFLOW',
    'LANDFLOW': 'LENDFLOW',
    # slash pairs are already alphabetized when the alias lookup runs
    'GLAZERSAMSON': 'GLAZER/SAMSON',
    'SAMSONGLAZ': 'GLAZER/SAMSON',
    'GLAZER SAMSON': 'GLAZER/SAMSON',
    'SAMSON GLAZER': 'GLAZER/SAMSON',
    'PLATFROM': 'PLATFORM',
    'PLAT FORM': 'PLATFORM',
    'DIREC': 'DIRECT',
    'DRECT': 'DIRECT',
    'IN-HOUSE': 'DIRECT',
    'INHOUSE': 'DIRECT',
}


def _reorder_slash_pair(text: str) -> str:
    if '/' not in text:
        return text
    parts = [p.strip() for p in text.split('/')]
    if len(parts) != 2:
        return text
    first, second = sorted(parts)
    return f'{first}/{second}'


def _snap_to_master(text: str, master: tuple[str, ...] = MASTER_PARTNERS) -> str:
    """Return the closest master entry within MAX_SNAP_DISTANCE; ties keep list order."""
    if text in master:
        return text
    best = text
    best_distance = MAX_SNAP_DISTANCE + 1
    for candidate in master:
        distance = levenshtein_distance(text, candidate)
        if distance < best_distance:
            best = candidate
            best_distance = distance
    return best


def normalize_partner(raw: object) -> str:
    """Canonicalize a raw partner / ISO string.

    Empty or missing input maps to ``UNKNOWN``. Names not close to any master
    entry are kept in their cleaned form as a new canonical name.
    """
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return UNKNOWN_PARTNER
    text = collapse_whitespace(str(raw).strip().upper())
    if not text:
        return UNKNOWN_PARTNER
    text = _reorder_slash_pair(text)
    text = PARTNER_ALIASES.get(text, text)
    return _snap_to_master(text)


def channel_type(normalized_partner: str) -> str:
    """Direct for in-house deals; Platform and every other partner is an ISO."""
    return 'Direct' if normalized_partner == 'DIRECT' else 'ISO'


def normalize_partner_series(raw: pd.Series) -> tuple[pd.Series, pd.DataFrame]:
    """Normalize a column of partner names and return the correction audit trail.

    The audit trail lists every non-empty raw value whose trimmed uppercase text
    differs from its normalized value.
    """
    cache: dict[str, str] = {}
    normalized_values: list[str] = []
    log_rows: list[dict[str, str]] = []
    for value in raw.tolist():
        key = '' if value is None or (isinstance(value, float) and pd.isna(value)) else str(value)
        if key not in cache:
            cache[key] = normalize_partner(key)
        normalized = cache[key]
        normalized_values.append(normalized)
        if key and key.strip().upper() != normalized:
            LOGGER.debug('Normalized partner %r -> %r', key, normalized)
            log_rows.append({'original': key, 'normalized': normalized})
    normalized_series = pd.Series(normalized_values, index=raw.index, dtype=object, name=raw.name)
    log_df = pd.DataFrame(log_rows, columns=['original', 'normalized'])
    return normalized_series, log_df


def partner_vocabulary(normalized: pd.Series, *, include_unknown: bool = False) -> list[str]:
    """Sorted, deduplicated normalized names."""
    values = {str(v) for v in normalized.dropna().tolist()}
    if not include_unknown:
        values.discard(UNKNOWN_PARTNER)
    return sorted(values)


def apply_partner_merges(
    df: pd.DataFrame,
    merges: Mapping[str, list[str]] | None,
    column: str = 'partner_normalized',
) -> pd.DataFrame:
    """Relabel rows whose normalized partner belongs to a caller-defined merge group.

    ``merges`` maps the merged display name to the normalized names it absorbs.
    Returns a copy; the input frame is left untouched.
    """
    out = df.copy()
    if not merges or out.empty:
        return out
    lookup: dict[str, str] = {}
    for merged_name, members in merges.items():
        target = str(merged_name).strip()
        for member in members:
            lookup[str(member).strip().upper()] = target
            lookup[normalize_partner(member)] = target
    out[column] = out[column].map(lambda v: lookup.get(v, v))
    return out
