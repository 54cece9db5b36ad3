"""Submission-to-funding record matching and submission enrichment.

Submissions that reached the Offered or Funded stage are matched against the
funding ledger in tiers (exact, starts-with, contains, edit distance). Matching
is greedy: each accepted match removes its funding record from the pool, so
submission order decides ties between near-duplicate submissions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import numpy as np
import pandas as pd

from src.calculations.submission_fields import days_to_fund
from src.utils.logging import get_logger
from src.utils.text import clean_name, levenshtein_distance

LOGGER = get_logger(__name__)

MATCHABLE_STAGES = ('Offered', 'Funded')
MIN_CONFIDENCE = 50
MAX_FUZZY_DISTANCE = 5
CANDIDATE_LIMIT = 5
CANDIDATE_MAX_DISTANCE = 10
CANDIDATE_MIN_SCORE = 20

MATCHED_COLUMNS = [
    'submission_index',
    'submission_name',
    'funding_index',
    'deal_name',
    'match_type',
    'confidence',
]


@dataclass(frozen=True)
class FundingMatch:
    funding_index: object
    deal_name: str
    match_type: str
    confidence: int


@dataclass(frozen=True)
class PotentialMatch:
    funding_index: object
    deal_name: str
    score: int


@dataclass(frozen=True)
class UnmatchedSubmission:
    submission_index: object
    submission_name: str
    potential_matches: list[PotentialMatch] = field(default_factory=list)


@dataclass
class MatchResult:
    matched: pd.DataFrame
    unmatched: list[UnmatchedSubmission]
    skipped: list[str] = field(default_factory=list)


def _tier_match(clean_submission: str, clean_funding: str) -> tuple[str, int] | None:
    if clean_funding == clean_submission:
        return 'exact', 100
    if clean_funding.startswith(clean_submission) or clean_submission.startswith(clean_funding):
        return 'starts-with', 90
    if clean_submission in clean_funding or clean_funding in clean_submission:
        return 'contains', 75
    return None


def find_funding_match(submission_name: str, pool: pd.Series) -> FundingMatch | None:
    """Best match for one submission among ``pool`` (index -> deal name).

    Tiers are tried in order and the first tier with any hit wins, taking the
    first hit in pool order. Returns None when no candidate is within the
    fuzzy edit-distance cutoff.
    """
    if pool.empty:
        return None
    clean_submission = clean_name(submission_name)
    if not clean_submission:
        return None
    cleaned = pool.astype(str).map(clean_name)
    cleaned = cleaned[cleaned != '']
    if cleaned.empty:
        return None

    for match_type, confidence, predicate in (
        ('exact', 100, lambda f: f == clean_submission),
        ('starts-with', 90, lambda f: f.startswith(clean_submission) or clean_submission.startswith(f)),
        ('contains', 75, lambda f: clean_submission in f or f in clean_submission),
    ):
        hits = cleaned[cleaned.map(predicate).astype(bool)]
        if not hits.empty:
            idx = hits.index[0]
            return FundingMatch(idx, str(pool.loc[idx]), match_type, confidence)

    distances = cleaned.map(lambda f: levenshtein_distance(clean_submission, f))
    close = distances[distances <= MAX_FUZZY_DISTANCE]
    if close.empty:
        return None
    # stable sort keeps pool order among equal distances
    best_idx = close.sort_values(kind='mergesort').index[0]
    distance = int(close.loc[best_idx])
    confidence = max(MIN_CONFIDENCE, 100 - distance * 10)
    return FundingMatch(best_idx, str(pool.loc[best_idx]), 'fuzzy', confidence)


def potential_matches(
    submission_name: str,
    pool: pd.Series,
    limit: int = CANDIDATE_LIMIT,
) -> list[PotentialMatch]:
    """Ranked candidates for manual review with a looser distance cutoff."""
    clean_submission = clean_name(submission_name)
    scored: list[PotentialMatch] = []
    for idx, deal_name in pool.items():
        clean_funding = clean_name(deal_name)
        if not clean_submission or not clean_funding:
            continue
        tier = _tier_match(clean_submission, clean_funding)
        if tier is not None:
            score = tier[1]
        else:
            distance = levenshtein_distance(clean_submission, clean_funding)
            if distance > CANDIDATE_MAX_DISTANCE:
                continue
            score = max(CANDIDATE_MIN_SCORE, 70 - distance * 5)
        scored.append(PotentialMatch(idx, str(deal_name), int(score)))
    scored.sort(key=lambda m: m.score, reverse=True)
    return scored[:limit]


def _resolve_override(deal_name: str, pool: pd.Series) -> object | None:
    exact = pool[pool.astype(str) == str(deal_name)]
    if not exact.empty:
        return exact.index[0]
    target = clean_name(deal_name)
    cleaned = pool[pool.astype(str).map(clean_name) == target]
    if not cleaned.empty:
        return cleaned.index[0]
    return None


def match_all(
    submissions_df: pd.DataFrame,
    funding_df: pd.DataFrame,
    overrides: Mapping[str, str | None] | None = None,
) -> MatchResult:
    """Match eligible submissions one-to-one against funding records.

    ``overrides`` maps a submission name to a funding deal name (force-bind) or
    to None (force-skip). Overridden submissions never enter automatic matching.
    Submissions below the Offered stage are neither matched nor reported.
    """
    overrides = dict(overrides or {})
    pool = funding_df['deal_name'].astype(str) if not funding_df.empty else pd.Series(dtype=object)
    rows: list[dict[str, object]] = []
    unmatched_ids: list[tuple[object, str]] = []
    skipped: list[str] = []

    for sub_idx, sub in submissions_df.iterrows():
        name = str(sub['name'])
        if name not in overrides:
            continue
        target = overrides[name]
        if target is None:
            skipped.append(name)
            continue
        funding_idx = _resolve_override(target, pool)
        if funding_idx is None:
            LOGGER.warning('Override for %r names unknown funding record %r.', name, target)
            unmatched_ids.append((sub_idx, name))
            continue
        rows.append(
            {
                'submission_index': sub_idx,
                'submission_name': name,
                'funding_index': funding_idx,
                'deal_name': str(pool.loc[funding_idx]),
                'match_type': 'manual',
                'confidence': 100,
            }
        )
        pool = pool.drop(index=funding_idx)

    for sub_idx, sub in submissions_df.iterrows():
        name = str(sub['name'])
        if name in overrides:
            continue
        if sub.get('stage_category') not in MATCHABLE_STAGES:
            continue
        match = find_funding_match(name, pool)
        if match is None:
            unmatched_ids.append((sub_idx, name))
            continue
        rows.append(
            {
                'submission_index': sub_idx,
                'submission_name': name,
                'funding_index': match.funding_index,
                'deal_name': match.deal_name,
                'match_type': match.match_type,
                'confidence': match.confidence,
            }
        )
        pool = pool.drop(index=match.funding_index)

    unmatched = [
        UnmatchedSubmission(idx, name, potential_matches(name, pool))
        for idx, name in unmatched_ids
    ]
    matched = pd.DataFrame(rows, columns=MATCHED_COLUMNS)
    LOGGER.info(
        'Matched %s submissions to funding records (%s unmatched, %s skipped).',
        len(matched),
        len(unmatched),
        len(skipped),
    )
    return MatchResult(matched=matched, unmatched=unmatched, skipped=skipped)


def enrich_submissions(
    submissions_df: pd.DataFrame,
    funding_df: pd.DataFrame,
    result: MatchResult,
) -> pd.DataFrame:
    """Attach matched funding fields and derived funding status to every submission."""
    out = submissions_df.copy()
    out['funding_date'] = pd.Series(pd.NaT, index=out.index, dtype='datetime64[ns]')
    out['funded_amount'] = np.nan
    out['management_fee'] = np.nan
    out['funding_iso'] = pd.Series(None, index=out.index, dtype=object)

    for _, m in result.matched.iterrows():
        sub_idx = m['submission_index']
        rec = funding_df.loc[m['funding_index']]
        out.at[sub_idx, 'funding_date'] = pd.Timestamp(rec['funding_date'])
        out.at[sub_idx, 'funded_amount'] = float(rec['funded_amount'])
        out.at[sub_idx, 'management_fee'] = float(rec['management_fee'])
        out.at[sub_idx, 'funding_iso'] = rec['partner_normalized']

    out['is_funded'] = out['funding_date'].notna()
    out['days_to_fund'] = days_to_fund(out['funding_date'], out['lead_submitted'])
    offers = pd.to_numeric(out['offer_amount'], errors='coerce').fillna(0.0)
    ratio = out['funded_amount'] / offers.where(offers > 0)
    out['offer_to_funded_ratio'] = ratio.where(out['is_funded'] & (offers > 0))
    stage = out['stage_category'] if 'stage_category' in out.columns else pd.Series('', index=out.index)
    out['funding_status'] = np.select(
        [out['is_funded'], stage == 'Offered', stage == 'In Review'],
        ['Funded', 'Offered', 'In Review'],
        default='Submitted',
    )
    return out
