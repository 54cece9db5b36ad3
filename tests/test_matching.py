import pandas as pd

from src.calculations.matching import (
    enrich_submissions,
    find_funding_match,
    match_all,
    potential_matches,
)
from src.utils.text import clean_name, levenshtein_distance


def _submissions(names: list[str], stages: list[str] | None = None) -> pd.DataFrame:
    stages = stages or ['Funded'] * len(names)
    return pd.DataFrame(
        {
            'name': names,
            'iso_normalized': ['AFN'] * len(names),
            'stage_category': stages,
            'offer_amount': [100_000.0] * len(names),
            'lead_submitted': pd.to_datetime(['2025-01-02'] * len(names)),
        }
    )


def _funding(names: list[str]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            'deal_name': names,
            'funding_date': pd.to_datetime(['2025-01-20'] * len(names)),
            'funded_amount': [80_000.0] * len(names),
            'management_fee': [2_000.0] * len(names),
            'partner_normalized': ['AFN'] * len(names),
        }
    )


def test_levenshtein_distance() -> None:
    assert levenshtein_distance('kitten', 'sitting') == 3
    assert levenshtein_distance('', 'abc') == 3
    assert levenshtein_distance('same', 'same') == 0


def test_clean_name_drops_fee_suffix_and_punctuation() -> None:
    assert clean_name('Acme Corp - 2.0%') == 'ACME CORP'
    assert clean_name("  Joe's   Pizza, LLC ") == 'JOES PIZZA LLC'


def test_fee_suffix_is_an_exact_match() -> None:
    match = find_funding_match('Acme Corp - 2.0%', pd.Series(['Acme Corp']))

    assert match is not None
    assert match.match_type == 'exact'
    assert match.confidence == 100


def test_tier_priority() -> None:
    pool = pd.Series(['Acme Holdings Corp', 'Acme Corp Intl', 'Acme'])

    match = find_funding_match('Acme Corp', pool)

    assert match.match_type == 'starts-with'
    assert match.deal_name == 'Acme Corp Intl'
    assert match.confidence == 90


def test_contains_and_fuzzy_tiers() -> None:
    contains = find_funding_match('Best Bakery', pd.Series(['The Best Bakery Co']))
    assert contains.match_type == 'contains'
    assert contains.confidence == 75

    fuzzy = find_funding_match('Smith Plumbing', pd.Series(['Smyth Plumbin']))
    assert fuzzy.match_type == 'fuzzy'
    assert fuzzy.confidence == 80


def test_no_match_beyond_fuzzy_cutoff() -> None:
    assert find_funding_match('Completely Different', pd.Series(['Zebra Logistics'])) is None


def test_funding_record_matched_at_most_once() -> None:
    subs = _submissions(['Acme Corp', 'Acme Corp.', 'Beta LLC'])
    funding = _funding(['ACME CORP', 'Beta LLC'])

    result = match_all(subs, funding)

    assert result.matched['funding_index'].is_unique
    assert result.matched['submission_name'].tolist() == ['Acme Corp', 'Beta LLC']
    assert [u.submission_name for u in result.unmatched] == ['Acme Corp.']


def test_early_stage_submissions_are_ignored() -> None:
    subs = _submissions(['Acme Corp', 'Beta LLC'], stages=['Submitted', 'In Review'])

    result = match_all(subs, _funding(['Acme Corp']))

    assert result.matched.empty
    assert result.unmatched == []


def test_unmatched_submissions_get_ranked_candidates() -> None:
    subs = _submissions(['ABCDEFGH'])
    funding = _funding(['ABCDXXXXZZ', 'Q' * 20])

    result = match_all(subs, funding)

    assert result.matched.empty
    candidates = result.unmatched[0].potential_matches
    assert [(c.deal_name, c.score) for c in candidates] == [('ABCDXXXXZZ', 40)]


def test_potential_matches_scores() -> None:
    pool = pd.Series(['Acme', 'Acme Corp', 'Acmee Crop'])

    candidates = potential_matches('Acme Corp', pool)

    assert [c.score for c in candidates] == [100, 90, 55]
    assert len(potential_matches('Acme Corp', pool, limit=1)) == 1


def test_manual_overrides_bind_and_skip() -> None:
    subs = _submissions(['Acme Corp', 'Beta LLC', 'Gamma Inc'])
    funding = _funding(['Totally Unrelated Name', 'Beta LLC'])

    result = match_all(subs, funding, overrides={'Acme Corp': 'Totally Unrelated Name', 'Gamma Inc': None})

    manual = result.matched[result.matched['match_type'] == 'manual']
    assert manual['submission_name'].tolist() == ['Acme Corp']
    assert manual['confidence'].tolist() == [100]
    assert result.skipped == ['Gamma Inc']
    assert 'Beta LLC' in result.matched['submission_name'].tolist()


def test_override_to_unknown_deal_is_unmatched() -> None:
    subs = _submissions(['Acme Corp'])

    result = match_all(subs, _funding(['Acme Corp']), overrides={'Acme Corp': 'Missing Deal'})

    assert result.matched.empty
    assert [u.submission_name for u in result.unmatched] == ['Acme Corp']


def test_enrich_submissions_sets_status_and_days() -> None:
    subs = _submissions(['Acme Corp', 'Beta LLC', 'Gamma Inc'], stages=['Funded', 'Offered', 'In Review'])
    funding = _funding(['Acme Corp'])
    result = match_all(subs, funding)

    enriched = enrich_submissions(subs, funding, result)

    assert enriched['funding_status'].tolist() == ['Funded', 'Offered', 'In Review']
    assert enriched['is_funded'].tolist() == [True, False, False]
    assert enriched.loc[0, 'days_to_fund'] == 18
    assert enriched.loc[0, 'offer_to_funded_ratio'] == 0.8
    assert pd.isna(enriched.loc[1, 'offer_to_funded_ratio'])
    assert 'funding_status' not in subs.columns
