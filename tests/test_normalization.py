import pandas as pd
import pytest

from src.calculations.normalization import (
    MASTER_PARTNERS,
    UNKNOWN_PARTNER,
    apply_partner_merges,
    channel_type,
    normalize_partner,
    normalize_partner_series,
    partner_vocabulary,
)


@pytest.mark.parametrize('raw', [None, '', '   ', float('nan')])
def test_empty_partner_is_unknown(raw) -> None:
    assert normalize_partner(raw) == UNKNOWN_PARTNER


def test_alias_hit_after_cleanup() -> None:
    assert normalize_partner(' captial gurus ') == 'CAPITAL GURUS'


def test_slash_pair_is_order_insensitive() -> None:
    assert normalize_partner('Glazer/Samson') == normalize_partner('Samson/Glazer')
    assert normalize_partner('samson / glazer') == 'GLAZER/SAMSON'


def test_only_a_single_slash_pair_is_reordered() -> None:
    assert normalize_partner('c / b / a') == 'C / B / A'


def test_snap_to_master_within_distance_two() -> None:
    assert normalize_partner('LENDFLOWW') == 'LENDFLOW'
    assert normalize_partner('afm') == 'AFN'


def test_unseen_name_kept_in_cleaned_form() -> None:
    assert normalize_partner('  new   horizon funding ') == 'NEW HORIZON FUNDING'


@pytest.mark.parametrize(
    'raw',
    ['Capital Gurus', 'lend flow', 'Platfrom', 'direct', 'Some Broker LLC', 'a.f.n.', 'B/A'],
)
def test_normalize_is_idempotent(raw) -> None:
    once = normalize_partner(raw)
    assert normalize_partner(once) == once


def test_master_entries_are_fixed_points() -> None:
    for name in MASTER_PARTNERS:
        assert normalize_partner(name) == name


def test_channel_type() -> None:
    assert channel_type('DIRECT') == 'Direct'
    assert channel_type('PLATFORM') == 'ISO'
    assert channel_type('AFN') == 'ISO'


def test_series_normalization_logs_corrections() -> None:
    raw = pd.Series(['AFN', 'captial gurus', None, 'Lend Flow', 'afn'])

    normalized, log = normalize_partner_series(raw)

    assert normalized.tolist() == ['AFN', 'CAPITAL GURUS', UNKNOWN_PARTNER, 'LENDFLOW', 'AFN']
    assert log['original'].tolist() == ['captial gurus', 'Lend Flow']
    assert log['normalized'].tolist() == ['CAPITAL GURUS', 'LENDFLOW']


def test_partner_vocabulary_sorted_and_without_unknown() -> None:
    values = pd.Series(['LENDFLOW', 'AFN', UNKNOWN_PARTNER, 'AFN'])
    assert partner_vocabulary(values) == ['AFN', 'LENDFLOW']
    assert partner_vocabulary(values, include_unknown=True) == ['AFN', 'LENDFLOW', UNKNOWN_PARTNER]


def test_partner_merges_relabel_without_mutating_input() -> None:
    deals = pd.DataFrame({'partner_normalized': ['AFN', 'LENDFLOW', 'DIRECT']})

    merged = apply_partner_merges(deals, {'AFN GROUP': ['afn', 'Lend Flow']})

    assert merged['partner_normalized'].tolist() == ['AFN GROUP', 'AFN GROUP', 'DIRECT']
    assert deals['partner_normalized'].tolist() == ['AFN', 'LENDFLOW', 'DIRECT']
