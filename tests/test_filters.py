import pandas as pd
import pytest

from src.calculations.filters import (
    DealFilters,
    SubmissionFilters,
    apply_deal_filters,
    apply_submission_filters,
    date_presets,
    date_range_from_preset,
    deal_filter_options,
    submission_filter_options,
)


def _deals() -> pd.DataFrame:
    return pd.DataFrame(
        {
            'deal_name': ['A', 'B', 'C', 'D'],
            'funding_date': pd.to_datetime(['2024-12-15', '2025-02-10', '2025-03-01', '2025-03-14']),
            'funded_amount': [40_000.0, 100_000.0, 600_000.0, 1_200_000.0],
            'mgmt_fee_total': [0.0] * 4,
            'partner_normalized': ['AFN', 'DIRECT', 'AFN', 'LENDFLOW'],
            'deal_type': ['New', 'Renewal', 'New - PIF', 'Renewal - New Add On'],
        }
    )


def test_presets_relative_to_reference_date() -> None:
    ref = '2025-03-14'
    assert date_range_from_preset('mtd', ref) == (pd.Timestamp('2025-03-01'), pd.Timestamp('2025-03-14'))
    assert date_range_from_preset('yesterday', ref) == (pd.Timestamp('2025-03-13'), pd.Timestamp('2025-03-13'))
    assert date_range_from_preset('last7', ref)[0] == pd.Timestamp('2025-03-07')
    assert date_range_from_preset('lastMonth', ref) == (pd.Timestamp('2025-02-01'), pd.Timestamp('2025-02-28'))
    assert date_range_from_preset('lastQuarter', ref) == (pd.Timestamp('2024-10-01'), pd.Timestamp('2024-12-31'))
    assert date_range_from_preset('lastYear', ref) == (pd.Timestamp('2024-01-01'), pd.Timestamp('2024-12-31'))
    assert date_range_from_preset('year-2024', ref) == (pd.Timestamp('2024-01-01'), pd.Timestamp('2024-12-31'))
    assert date_range_from_preset('all', ref) is None


def test_year_presets_only_when_data_spans_years() -> None:
    presets = date_presets(_deals()['funding_date'])
    assert presets[-3:] == ['year-2025', 'year-2024', 'custom']
    single = date_presets(_deals()['funding_date'].iloc[1:])
    assert not any(p.startswith('year-') for p in single)


def test_mtd_defaults_to_latest_deal_date() -> None:
    out = apply_deal_filters(_deals(), DealFilters(date_preset='mtd'))
    assert out['deal_name'].tolist() == ['C', 'D']


def test_custom_range_and_deal_type() -> None:
    filters = DealFilters(date_preset='custom', custom_start='2025-01-01', deal_type='renewal')
    out = apply_deal_filters(_deals(), filters)
    assert out['deal_name'].tolist() == ['B', 'D']


def test_partner_channel_lifecycle_and_ticket_filters() -> None:
    deals = _deals()
    assert apply_deal_filters(deals, DealFilters(partners=['AFN']))['deal_name'].tolist() == ['A', 'C']
    assert apply_deal_filters(deals, DealFilters(channel_types=['Direct']))['deal_name'].tolist() == ['B']
    assert apply_deal_filters(deals, DealFilters(lifecycle_types=['New - PIF']))['deal_name'].tolist() == ['C']
    assert apply_deal_filters(deals, DealFilters(ticket_size_buckets=['1m+', '<50k']))['deal_name'].tolist() == ['A', 'D']


def test_unknown_deal_type_filter_raises() -> None:
    with pytest.raises(ValueError, match='Unknown deal type filter'):
        apply_deal_filters(_deals(), DealFilters(deal_type='refi'))


def test_unknown_date_preset_raises() -> None:
    with pytest.raises(ValueError, match='Unknown date preset'):
        date_range_from_preset('last90', '2025-03-14')
    with pytest.raises(ValueError, match='Unknown date preset'):
        apply_deal_filters(_deals(), DealFilters(date_preset='year-abc'))


def test_filters_do_not_mutate_input() -> None:
    deals = _deals()
    apply_deal_filters(deals, DealFilters(date_preset='ytd'))
    assert len(deals) == 4


def test_deal_filter_options() -> None:
    options = deal_filter_options(_deals())
    assert options['partners'] == ['AFN', 'DIRECT', 'LENDFLOW']
    assert options['months'] == ['2024-12', '2025-02', '2025-03']


def _submissions() -> pd.DataFrame:
    return pd.DataFrame(
        {
            'name': ['S1', 'S2', 'S3'],
            'iso_normalized': ['AFN', 'UNKNOWN', 'LENDFLOW'],
            'rep': ['Ann', '', 'Bob'],
            'stage_category': ['Offered', 'Submitted', 'Funded'],
            'offer_size_bucket': ['<$100K', '$1M+', '<$100K'],
            'pipeline_age_bucket': ['Fresh <30d', 'Stale 90+d', 'Warm 30-60d'],
            'lead_submitted': pd.to_datetime(['2025-03-10', '2024-11-01', '2025-02-20']),
        }
    )


def test_submission_filters() -> None:
    subs = _submissions()
    out = apply_submission_filters(subs, SubmissionFilters(date_preset='last30', offer_size_buckets=['<$100K']), reference_date='2025-03-15')
    assert out['name'].tolist() == ['S1', 'S3']
    out = apply_submission_filters(subs, SubmissionFilters(stages=['Funded'], reps=['Bob']))
    assert out['name'].tolist() == ['S3']


def test_submission_filter_options() -> None:
    options = submission_filter_options(_submissions())
    assert options == {'isos': ['AFN', 'LENDFLOW'], 'reps': ['Ann', 'Bob']}
