import pandas as pd
import pytest

from src.calculations.aggregation import (
    aggregate_by_group,
    compute_deal_summary,
    compute_iso_metrics,
    compute_partner_metrics,
    submission_timeline,
    top_isos_by_volume,
)
from src.calculations.deal_types import (
    classify_deal_type,
    is_deal_type_new,
    normalize_lifecycle,
    ticket_size_bucket,
)
from src.calculations.submission_fields import derive_submission_fields


def _deals() -> pd.DataFrame:
    return pd.DataFrame(
        {
            'deal_name': ['A', 'B', 'C', 'D', 'E'],
            'funding_date': pd.to_datetime(['2025-03-03', '2025-03-04', '2025-03-04', '2025-03-05', '2025-03-06']),
            'funded_amount': [100_000.0, 50_000.0, 200_000.0, 150_000.0, 25_000.0],
            'mgmt_fee_total': [2_000.0, 1_000.0, 3_000.0, 3_000.0, 500.0],
            'partner_normalized': ['AFN', 'LENDFLOW', 'AFN', 'UNKNOWN', 'LENDFLOW'],
            'deal_type': ['New', 'Renewal', 'Renewal - New Add On', 'n', 'NEW - PIF'],
        }
    )


def test_deal_type_classifier() -> None:
    assert is_deal_type_new(' New ')
    assert is_deal_type_new('n')
    assert not is_deal_type_new('Renewal - New Add On')
    assert not is_deal_type_new(None)
    assert classify_deal_type('Renewal - New Add On') == 'Renewal'
    assert classify_deal_type('New - Add On') == 'New'


def test_lifecycle_and_ticket_buckets() -> None:
    assert normalize_lifecycle('New - PIF') == 'New - PIF'
    assert normalize_lifecycle('new add on') == 'New - Add On'
    assert normalize_lifecycle('Renewal') == 'Renewal'
    assert normalize_lifecycle('Refi') == 'Other'
    assert ticket_size_bucket(49_999) == '<50k'
    assert ticket_size_bucket(50_000) == '50k-250k'
    assert ticket_size_bucket(1_000_000) == '1m+'


def test_aggregate_by_group_excludes_unknown_and_keeps_first_seen_order() -> None:
    out = aggregate_by_group(_deals(), 'partner_normalized')

    assert out['partner_normalized'].tolist() == ['AFN', 'LENDFLOW']
    afn = out.iloc[0]
    assert afn['count'] == 2
    assert afn['total_amount'] == pytest.approx(300_000.0)
    assert afn['avg_ticket'] == pytest.approx(150_000.0)
    assert afn['avg_fee_percent'] == pytest.approx(5_000.0 / 300_000.0 * 100)
    assert afn['new_count'] == 1
    assert afn['renewal_count'] == 1
    assert afn['renewal_amount'] == pytest.approx(200_000.0)


def test_aggregate_by_group_on_empty_frame() -> None:
    out = aggregate_by_group(_deals().iloc[0:0], 'partner_normalized')
    assert out.empty
    assert 'avg_fee_percent' in out.columns


def test_deal_summary_includes_unknown_in_totals() -> None:
    summary = compute_deal_summary(_deals(), monthly_target=1_050_000.0)

    assert summary.deal_count == 5
    assert summary.total_funded == pytest.approx(525_000.0)
    assert summary.target_progress == pytest.approx(50.0)
    assert summary.new_deals_funded == pytest.approx(100_000.0 + 150_000.0 + 25_000.0)
    assert summary.renewal_deals_funded == pytest.approx(250_000.0)


def test_deal_summary_with_zero_target_and_no_deals() -> None:
    summary = compute_deal_summary(_deals().iloc[0:0], monthly_target=0.0)

    assert summary.deal_count == 0
    assert summary.avg_ticket_size == 0.0
    assert summary.avg_fee_percent == 0.0
    assert summary.target_progress == 0.0


def test_partner_metrics_sorted_with_channel_and_consistency() -> None:
    out = compute_partner_metrics(_deals())

    assert out['partner'].tolist() == ['AFN', 'LENDFLOW']
    assert out['channel_type'].tolist() == ['ISO', 'ISO']
    assert 'consistency_score' in out.columns
    assert out.loc[0, 'new_deals_count'] == 1


def test_partner_metrics_custom_sort_is_stable() -> None:
    deals = _deals().assign(partner_normalized=['AFN', 'LENDFLOW', 'DIRECT', 'PLATFORM', 'CAPITAL GURUS'])
    deals['funded_amount'] = [100.0, 100.0, 100.0, 100.0, 100.0]
    deals['mgmt_fee_total'] = [1.0, 1.0, 1.0, 1.0, 1.0]

    out = compute_partner_metrics(deals, include_consistency=False)

    assert out['partner'].tolist() == ['AFN', 'LENDFLOW', 'DIRECT', 'PLATFORM', 'CAPITAL GURUS']
    assert out.loc[out['partner'] == 'DIRECT', 'channel_type'].item() == 'Direct'


def test_partner_metrics_apply_merges() -> None:
    out = compute_partner_metrics(_deals(), merges={'AFN + LENDFLOW': ['AFN', 'LENDFLOW']}, include_consistency=False)

    assert out['partner'].tolist() == ['AFN + LENDFLOW']
    assert out.loc[0, 'deal_count'] == 4


def _submissions() -> pd.DataFrame:
    raw = pd.DataFrame(
        {
            'name': ['S1', 'S2', 'S3', 'S4'],
            'iso_normalized': ['AFN', 'AFN', 'LENDFLOW', 'UNKNOWN'],
            'rep': ['Ann', 'Bob', 'Ann', ''],
            'stage': ['Offer Out', 'In Submission', 'Funded', 'Pending'],
            'offer_amount': [100_000.0, 0.0, 300_000.0, 50_000.0],
            'lead_submitted': pd.to_datetime(['2025-01-10', '2025-02-10', '2025-02-11', '2025-02-12']),
        }
    )
    return derive_submission_fields(raw, as_of='2025-03-01')


def test_iso_metrics() -> None:
    out = compute_iso_metrics(_submissions())

    assert out['iso'].tolist() == ['AFN', 'LENDFLOW']
    afn = out.iloc[0]
    assert afn['total_submissions'] == 2
    assert afn['avg_offer_amount'] == pytest.approx(100_000.0)
    assert afn['offers_made'] == 1
    assert afn['unique_reps'] == 2
    assert afn['submissions_by_month'] == {'2025-01': 1, '2025-02': 1}
    assert top_isos_by_volume(out, n=1) == ['AFN']


def test_iso_metrics_caller_sort() -> None:
    out = compute_iso_metrics(_submissions(), sort_by='total_submissions', ascending=True)

    assert out['iso'].tolist() == ['LENDFLOW', 'AFN']


def test_submission_timeline() -> None:
    table = submission_timeline(_submissions(), ['AFN', 'LENDFLOW'])

    assert table['month'].tolist() == ['2025-01', '2025-02']
    assert table['AFN'].tolist() == [1, 1]
    assert table['LENDFLOW'].tolist() == [0, 1]
