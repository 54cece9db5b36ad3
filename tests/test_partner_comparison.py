import pandas as pd
import pytest

from src.calculations.partner_comparison import compare_partners, partner_radar, rank_partners


def _metrics() -> pd.DataFrame:
    return pd.DataFrame(
        {
            'partner': ['AFN', 'LENDFLOW', 'DIRECT'],
            'total_funded': [300_000.0, 500_000.0, 100_000.0],
            'total_fees': [9_000.0, 10_000.0, 4_000.0],
            'deal_count': [6, 2, 4],
            'avg_ticket_size': [50_000.0, 250_000.0, 25_000.0],
            'avg_fee_percent': [3.0, 2.0, 4.0],
            'new_deals_count': [4, 1, 4],
            'renewal_deals_count': [2, 1, 0],
        }
    )


def test_rank_partners_orders_by_funded_volume() -> None:
    ranked = rank_partners(_metrics())
    assert ranked['partner'].tolist() == ['LENDFLOW', 'AFN', 'DIRECT']
    assert ranked['rank'].tolist() == [1, 2, 3]
    assert ranked['deal_count_rank'].tolist() == [3, 1, 2]
    assert ranked['fee_rank'].tolist() == [1, 2, 3]
    assert ranked['percentile_rank'].tolist() == pytest.approx([100.0, 200.0 / 3.0, 100.0 / 3.0])


def test_rank_partners_empty() -> None:
    ranked = rank_partners(_metrics().iloc[0:0])
    assert ranked.empty
    assert 'percentile_rank' in ranked.columns


def test_compare_partners_head_to_head() -> None:
    metrics = _metrics().set_index('partner')
    rows = {row.label: row for row in compare_partners(metrics.loc['AFN'], metrics.loc['LENDFLOW'])}

    funded = rows['Total Funded']
    assert funded.winner == 'partner2'
    assert funded.difference == pytest.approx(200_000.0)
    assert funded.difference_percent == pytest.approx(200_000.0 / 300_000.0 * 100.0)

    assert rows['Deal Count'].winner == 'partner1'
    assert rows['Deal Count'].difference_percent == pytest.approx(200.0)


def test_compare_partners_tie_and_zero_loser() -> None:
    metrics = _metrics().set_index('partner')
    rows = {row.label: row for row in compare_partners(metrics.loc['AFN'], metrics.loc['DIRECT'])}
    assert rows['New Deals'].winner == 'tie'
    assert rows['New Deals'].difference == 0.0
    renewals = rows['Renewals']
    assert renewals.winner == 'partner1'
    assert renewals.difference_percent == 0.0


def test_partner_radar_scales_to_best_partner() -> None:
    metrics = _metrics()
    radar = partner_radar(metrics.iloc[0], metrics)
    assert radar['Volume'] == pytest.approx(60.0)
    assert radar['Deal Count'] == pytest.approx(100.0)
    assert radar['Fee %'] == pytest.approx(75.0)
    assert set(radar) == {'Volume', 'Fees', 'Deal Count', 'Avg Ticket', 'Fee %'}
