import pandas as pd
import pytest

from src.calculations.quality_score import (
    generate_performance_alerts,
    grade_for,
    percentile_rank,
    score_all_isos,
    score_iso,
    scores_to_frame,
    tier_for,
)

EMPTY_TRENDS = pd.DataFrame(columns=['month', 'iso', 'submissions', 'funded', 'offers', 'conversion_rate', 'revenue'])


def _metrics() -> pd.DataFrame:
    return pd.DataFrame(
        {
            'iso': ['A', 'B', 'C', 'D'],
            'overall_conversion_rate': [30.0, 11.0, 5.0, 18.0],
            'total_submissions': [100, 50, 10, 60],
            'total_revenue': [50_000.0, 10_000.0, 1_000.0, 20_000.0],
            'avg_days_to_fund': [20.0, 70.0, 40.0, 50.0],
        }
    )


def test_percentile_rank() -> None:
    assert percentile_rank(2, [3, 1, 2]) == pytest.approx(2 / 3)
    assert percentile_rank(5, [1, 2, 3]) == 1.0
    assert percentile_rank(1, []) == 1.0


def test_grade_and_tier_boundaries() -> None:
    assert [grade_for(t) for t in (95, 90, 80, 70, 60, 50, 49)] == ['A+', 'A+', 'A', 'B', 'C', 'D', 'F']
    assert [tier_for(t) for t in (80, 79, 65, 64, 50, 49)] == [1, 2, 2, 3, 3, 4]


def test_score_components() -> None:
    metrics = _metrics()
    scores = {s.iso: s for s in score_all_isos(metrics, EMPTY_TRENDS)}

    a = scores['A']
    assert a.total_score == 95
    assert (a.breakdown.conversion, a.breakdown.volume, a.breakdown.revenue, a.breakdown.speed, a.breakdown.consistency) == (40, 15, 20, 15, 5)
    assert a.grade == 'A+'
    assert a.tier == 1
    assert 'Excellent conversion rate' in a.strengths

    b = scores['B']
    assert b.total_score == 46
    assert b.grade == 'F'
    assert 'Slow funding time' in b.weaknesses
    assert 'Below-average conversion rate' in b.weaknesses

    assert scores['C'].total_score == 36
    assert scores['D'].total_score == 69
    assert scores['D'].grade == 'C'
    assert scores['D'].tier == 2


def test_consistency_uses_monthly_history() -> None:
    trends = pd.DataFrame(
        {
            'month': ['2025-01', '2025-02', '2025-03'],
            'iso': ['A', 'A', 'A'],
            'conversion_rate': [10.0, 12.0, 14.0],
        }
    )

    score = score_iso(_metrics().iloc[0], trends, _metrics())

    assert score.breakdown.consistency == 10
    assert score.total_score == 100
    assert 'Consistent performance' in score.strengths


def test_alerts_sorted_by_severity() -> None:
    metrics = _metrics()
    scores = score_all_isos(metrics, EMPTY_TRENDS)

    alerts = generate_performance_alerts(metrics, scores)

    assert [(a.iso, a.severity, a.metric) for a in alerts] == [
        ('B', 'critical', 'Quality Score'),
        ('C', 'critical', 'Overall Conversion Rate'),
        ('C', 'critical', 'Quality Score'),
        ('B', 'warning', 'Overall Conversion Rate'),
        ('B', 'warning', 'Avg Days to Fund'),
        ('A', 'info', 'Quality Score'),
    ]
    assert alerts[1].value == '5.0%'
    assert alerts[4].value == '70 days'
    assert alerts[0].value == '46/100'


def test_scores_to_frame_best_first() -> None:
    frame = scores_to_frame(score_all_isos(_metrics(), EMPTY_TRENDS))
    assert frame['iso'].tolist() == ['A', 'D', 'B', 'C']
