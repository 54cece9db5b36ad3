"""Composite 0-100 quality score per ISO and the performance alerts built on it.

Component budgets: conversion 40, volume 15, revenue 20, speed 15 and
consistency 10. Volume and revenue are scored by percentile rank against every
ISO in the same metrics frame, so scores are only comparable within one run.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Mapping

import pandas as pd

from src.calculations.conversion import conversion_std_dev
from src.utils.math_utils import round_half_up

CONVERSION_POINTS = 40
VOLUME_POINTS = 15
REVENUE_POINTS = 20
SPEED_POINTS = 15
DEFAULT_CONSISTENCY_POINTS = 5
MIN_TREND_MONTHS = 3

SEVERITY_ORDER = {'critical': 0, 'warning': 1, 'info': 2}


@dataclass(frozen=True)
class ScoreBreakdown:
    conversion: int
    volume: int
    revenue: int
    speed: int
    consistency: int


@dataclass(frozen=True)
class QualityScore:
    iso: str
    total_score: int
    breakdown: ScoreBreakdown
    grade: str
    tier: int
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PerformanceAlert:
    iso: str
    severity: str
    message: str
    metric: str
    value: str


def percentile_rank(value: float, population: list[float]) -> float:
    """Position of the first population value >= ``value`` as a fraction in (0, 1]."""
    ordered = sorted(population)
    if not ordered:
        return 1.0
    index = bisect_left(ordered, value)
    if index == len(ordered):
        return 1.0
    return (index + 1) / len(ordered)


def _conversion_points(rate: float) -> tuple[float, str | None, str | None]:
    if rate >= 25:
        return 40, 'Excellent conversion rate', None
    if rate >= 20:
        return 35, 'Strong conversion rate', None
    if rate >= 15:
        return 30, None, None
    if rate >= 12:
        return 25, None, None
    if rate >= 10:
        return 20, None, 'Below-average conversion rate'
    return max(0.0, rate * 2), None, 'Poor conversion rate'


def _speed_points(avg_days: float) -> tuple[float, str | None, str | None]:
    if avg_days <= 30:
        return 15, 'Fast funding time', None
    if avg_days <= 45:
        return 12, None, None
    if avg_days <= 60:
        return 8, None, None
    return max(0.0, 15 - (avg_days - 30) * 0.3), None, 'Slow funding time'


def _consistency_points(std_dev: float) -> tuple[float, str | None, str | None]:
    if std_dev <= 5:
        return 10, 'Consistent performance', None
    if std_dev <= 10:
        return 7, None, None
    if std_dev <= 15:
        return 4, None, None
    return 2, None, 'Inconsistent performance'


def grade_for(total: int) -> str:
    for floor, grade in ((90, 'A+'), (80, 'A'), (70, 'B'), (60, 'C'), (50, 'D')):
        if total >= floor:
            return grade
    return 'F'


def tier_for(total: int) -> int:
    if total >= 80:
        return 1
    if total >= 65:
        return 2
    if total >= 50:
        return 3
    return 4


def score_iso(
    metrics: Mapping[str, object] | pd.Series,
    monthly_trends: pd.DataFrame,
    all_metrics: pd.DataFrame,
) -> QualityScore:
    """Score one row of conversion metrics against the full cross-ISO frame."""
    iso = str(metrics['iso'])
    strengths: list[str] = []
    weaknesses: list[str] = []

    def collect(result: tuple[float, str | None, str | None]) -> float:
        points, strength, weakness = result
        if strength:
            strengths.append(strength)
        if weakness:
            weaknesses.append(weakness)
        return float(points)

    conversion = collect(_conversion_points(float(metrics['overall_conversion_rate'])))

    volume_pct = percentile_rank(float(metrics['total_submissions']), all_metrics['total_submissions'].astype(float).tolist())
    volume = volume_pct * VOLUME_POINTS
    if volume_pct >= 0.75:
        strengths.append('High submission volume')
    elif volume_pct < 0.25:
        weaknesses.append('Low submission volume')

    revenue_pct = percentile_rank(float(metrics['total_revenue']), all_metrics['total_revenue'].astype(float).tolist())
    revenue = revenue_pct * REVENUE_POINTS
    if revenue_pct >= 0.75:
        strengths.append('Top revenue generator')
    elif revenue_pct < 0.25:
        weaknesses.append('Low revenue contribution')

    speed = collect(_speed_points(float(metrics['avg_days_to_fund'])))

    months = int((monthly_trends['iso'] == iso).sum()) if not monthly_trends.empty else 0
    if months >= MIN_TREND_MONTHS:
        consistency = collect(_consistency_points(conversion_std_dev(monthly_trends, iso)))
    else:
        consistency = float(DEFAULT_CONSISTENCY_POINTS)

    total = round_half_up(conversion + volume + revenue + speed + consistency)
    return QualityScore(
        iso=iso,
        total_score=total,
        breakdown=ScoreBreakdown(
            conversion=round_half_up(conversion),
            volume=round_half_up(volume),
            revenue=round_half_up(revenue),
            speed=round_half_up(speed),
            consistency=round_half_up(consistency),
        ),
        grade=grade_for(total),
        tier=tier_for(total),
        strengths=strengths,
        weaknesses=weaknesses,
    )


def score_all_isos(conversion_metrics: pd.DataFrame, monthly_trends: pd.DataFrame) -> list[QualityScore]:
    return [score_iso(row, monthly_trends, conversion_metrics) for _, row in conversion_metrics.iterrows()]


def scores_to_frame(scores: list[QualityScore]) -> pd.DataFrame:
    """Flatten scores into one row per ISO, best first."""
    rows = [
        {
            'iso': s.iso,
            'total_score': s.total_score,
            'grade': s.grade,
            'tier': s.tier,
            'conversion_score': s.breakdown.conversion,
            'volume_score': s.breakdown.volume,
            'revenue_score': s.breakdown.revenue,
            'speed_score': s.breakdown.speed,
            'consistency_score': s.breakdown.consistency,
        }
        for s in scores
    ]
    frame = pd.DataFrame(rows, columns=['iso', 'total_score', 'grade', 'tier', 'conversion_score', 'volume_score', 'revenue_score', 'speed_score', 'consistency_score'])
    return frame.sort_values('total_score', ascending=False, kind='mergesort').reset_index(drop=True)


def generate_performance_alerts(conversion_metrics: pd.DataFrame, scores: list[QualityScore]) -> list[PerformanceAlert]:
    """Critical, warning and info flags per ISO; critical first, stable within a severity."""
    by_iso = {s.iso: s for s in scores}
    alerts: list[PerformanceAlert] = []
    for _, m in conversion_metrics.iterrows():
        iso = str(m['iso'])
        rate = float(m['overall_conversion_rate'])
        days = float(m['avg_days_to_fund'])
        score = by_iso.get(iso)

        if rate < 10:
            alerts.append(
                PerformanceAlert(iso, 'critical', 'Critically low conversion rate - consider immediate review', 'Overall Conversion Rate', f'{rate:.1f}%')
            )
        elif rate < 12:
            alerts.append(PerformanceAlert(iso, 'warning', 'Below-target conversion rate', 'Overall Conversion Rate', f'{rate:.1f}%'))
        if days > 60:
            alerts.append(
                PerformanceAlert(iso, 'warning', 'Slow funding time impacting efficiency', 'Avg Days to Fund', f'{round_half_up(days)} days')
            )
        if score is not None and score.total_score < 50:
            alerts.append(
                PerformanceAlert(iso, 'critical', 'Overall poor performance across multiple metrics', 'Quality Score', f'{score.total_score}/100')
            )
        if score is not None and score.total_score >= 85:
            alerts.append(
                PerformanceAlert(iso, 'info', 'Top performer - consider increased allocation', 'Quality Score', f'{score.total_score}/100')
            )
    return sorted(alerts, key=lambda a: SEVERITY_ORDER[a.severity])
