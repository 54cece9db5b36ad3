import pandas as pd
import pytest

from src.utils.date_utils import days_between, in_range, month_end, quarter_label, quarter_start, to_timestamp
from src.utils.math_utils import pct_change, round_half_up, safe_div, safe_div_series, safe_pct


def test_guarded_division() -> None:
    assert safe_div(10, 4) == 2.5
    assert safe_div(10, 0) == 0.0
    assert safe_pct(1, 4) == 25.0
    assert safe_pct(1, 0) == 0.0
    out = safe_div_series(pd.Series([10.0, 5.0]), pd.Series([2.0, 0.0]))
    assert out.tolist() == [5.0, 0.0]


def test_pct_change_and_rounding() -> None:
    assert pct_change(150, 100) == pytest.approx(50.0)
    assert pct_change(150, 0) == 0.0
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(46.4) == 46


def test_date_helpers() -> None:
    assert to_timestamp('2025-03-10 15:30') == pd.Timestamp('2025-03-10')
    assert month_end('2024-02-10') == pd.Timestamp('2024-02-29')
    assert quarter_start('2025-08-15') == pd.Timestamp('2025-07-01')
    assert quarter_label('2025-08-15') == 'Q3 2025'
    assert days_between('2025-03-10', '2025-03-01') == -9
    mask = in_range(pd.Series(pd.to_datetime(['2025-03-01 09:00', '2025-03-31 23:00', '2025-04-01 00:00'])), '2025-03-01', '2025-03-31')
    assert mask.tolist() == [True, True, False]
