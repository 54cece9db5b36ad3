"""Denominator-guarded arithmetic used by every rate and average."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd


def safe_div(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero or the result is not finite."""
    if not denominator:
        return 0.0
    value = float(numerator) / float(denominator)
    return value if math.isfinite(value) else 0.0


def safe_pct(numerator: float, denominator: float) -> float:
    return safe_div(numerator, denominator) * 100.0


def safe_div_series(numerator: pd.Series, denominator: pd.Series | float) -> pd.Series:
    """Element-wise guarded division; zero denominators give 0.0."""
    num = numerator.astype(float)
    den = denominator.astype(float) if isinstance(denominator, pd.Series) else pd.Series(float(denominator), index=num.index)
    with np.errstate(divide='ignore', invalid='ignore'):
        out = np.where(den != 0.0, num / den.where(den != 0.0, 1.0), 0.0)
    out = np.where(np.isfinite(out), out, 0.0)
    return pd.Series(out, index=num.index, dtype=float)


def pct_change(current: float, comparison: float) -> float:
    """Percent change from comparison to current; 0.0 when comparison is 0."""
    return safe_pct(float(current) - float(comparison), comparison)


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded up, unlike the built-in banker's rounding."""
    return int(math.floor(float(value) + 0.5))
