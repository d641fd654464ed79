"""
Rolling window statistics.
Right-aligned fixed windows: entry i summarizes [i - window + 1, i], the first
window - 1 entries are missing.
"""

import math
import numpy as np
import pandas as pd
from typing import Callable

from analysis.calculations.correlation import pairwise_correlation
from analysis.errors import InvalidInputError, InvalidWindowError
from analysis.timeseries import SeriesLike, as_float_series

# Trading days per year
ANNUALIZATION_FACTOR = 252


def validate_window(window: int, length: int) -> None:
    """
    Raises:
        InvalidWindowError: If window is not an integer in [1, length]
    """
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise InvalidWindowError(f"Window must be an integer, got {type(window).__name__}")

    if window <= 0:
        raise InvalidWindowError("Window size must be positive")

    if window > length:
        raise InvalidWindowError(f"Window size {window} larger than available data {length}")


def _prepare(series: SeriesLike, window: int) -> pd.Series:
    values = as_float_series(series)
    if values.empty:
        raise InvalidInputError("Insufficient data: series is empty")
    validate_window(window, len(values))
    return values


def _rolling_apply(
    values: pd.Series,
    window: int,
    func: Callable[[np.ndarray], float],
    name: str
) -> pd.Series:
    data = values.to_numpy()
    result = np.full(len(data), np.nan)

    for i in range(window - 1, len(data)):
        window_values = data[i - window + 1:i + 1]
        # A gap inside the window leaves the statistic undefined
        if np.isnan(window_values).any():
            continue
        result[i] = func(window_values)

    return pd.Series(result, index=values.index, name=name)


def _sample_std(window_values: np.ndarray) -> float:
    if len(window_values) < 2:
        return float('nan')
    return float(np.std(window_values, ddof=1))


def rolling_mean(series: SeriesLike, window: int) -> pd.Series:
    """
    Calculate right-aligned rolling arithmetic mean.

    Args:
        series: Values in chronological order
        window: Rolling window size (1 <= window <= len(series))

    Returns:
        Series of same length; first window - 1 entries are NaN

    Raises:
        InvalidWindowError: If window is out of range
        InvalidInputError: If series is empty
    """
    values = _prepare(series, window)
    return _rolling_apply(values, window, lambda w: float(np.mean(w)), 'rolling_mean')


def rolling_std(series: SeriesLike, window: int) -> pd.Series:
    """
    Calculate right-aligned rolling sample standard deviation (ddof=1).

    A window of 1 has no sample deviation, so every entry is NaN.
    """
    values = _prepare(series, window)
    return _rolling_apply(values, window, _sample_std, 'rolling_std')


def rolling_sharpe(
    series: SeriesLike,
    window: int,
    annualization_factor: int = ANNUALIZATION_FACTOR
) -> pd.Series:
    """
    Calculate rolling annualized Sharpe ratio from periodic returns.

    Formula: S = mean(r) / std(r) × √annualization_factor

    Args:
        series: Periodic returns in chronological order
        window: Rolling window size
        annualization_factor: Periods per year (252 for daily)

    Returns:
        Series of rolling Sharpe ratios; NaN where std is zero or undefined
    """
    if annualization_factor <= 0:
        raise InvalidInputError("Annualization factor must be positive")

    values = _prepare(series, window)
    scale = math.sqrt(annualization_factor)

    def sharpe(window_values: np.ndarray) -> float:
        std_dev = _sample_std(window_values)
        if not np.isfinite(std_dev) or std_dev == 0:
            return float('nan')
        return float(np.mean(window_values)) / std_dev * scale

    return _rolling_apply(values, window, sharpe, 'rolling_sharpe')


def rolling_volatility(
    returns: SeriesLike,
    window: int,
    annualize: int = ANNUALIZATION_FACTOR
) -> pd.Series:
    """
    Calculate rolling annualized volatility.

    Formula: σ = std(returns) × √annualize
    """
    if annualize <= 0:
        raise InvalidInputError("Annualization factor must be positive")

    values = _prepare(returns, window)
    scale = math.sqrt(annualize)

    return _rolling_apply(
        values, window, lambda w: _sample_std(w) * scale, 'rolling_volatility'
    )


def rolling_correlation(
    series_a: SeriesLike,
    series_b: SeriesLike,
    window: int
) -> pd.Series:
    """
    Calculate rolling Pearson correlation between two aligned series.

    Each window uses only positions where both series are defined; fewer than
    2 complete pairs (or zero variance) leaves the entry missing.

    Raises:
        InvalidInputError: If series lengths differ or are empty
        InvalidWindowError: If window is out of range
    """
    a = as_float_series(series_a)
    b = as_float_series(series_b)

    if len(a) != len(b):
        raise InvalidInputError(f"Series must have same length, got {len(a)} and {len(b)}")

    a = _prepare(a, window)
    a_values = a.to_numpy()
    b_values = b.to_numpy()
    result = np.full(len(a_values), np.nan)

    for i in range(window - 1, len(a_values)):
        start = i - window + 1
        result[i] = pairwise_correlation(a_values[start:i + 1], b_values[start:i + 1])

    return pd.Series(result, index=a.index, name='rolling_correlation')
