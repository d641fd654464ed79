"""
Returns calculation utilities.
Pure functions for periodic returns, rebasing and return distributions.
"""

import numpy as np
import pandas as pd
from typing import Any, Dict

from analysis.errors import InvalidInputError
from analysis.timeseries import SeriesLike, as_float_series


def _positive_values(prices: SeriesLike) -> pd.Series:
    values = as_float_series(prices)

    if values.empty:
        raise InvalidInputError("Insufficient data: series is empty")

    if (values.dropna() <= 0).any():
        raise InvalidInputError("Zero or negative prices not allowed")

    return values


def simple_returns(prices: SeriesLike) -> pd.Series:
    """
    Calculate one-period simple returns.

    Formula: R_t = (P_t / P_{t-1}) - 1

    Returns:
        Series of same length; the first entry is NaN
    """
    values = _positive_values(prices)
    array = values.to_numpy()

    returns = np.full(len(array), np.nan)
    returns[1:] = array[1:] / array[:-1] - 1

    return pd.Series(returns, index=values.index, name='returns')


def log_returns(prices: SeriesLike) -> pd.Series:
    """
    Calculate log returns from a price or equity series.

    Formula: r_t = ln(P_t) - ln(P_{t-1})

    Returns:
        Series of length len(prices) - 1, indexed by the later timestamp

    Raises:
        InvalidInputError: If fewer than 2 prices or non-positive prices
    """
    values = _positive_values(prices)

    if len(values) < 2:
        raise InvalidInputError("Insufficient data: need at least 2 prices")

    log_ret = np.diff(np.log(values.to_numpy()))

    return pd.Series(log_ret, index=values.index[1:], name='returns')


def normalize_to_base(values: SeriesLike, base: float = 100.0) -> pd.Series:
    """
    Rebase a series so its first defined value equals base.

    Example:
        [50, 55, 45] with base 100 -> [100, 110, 90]

    Raises:
        InvalidInputError: If no defined value exists or the first is zero
    """
    series = as_float_series(values)
    defined = series.dropna()

    if defined.empty:
        raise InvalidInputError("Cannot normalize a series with no defined values")

    first = defined.iloc[0]
    if first == 0:
        raise InvalidInputError("Cannot normalize a series starting at zero")

    return (series / first * base).rename('normalized_value')


def returns_distribution(
    returns: SeriesLike,
    bins: int = 50,
    show_normal: bool = True,
    normal_points: int = 100,
    kde_points: int = 512
) -> Dict[str, Any]:
    """
    Summarize a return series as a histogram with density overlays.

    Missing values are removed before summarizing. A single return still gets
    a histogram; its standard deviation is NaN and both curves are omitted.

    Args:
        returns: Periodic returns
        bins: Number of histogram bins
        show_normal: Include a fitted normal density curve
        normal_points: Number of points on the normal curve
        kde_points: Number of points on the kernel density curve

    Returns:
        Dictionary with:
        - mean, std: Sample mean and standard deviation (ddof=1)
        - count: Number of defined returns
        - histogram: DataFrame (left, right, center, density)
        - kde: DataFrame (x, density) from a Gaussian kernel estimate, or None
        - normal: DataFrame (x, density) or None

    Raises:
        InvalidInputError: If no defined returns or bins < 1
    """
    if bins < 1:
        raise InvalidInputError("Number of bins must be positive")

    values = as_float_series(returns).dropna().to_numpy()

    if len(values) == 0:
        raise InvalidInputError("Insufficient data: need at least 1 return")

    if np.isinf(values).any():
        raise InvalidInputError("Infinite values not allowed in returns")

    mean_ret = float(np.mean(values))
    std_ret = float(np.std(values, ddof=1)) if len(values) > 1 else float('nan')

    density, edges = np.histogram(values, bins=bins, density=True)
    histogram = pd.DataFrame({
        'left': edges[:-1],
        'right': edges[1:],
        'center': (edges[:-1] + edges[1:]) / 2,
        'density': density,
    })

    kde = None
    normal = None
    # Both curves need a spread to fit
    if np.isfinite(std_ret) and std_ret > 0:
        from scipy import stats

        kde_x = np.linspace(values.min(), values.max(), kde_points)
        kde = pd.DataFrame({
            'x': kde_x,
            'density': stats.gaussian_kde(values)(kde_x),
        })

        if show_normal:
            x = np.linspace(values.min(), values.max(), normal_points)
            normal = pd.DataFrame({
                'x': x,
                'density': stats.norm.pdf(x, loc=mean_ret, scale=std_ret),
            })

    return {
        'mean': mean_ret,
        'std': std_ret,
        'count': int(len(values)),
        'histogram': histogram,
        'kde': kde,
        'normal': normal,
    }
