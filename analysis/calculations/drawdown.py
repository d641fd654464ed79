"""
Drawdown calculation utilities.
Pure functions for drawdown-from-peak series and maximum drawdown analysis.
"""

import numpy as np
import pandas as pd
from typing import Any, Dict, Optional

from analysis.errors import InvalidInputError
from analysis.timeseries import SeriesLike, as_float_series


def _validated_equity(equity: SeriesLike) -> pd.Series:
    values = as_float_series(equity)

    if values.empty:
        raise InvalidInputError("Insufficient data: equity series is empty")

    defined = values.dropna()
    if defined.empty:
        raise InvalidInputError("Insufficient data: equity series has no defined values")

    if np.isinf(defined.to_numpy()).any():
        raise InvalidInputError("Infinite equity values not allowed")

    if (defined <= 0).any():
        raise InvalidInputError("Zero or negative equity values not allowed")

    return values


def drawdown_series(equity: SeriesLike) -> pd.Series:
    """
    Convert an equity series into a drawdown-from-peak series.

    Formula: DD_t = (E_t - max(E_0..E_t)) / max(E_0..E_t)

    Missing values stay missing and do not move the running peak.

    Args:
        equity: Equity values in chronological order (all > 0)

    Returns:
        Series of drawdowns (<= 0) on the same index, named 'drawdown'

    Raises:
        InvalidInputError: If empty or containing non-positive values

    Example:
        [100, 120, 90, 130] -> [0.0, 0.0, -0.25, 0.0]
    """
    values = _validated_equity(equity)
    equity_array = values.to_numpy()

    # fmax skips NaN so a gap never resets the peak
    running_max = np.fmax.accumulate(equity_array)

    drawdowns = (equity_array - running_max) / running_max

    return pd.Series(drawdowns, index=values.index, name='drawdown')


def max_drawdown(equity: SeriesLike) -> Dict[str, Any]:
    """
    Calculate maximum drawdown statistics for an equity series.

    Finds the largest peak-to-trough decline and recovery information.
    Ties on the deepest drawdown resolve to the first index.

    Args:
        equity: Equity values in chronological order

    Returns:
        Dictionary with drawdown statistics:
        - max_drawdown_pct: Largest decline as decimal (negative or 0)
        - peak_index / trough_index / recovery_index: Positions in the series
        - peak_date / trough_date / recovery_date: Index labels at those positions
        - drawdown_periods: Observations from peak to trough
        - recovery_periods: Observations from trough to recovery (None if no recovery)

    Raises:
        InvalidInputError: If empty or containing non-positive values
    """
    drawdowns = drawdown_series(equity)
    values = as_float_series(equity).to_numpy()
    dd_array = drawdowns.to_numpy()

    # nanargmin returns the first occurrence of the minimum
    trough_idx = int(np.nanargmin(dd_array))
    max_drawdown_pct = float(dd_array[trough_idx])

    running_max = np.fmax.accumulate(values)
    peak_value = running_max[trough_idx]

    # Peak is the first observation reaching the running max at the trough
    peak_idx = trough_idx
    for i in range(trough_idx + 1):
        if values[i] == peak_value:
            peak_idx = i
            break

    recovery_idx: Optional[int] = None
    if max_drawdown_pct == 0:
        recovery_idx = peak_idx
    else:
        for i in range(trough_idx + 1, len(values)):
            if values[i] >= peak_value:
                recovery_idx = i
                break

    labels = drawdowns.index

    return {
        'max_drawdown_pct': max_drawdown_pct,
        'peak_index': peak_idx,
        'trough_index': trough_idx,
        'recovery_index': recovery_idx,
        'peak_date': labels[peak_idx],
        'trough_date': labels[trough_idx],
        'recovery_date': labels[recovery_idx] if recovery_idx is not None else None,
        'drawdown_periods': trough_idx - peak_idx,
        'recovery_periods': (recovery_idx - trough_idx) if recovery_idx is not None else None,
    }
