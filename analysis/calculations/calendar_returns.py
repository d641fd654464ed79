"""
Calendar return aggregation.
Buckets an equity series by (year, month) of its own timestamps.
"""

import calendar
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from analysis.errors import InvalidInputError
from analysis.timeseries import validate_timestamps


@dataclass(frozen=True)
class CalendarBucket:
    """Monthly bucket with first/last equity and the period return between them."""
    year: int
    month: int
    start_value: float
    end_value: float
    observations: int
    period_return: float

    @property
    def month_label(self) -> str:
        return calendar.month_abbr[self.month]


def monthly_returns(equity: pd.Series) -> List[CalendarBucket]:
    """
    Calculate one return per calendar month present in the series.

    Formula: R_month = (last value / first value) - 1

    Start and end use the first and last defined values of the month in
    chronological order; a month with a single observation returns 0.

    Args:
        equity: Equity values indexed by non-decreasing timestamps

    Returns:
        Buckets ordered by year, then month

    Raises:
        InvalidInputError: If empty, not timestamp-indexed, or non-positive
    """
    if not isinstance(equity, pd.Series) or not isinstance(equity.index, pd.DatetimeIndex):
        raise InvalidInputError("Equity series must be indexed by timestamps")

    if equity.empty:
        raise InvalidInputError("Insufficient data: equity series is empty")

    validate_timestamps(equity.index)

    values = equity.astype(float)
    if (values.dropna() <= 0).any():
        raise InvalidInputError("Zero or negative equity values not allowed")

    years = values.index.year.to_numpy()
    months = values.index.month.to_numpy()
    data = values.to_numpy()

    buckets = []
    # Timestamps are sorted, so each (year, month) is one contiguous run
    keys = sorted(set(zip(years.tolist(), months.tolist())))
    for year, month in keys:
        mask = (years == year) & (months == month)
        month_values = data[mask]
        defined = month_values[~np.isnan(month_values)]

        if len(defined) == 0:
            start_value = end_value = period_return = float('nan')
        else:
            start_value = float(defined[0])
            end_value = float(defined[-1])
            period_return = end_value / start_value - 1

        buckets.append(CalendarBucket(
            year=int(year),
            month=int(month),
            start_value=start_value,
            end_value=end_value,
            observations=int(mask.sum()),
            period_return=period_return,
        ))

    return buckets


def buckets_to_frame(buckets: List[CalendarBucket]) -> pd.DataFrame:
    """Tidy frame (year, month, month_label, start/end values, observations, monthly_return)."""
    return pd.DataFrame(
        [
            {
                'year': b.year,
                'month': b.month,
                'month_label': b.month_label,
                'start_value': b.start_value,
                'end_value': b.end_value,
                'observations': b.observations,
                'monthly_return': b.period_return,
            }
            for b in buckets
        ],
        columns=[
            'year', 'month', 'month_label', 'start_value',
            'end_value', 'observations', 'monthly_return'
        ]
    )


def monthly_returns_grid(buckets: List[CalendarBucket]) -> pd.DataFrame:
    """
    Pivot buckets into a year x month grid of returns.

    Rows are years ascending, columns are month abbreviations Jan..Dec;
    months without observations are NaN.
    """
    grid = pd.DataFrame(
        np.nan,
        index=sorted({b.year for b in buckets}),
        columns=[calendar.month_abbr[m] for m in range(1, 13)]
    )
    for b in buckets:
        grid.at[b.year, b.month_label] = b.period_return
    grid.index.name = 'year'
    return grid
