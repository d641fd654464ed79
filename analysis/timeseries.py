"""
TimeSeries and Table helpers.
A TimeSeries is a float pandas Series on a non-decreasing timestamp axis;
a Table is a DataFrame whose timestamp axis is its DatetimeIndex or a timestamp column.
"""

from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from analysis.calculations.columns import SemanticRole, resolve_column
from analysis.errors import InvalidInputError, MissingColumnError

SeriesLike = Union[pd.Series, Sequence[float], np.ndarray]


def as_float_series(values: SeriesLike, name: Optional[str] = None) -> pd.Series:
    """
    Convert input values to a new float Series, keeping a pandas index if present.

    Raises:
        InvalidInputError: If values are not numeric
    """
    try:
        if isinstance(values, pd.Series):
            series = values.astype(float)
        else:
            series = pd.Series(np.asarray(values, dtype=float))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Series values must be numeric: {e}") from e

    if name is not None:
        series = series.rename(name)
    return series


def parse_timestamps(values, column: str) -> pd.DatetimeIndex:
    """
    Parse raw timestamp values into a DatetimeIndex named after their column.

    Raises:
        InvalidInputError: If any value cannot be parsed as a timestamp
    """
    try:
        return pd.DatetimeIndex(pd.to_datetime(np.asarray(values)), name=column)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Cannot parse timestamps in '{column}': {e}") from e


def validate_timestamps(index: pd.Index) -> None:
    """
    Check that a timestamp axis is non-decreasing.

    Raises:
        InvalidInputError: If timestamps go backwards or are missing
    """
    if len(index) == 0:
        return
    if pd.isna(index).any():
        raise InvalidInputError("Timestamps must not be missing")
    if not index.is_monotonic_increasing:
        raise InvalidInputError("Timestamps must be in non-decreasing order")


def timestamp_axis(table: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Return the table's timestamp axis as a DatetimeIndex.

    Uses the index when it already holds datetimes, otherwise the first
    present timestamp column (datetime, date, timestamp, time).

    Raises:
        MissingColumnError: If no timestamp axis exists
        InvalidInputError: If timestamps cannot be parsed or are out of order
    """
    if isinstance(table.index, pd.DatetimeIndex):
        index = table.index
    else:
        column = resolve_column(table, SemanticRole.TIMESTAMP)
        if column is None:
            raise MissingColumnError(
                "No timestamp axis found. Expected a DatetimeIndex or one of: "
                "'datetime', 'date', 'timestamp', 'time'"
            )
        index = parse_timestamps(table[column], column)

    validate_timestamps(index)
    return index


def column_series(table: pd.DataFrame, column: str) -> pd.Series:
    """
    Extract one column as a float TimeSeries on the table's timestamp axis.

    Raises:
        MissingColumnError: If column is absent
    """
    if column not in table.columns:
        raise MissingColumnError(f"Column '{column}' not found in data")

    index = timestamp_axis(table)
    values = as_float_series(table[column].to_numpy(), name=column)
    values.index = index
    return values
