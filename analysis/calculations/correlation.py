"""
Correlation matrix utilities.
Pairwise-complete correlation across table columns, linearized for heatmaps.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from analysis.calculations.columns import SemanticRole, resolve_column
from analysis.errors import InvalidInputError, UnsupportedOptionError
from analysis.timeseries import parse_timestamps

logger = logging.getLogger(__name__)

CORRELATION_METHODS = ('pearson', 'spearman', 'kendall')


@dataclass(frozen=True)
class CorrelationCell:
    """One (row, col, value) entry of a correlation matrix."""
    row: str
    col: str
    value: float


def validate_method(method: str) -> str:
    """
    Raises:
        UnsupportedOptionError: If method is not pearson, spearman or kendall
    """
    if method not in CORRELATION_METHODS:
        raise UnsupportedOptionError(
            f"Unsupported correlation method: {method}. "
            f"Expected one of: {', '.join(CORRELATION_METHODS)}"
        )
    return method


def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """
    Pearson correlation of two equal-length arrays without missing values.

    Returns NaN with fewer than 2 points or zero variance on either side.
    """
    if len(x) < 2:
        return float('nan')

    if np.all(x == x[0]) or np.all(y == y[0]):
        return float('nan')

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))

    if denominator == 0 or not np.isfinite(denominator):
        return float('nan')

    return float(np.clip(np.sum(dx * dy) / denominator, -1.0, 1.0))


def pairwise_correlation(x: np.ndarray, y: np.ndarray, method: str = 'pearson') -> float:
    """
    Correlate two arrays using only positions where both are defined.

    Args:
        x: First value array (may contain NaN)
        y: Second value array, same length
        method: pearson, spearman or kendall

    Returns:
        Correlation in [-1, 1], or NaN if fewer than 2 complete pairs
    """
    validate_method(method)

    if len(x) != len(y):
        raise InvalidInputError(f"Series must have same length, got {len(x)} and {len(y)}")

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    valid = ~(np.isnan(x) | np.isnan(y))
    x, y = x[valid], y[valid]

    if len(x) < 2:
        return float('nan')

    if method == 'pearson':
        return pearson_correlation(x, y)

    from scipy import stats

    if method == 'spearman':
        # Spearman is Pearson over average ranks
        return pearson_correlation(stats.rankdata(x), stats.rankdata(y))

    if np.all(x == x[0]) or np.all(y == y[0]):
        return float('nan')

    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        tau, _ = stats.kendalltau(x, y)

    return float(np.clip(tau, -1.0, 1.0)) if np.isfinite(tau) else float('nan')


def prepare_wide_frame(table: pd.DataFrame) -> pd.DataFrame:
    """
    Shape a table into one numeric column per correlated series.

    Long format (symbol, timestamp, price) is pivoted to one column per symbol
    in order of first appearance, aligned on sorted timestamps. Otherwise every
    numeric column is kept in table order and other columns are dropped.

    Raises:
        InvalidInputError: On duplicate (timestamp, symbol) rows or no numeric columns
    """
    symbol_col = resolve_column(table, SemanticRole.SYMBOL)
    price_col = resolve_column(table, SemanticRole.PRICE)
    time_col = resolve_column(table, SemanticRole.TIMESTAMP)

    has_time_axis = time_col is not None or isinstance(table.index, pd.DatetimeIndex)

    if symbol_col and price_col and has_time_axis:
        if time_col is not None:
            timestamps = parse_timestamps(table[time_col], time_col)
        else:
            timestamps = table.index
        long_frame = pd.DataFrame({
            'timestamp': timestamps.to_numpy(),
            'symbol': table[symbol_col].astype(str).to_numpy(),
            'value': pd.to_numeric(table[price_col], errors='coerce').to_numpy(),
        })

        if long_frame.duplicated(subset=['timestamp', 'symbol']).any():
            raise InvalidInputError("Duplicate (timestamp, symbol) rows in long-format data")

        symbols = list(pd.unique(long_frame['symbol']))
        wide = long_frame.pivot(index='timestamp', columns='symbol', values='value')
        wide = wide.sort_index().reindex(columns=symbols)
        wide.columns = [str(c) for c in wide.columns]
        wide.columns.name = None
        return wide.astype(float)

    numeric_cols = [
        c for c in table.columns
        if pd.api.types.is_numeric_dtype(table[c]) and not pd.api.types.is_bool_dtype(table[c])
    ]
    dropped = [c for c in table.columns if c not in numeric_cols]
    if dropped:
        logger.debug(f"Dropping non-numeric columns from correlation input: {dropped}")

    if not numeric_cols:
        raise InvalidInputError("No numeric columns available for correlation")

    wide = table[numeric_cols].astype(float)
    wide.columns = [str(c) for c in wide.columns]
    return wide


def correlation_matrix(table: pd.DataFrame, method: str = 'pearson') -> pd.DataFrame:
    """
    Build a symmetric correlation matrix with pairwise-complete observations.

    Diagonal entries are 1 when the column has non-zero variance, otherwise NaN.

    Args:
        table: Wide numeric table or long (symbol, timestamp, price) table
        method: pearson, spearman or kendall

    Returns:
        Square DataFrame indexed and columned by series name, input order kept

    Raises:
        UnsupportedOptionError: If method is unknown
        InvalidInputError: If no numeric columns exist
    """
    validate_method(method)

    wide = prepare_wide_frame(table)
    names = list(wide.columns)
    values = wide.to_numpy(dtype=float)
    n = len(names)

    matrix = np.full((n, n), np.nan)

    for i in range(n):
        column = values[:, i]
        defined = column[~np.isnan(column)]
        if len(defined) >= 2 and np.any(defined != defined[0]):
            matrix[i, i] = 1.0

        for j in range(i + 1, n):
            value = pairwise_correlation(column, values[:, j], method=method)
            matrix[i, j] = value
            matrix[j, i] = value

    return pd.DataFrame(matrix, index=names, columns=names)


def linearize_matrix(matrix: pd.DataFrame) -> List[CorrelationCell]:
    """Flatten a correlation matrix row-major into CorrelationCell triples."""
    cells = []
    for row in matrix.index:
        for col in matrix.columns:
            cells.append(CorrelationCell(row=str(row), col=str(col), value=float(matrix.at[row, col])))
    return cells


def build_correlation_cells(table: pd.DataFrame, method: str = 'pearson') -> List[CorrelationCell]:
    """Correlation matrix of a table as row-major heatmap cells."""
    return linearize_matrix(correlation_matrix(table, method=method))


def cells_to_frame(cells: List[CorrelationCell]) -> pd.DataFrame:
    """Tidy (row, col, value) frame from correlation cells, order preserved."""
    return pd.DataFrame(
        [(c.row, c.col, c.value) for c in cells],
        columns=['row', 'col', 'value']
    )
