"""
Tagged input variants accepted by the panel and dashboard builders.
Inputs are resolved once at the entry point into RawTable or BacktestResult.
"""

from dataclasses import dataclass
from typing import Union

import pandas as pd

from analysis.errors import InvalidInputError


@dataclass(frozen=True, eq=False)
class RawTable:
    """Any table of prices, returns, equity or metrics."""
    frame: pd.DataFrame


@dataclass(frozen=True, eq=False)
class BacktestResult:
    """Output of a backtest run, reduced to its equity curve."""
    equity: pd.DataFrame


DataSource = Union[RawTable, BacktestResult]


def resolve_source(data) -> DataSource:
    """
    Resolve caller input into a tagged variant.

    DataFrames are treated as raw tables; tagged variants pass through.

    Raises:
        InvalidInputError: If the input is neither
    """
    if isinstance(data, (RawTable, BacktestResult)):
        return data

    if isinstance(data, pd.DataFrame):
        return RawTable(frame=data)

    raise InvalidInputError(
        f"Unsupported input type: {type(data).__name__}. "
        f"Expected DataFrame, RawTable or BacktestResult"
    )


def source_frame(source: DataSource) -> pd.DataFrame:
    """Table holding the equity (or raw) columns of a resolved source."""
    if isinstance(source, BacktestResult):
        return source.equity
    return source.frame


def require_backtest(data) -> BacktestResult:
    """
    Raises:
        InvalidInputError: If the input is not a BacktestResult
    """
    source = resolve_source(data)
    if not isinstance(source, BacktestResult):
        raise InvalidInputError("Input must be a BacktestResult")
    return source
