"""
Single-panel builders.
Resolve input columns, run the analytics transforms and package results as Panels
for the rendering layer.
"""

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from analysis.calculations.calendar_returns import (
    buckets_to_frame,
    monthly_returns,
    monthly_returns_grid,
)
from analysis.calculations.columns import (
    SemanticRole,
    require_column,
    require_columns,
    resolve_column,
)
from analysis.calculations.correlation import (
    cells_to_frame,
    correlation_matrix,
    linearize_matrix,
)
from analysis.calculations.drawdown import drawdown_series, max_drawdown
from analysis.calculations.returns import (
    log_returns,
    normalize_to_base,
    returns_distribution,
    simple_returns,
)
from analysis.calculations.rolling import (
    rolling_correlation,
    rolling_mean,
    rolling_sharpe,
    rolling_std,
    rolling_volatility,
)
from analysis.errors import InvalidInputError, UnsupportedOptionError
from analysis.settings import AnalyticsPolicy
from analysis.timeseries import column_series, parse_timestamps, validate_timestamps
from layout.nodes import Panel, PanelKind, PanelRole
from reports.formatters import (
    format_correlation,
    format_distribution_subtitle,
    format_max_drawdown_label,
    format_percentage,
    format_window_subtitle,
)
from reports.inputs import BacktestResult, resolve_source, source_frame

logger = logging.getLogger(__name__)

OHLC_COLUMNS = ('open', 'high', 'low', 'close')
ALLOCATION_CHART_TYPES = ('pie', 'bar')
WEIGHTS_CHART_TYPES = ('area', 'line')


def _policy(policy: Optional[AnalyticsPolicy]) -> AnalyticsPolicy:
    return policy if policy is not None else AnalyticsPolicy()


def _equity_series(data, equity_col: Optional[str] = None) -> pd.Series:
    frame = source_frame(resolve_source(data))
    column = require_column(frame, SemanticRole.EQUITY, equity_col)
    return column_series(frame, column)


def _returns_series(data, returns_col: Optional[str] = None) -> pd.Series:
    frame = source_frame(resolve_source(data))
    column = require_column(frame, SemanticRole.RETURNS, returns_col)
    return column_series(frame, column)


def _timestamps_for_rows(frame: pd.DataFrame) -> pd.Series:
    # Long tables repeat timestamps across groups, so no ordering check here
    if isinstance(frame.index, pd.DatetimeIndex):
        return pd.Series(frame.index, index=frame.index)
    column = require_column(frame, SemanticRole.TIMESTAMP)
    return pd.Series(parse_timestamps(frame[column], column), index=frame.index)


def _parse_role(indicator_type: str) -> PanelRole:
    try:
        return PanelRole(indicator_type)
    except ValueError:
        raise UnsupportedOptionError(
            f"Unsupported indicator type: {indicator_type}. Expected 'overlay' or 'panel'"
        ) from None


def equity_curve_panel(
    data,
    title: Optional[str] = "Equity Curve",
    benchmark=None,
    log_scale: bool = False,
    equity_col: Optional[str] = None
) -> Panel:
    """
    Build the equity curve panel with per-period returns and direction.

    Args:
        data: DataFrame, RawTable or BacktestResult with an equity column
        title: Panel title
        benchmark: Optional table with an equity column, layered as overlay
        log_scale: Render hint for a logarithmic value axis
        equity_col: Explicit equity column (auto-detected if None)

    Raises:
        MissingColumnError: If no equity column is found in data or benchmark
    """
    equity = _equity_series(data, equity_col)
    returns = simple_returns(equity)

    direction = np.where(
        returns.isna(), None, np.where(returns >= 0, 'positive', 'negative')
    )
    frame = pd.DataFrame({
        'datetime': equity.index,
        'equity': equity.to_numpy(),
        'returns': returns.to_numpy(),
        'direction': direction,
    })

    overlays = []
    if benchmark is not None:
        bench = _equity_series(benchmark)
        overlays.append(Panel(
            name='benchmark',
            kind=PanelKind.EQUITY,
            data=pd.DataFrame({'datetime': bench.index, 'benchmark': bench.to_numpy()}),
            role=PanelRole.OVERLAY,
        ))

    return Panel(
        name='equity',
        kind=PanelKind.EQUITY,
        data=frame,
        title=title,
        annotations={'log_scale': log_scale, 'y_label': 'Equity'},
        overlays=tuple(overlays),
    )


def drawdown_panel(
    data,
    title: Optional[str] = "Drawdown Analysis",
    highlight_max: bool = True,
    equity_col: Optional[str] = None
) -> Panel:
    """
    Build the underwater (drawdown from peak) panel.

    With highlight_max the deepest point is annotated; ties go to the first one.
    """
    equity = _equity_series(data, equity_col)
    drawdowns = drawdown_series(equity)

    annotations = {'y_label': 'Drawdown from Peak', 'reference_lines': [0.0]}

    if highlight_max:
        stats = max_drawdown(equity)
        annotations['max_drawdown'] = {
            'datetime': stats['trough_date'],
            'value': stats['max_drawdown_pct'],
            'label': format_max_drawdown_label(stats['max_drawdown_pct']),
        }

    return Panel(
        name='drawdown',
        kind=PanelKind.DRAWDOWN,
        data=pd.DataFrame({'datetime': drawdowns.index, 'drawdown': drawdowns.to_numpy()}),
        title=title,
        annotations=annotations,
    )


def returns_distribution_panel(
    data,
    title: Optional[str] = "Returns Distribution",
    returns_col: Optional[str] = None,
    bins: Optional[int] = None,
    show_normal: bool = True,
    policy: Optional[AnalyticsPolicy] = None
) -> Panel:
    """
    Build the returns histogram panel.

    Backtest results use log returns of their equity curve; raw tables use
    their returns column.
    """
    policy = _policy(policy)
    source = resolve_source(data)

    if isinstance(source, BacktestResult):
        returns = log_returns(_equity_series(source))
    else:
        returns = _returns_series(source, returns_col)

    dist = returns_distribution(
        returns,
        bins=bins if bins is not None else policy.histogram_bins,
        show_normal=show_normal
    )

    return Panel(
        name='returns_distribution',
        kind=PanelKind.RETURNS_DISTRIBUTION,
        data=dist['histogram'],
        title=title,
        annotations={
            'subtitle': format_distribution_subtitle(dist['mean'], dist['std']),
            'mean': dist['mean'],
            'std': dist['std'],
            'count': dist['count'],
            'mean_line': dist['mean'],
            'kde_curve': dist['kde'],
            'normal_curve': dist['normal'],
        },
    )


def monthly_returns_panel(
    data,
    title: Optional[str] = "Monthly Returns Heatmap",
    equity_col: Optional[str] = None
) -> Panel:
    """Build the month x year heatmap panel of calendar returns."""
    equity = _equity_series(data, equity_col)
    buckets = monthly_returns(equity)

    frame = buckets_to_frame(buckets)
    frame['label'] = [format_percentage(r, decimal_places=1) for r in frame['monthly_return']]

    return Panel(
        name='monthly_returns',
        kind=PanelKind.MONTHLY_RETURNS,
        data=frame,
        title=title,
        annotations={'grid': monthly_returns_grid(buckets), 'x_label': 'Month', 'y_label': 'Year'},
    )


def correlation_heatmap_panel(
    data,
    method: Optional[str] = None,
    title: Optional[str] = "Correlation Matrix",
    show_values: bool = True,
    policy: Optional[AnalyticsPolicy] = None
) -> Panel:
    """Build the correlation heatmap panel from a wide or long (symbol) table."""
    method = method if method is not None else _policy(policy).correlation_method
    frame = source_frame(resolve_source(data))

    matrix = correlation_matrix(frame, method=method)
    cells = cells_to_frame(linearize_matrix(matrix))
    if show_values:
        cells['label'] = [format_correlation(v) for v in cells['value']]

    return Panel(
        name='correlation',
        kind=PanelKind.CORRELATION,
        data=cells,
        title=title,
        annotations={'method': method, 'matrix': matrix, 'limits': (-1.0, 1.0)},
    )


def rolling_sharpe_panel(
    data,
    window: Optional[int] = None,
    returns_col: Optional[str] = None,
    title: Optional[str] = "Rolling Sharpe Ratio",
    policy: Optional[AnalyticsPolicy] = None
) -> Panel:
    """Build the rolling annualized Sharpe ratio panel from a returns column."""
    policy = _policy(policy)
    window = window if window is not None else policy.rolling_window
    returns = _returns_series(data, returns_col)

    frame = pd.DataFrame({
        'datetime': returns.index,
        'returns': returns.to_numpy(),
        'rolling_mean': rolling_mean(returns, window).to_numpy(),
        'rolling_sd': rolling_std(returns, window).to_numpy(),
        'rolling_sharpe': rolling_sharpe(
            returns, window, annualization_factor=policy.annualization_factor
        ).to_numpy(),
    })

    return Panel(
        name='rolling_sharpe',
        kind=PanelKind.ROLLING,
        data=frame,
        title=title,
        annotations={
            'subtitle': format_window_subtitle(int(window)),
            'metric': 'rolling_sharpe',
            'y_label': 'Sharpe Ratio',
            'reference_lines': [0.0, 1.0],
        },
    )


def rolling_volatility_panel(
    data,
    window: Optional[int] = None,
    returns_col: Optional[str] = None,
    title: Optional[str] = "Rolling Volatility",
    policy: Optional[AnalyticsPolicy] = None
) -> Panel:
    """Build the rolling annualized volatility panel from a returns column."""
    policy = _policy(policy)
    window = window if window is not None else policy.rolling_window
    returns = _returns_series(data, returns_col)
    vol = rolling_volatility(returns, window, annualize=policy.annualization_factor)

    return Panel(
        name='rolling_volatility',
        kind=PanelKind.ROLLING,
        data=pd.DataFrame({'datetime': vol.index, 'rolling_volatility': vol.to_numpy()}),
        title=title,
        annotations={
            'subtitle': format_window_subtitle(int(window)),
            'metric': 'rolling_volatility',
            'y_label': 'Annualized Volatility',
        },
    )


def rolling_correlation_panel(
    data,
    x: str,
    y: str,
    window: Optional[int] = None,
    title: Optional[str] = None,
    policy: Optional[AnalyticsPolicy] = None
) -> Panel:
    """
    Build the rolling correlation panel between two named columns.

    Raises:
        MissingColumnError: If x or y is absent
    """
    window = window if window is not None else _policy(policy).rolling_window
    frame = source_frame(resolve_source(data))
    require_columns(frame, [x, y])

    series_x = column_series(frame, x)
    series_y = column_series(frame, y)
    rolling = rolling_correlation(series_x, series_y, window)

    if title is None:
        title = f"Rolling Correlation: {x} vs {y}"

    return Panel(
        name='rolling_correlation',
        kind=PanelKind.ROLLING,
        data=pd.DataFrame({'datetime': rolling.index, 'rolling_cor': rolling.to_numpy()}),
        title=title,
        annotations={
            'subtitle': format_window_subtitle(int(window)),
            'metric': 'rolling_cor',
            'y_label': 'Correlation',
            'reference_lines': [0.0, -0.5, 0.5],
            'limits': (-1.0, 1.0),
        },
    )


def rolling_metric_panel(
    data,
    metric: str,
    title: Optional[str] = None,
    smooth: bool = False
) -> Panel:
    """Wrap an already computed rolling metric column as a panel."""
    metric_series = column_series(source_frame(resolve_source(data)), metric)

    return Panel(
        name=metric,
        kind=PanelKind.ROLLING,
        data=pd.DataFrame({'datetime': metric_series.index, metric: metric_series.to_numpy()}),
        title=title if title is not None else f"Rolling {metric}",
        annotations={'metric': metric, 'smooth': smooth, 'reference_lines': [0.0]},
    )


def performance_comparison_panel(
    data,
    group_col: Optional[str] = None,
    value_col: Optional[str] = None,
    normalize: bool = True,
    title: Optional[str] = "Performance Comparison"
) -> Panel:
    """
    Build a multi-series comparison panel from a long (group, timestamp, value) table.

    With normalize every group is rebased to 100 at its first defined value.

    Raises:
        MissingColumnError: If group or value columns cannot be detected
    """
    frame = source_frame(resolve_source(data))
    group_col = require_column(frame, SemanticRole.GROUP, group_col)
    value_col = require_column(frame, SemanticRole.EQUITY, value_col)
    timestamps = _timestamps_for_rows(frame)

    output_col = 'normalized_value' if normalize else value_col
    pieces: List[pd.DataFrame] = []

    for group in pd.unique(frame[group_col]):
        mask = (frame[group_col] == group).to_numpy()
        group_times = pd.DatetimeIndex(timestamps.to_numpy()[mask])
        validate_timestamps(group_times)

        values = pd.to_numeric(frame.loc[mask, value_col], errors='coerce').to_numpy()
        if normalize:
            values = normalize_to_base(values).to_numpy()

        pieces.append(pd.DataFrame({
            'datetime': group_times,
            'group': group,
            output_col: values,
        }))

    result = pd.concat(pieces, ignore_index=True)
    logger.debug(f"Comparison panel with {len(pieces)} groups from '{group_col}'")

    return Panel(
        name='performance_comparison',
        kind=PanelKind.COMPARISON,
        data=result,
        title=title,
        annotations={
            'group_col': group_col,
            'value_col': output_col,
            'y_label': 'Normalized Value (Base = 100)' if normalize else 'Value',
        },
    )


def risk_return_panel(
    data,
    return_col: str = 'return',
    risk_col: Optional[str] = None,
    label_col: Optional[str] = None,
    title: Optional[str] = "Risk-Return Profile"
) -> Panel:
    """
    Build the risk vs return scatter panel, one point per strategy row.

    Raises:
        MissingColumnError: If the return or risk column is absent
    """
    frame = source_frame(resolve_source(data))
    require_columns(frame, [return_col])
    risk_col = require_column(frame, SemanticRole.RISK, risk_col)

    if label_col is None:
        label_col = resolve_column(frame, SemanticRole.LABEL)
    elif label_col not in frame.columns:
        logger.warning(f"Label column '{label_col}' not found; points will be unlabelled")
        label_col = None

    points = pd.DataFrame({
        'risk': pd.to_numeric(frame[risk_col], errors='coerce').to_numpy(),
        'return': pd.to_numeric(frame[return_col], errors='coerce').to_numpy(),
    })
    if label_col is not None:
        points['label'] = frame[label_col].astype(str).to_numpy()

    return Panel(
        name='risk_return',
        kind=PanelKind.RISK_RETURN,
        data=points,
        title=title,
        annotations={'x_label': risk_col, 'y_label': return_col, 'reference_lines': [0.0]},
    )


def candles_panel(data, title: Optional[str] = None, subtitle: Optional[str] = None) -> Panel:
    """
    Build the OHLC price panel with up/down candle direction.

    Raises:
        MissingColumnError: If any of open, high, low, close or the timestamp axis is absent
    """
    frame = source_frame(resolve_source(data))
    require_columns(frame, OHLC_COLUMNS)
    timestamps = _timestamps_for_rows(frame)

    bars = pd.DataFrame({
        'datetime': timestamps.to_numpy(),
        **{c: pd.to_numeric(frame[c], errors='coerce').to_numpy() for c in OHLC_COLUMNS},
    })
    bars['direction'] = np.where(bars['close'] >= bars['open'], 'up', 'down')

    symbols: List[str] = []
    if 'symbol' in frame.columns:
        bars['symbol'] = frame['symbol'].to_numpy()
        symbols = [str(s) for s in pd.unique(frame['symbol'])]

    if title is None:
        title = f"Candlestick Chart: {', '.join(symbols)}" if symbols else "Candlestick Chart"

    annotations = {'subtitle': subtitle, 'y_label': 'Price'}
    if len(symbols) > 1:
        annotations['facet_by'] = 'symbol'

    return Panel(name='price', kind=PanelKind.PRICE, data=bars, title=title, annotations=annotations)


def volume_panel(data) -> Panel:
    """
    Build the volume bar panel coloured by candle direction.

    Raises:
        MissingColumnError: If volume, open, close or the timestamp axis is absent
    """
    frame = source_frame(resolve_source(data))
    require_columns(frame, ['open', 'close', 'volume'])
    timestamps = _timestamps_for_rows(frame)

    bars = pd.DataFrame({
        'datetime': timestamps.to_numpy(),
        'volume': pd.to_numeric(frame['volume'], errors='coerce').to_numpy(),
        'direction': np.where(frame['close'].to_numpy() >= frame['open'].to_numpy(), 'up', 'down'),
    })

    annotations = {'y_label': 'Volume'}
    if 'symbol' in frame.columns:
        bars['symbol'] = frame['symbol'].to_numpy()
        if len(pd.unique(frame['symbol'])) > 1:
            annotations['facet_by'] = 'symbol'

    return Panel(name='volume', kind=PanelKind.VOLUME, data=bars, annotations=annotations)


def indicator_panel(data, column: str, indicator_type: str = 'panel') -> Panel:
    """
    Build an indicator panel tagged as 'overlay' (drawn on price) or 'panel'.

    Raises:
        UnsupportedOptionError: If indicator_type is neither overlay nor panel
        MissingColumnError: If the indicator column is absent
    """
    role = _parse_role(indicator_type)
    series = column_series(source_frame(resolve_source(data)), column)

    annotations = {'y_label': column}
    if role == PanelRole.STANDALONE:
        annotations['reference_lines'] = [0.0]

    return Panel(
        name=column,
        kind=PanelKind.INDICATOR,
        data=pd.DataFrame({'datetime': series.index, column: series.to_numpy()}),
        role=role,
        annotations=annotations,
    )


def allocation_panel(
    data,
    chart_type: str = 'pie',
    value_col: str = 'weight',
    label_col: str = 'asset',
    title: Optional[str] = "Portfolio Allocation"
) -> Panel:
    """
    Build the portfolio allocation panel (pie or bar).

    Bar charts are ordered by ascending value; pie slices keep input order.

    Raises:
        UnsupportedOptionError: If chart_type is not pie or bar
        MissingColumnError: If value or label column is absent
    """
    if chart_type not in ALLOCATION_CHART_TYPES:
        raise UnsupportedOptionError(f"Unsupported chart type: {chart_type}")

    frame = source_frame(resolve_source(data))
    require_columns(frame, [value_col, label_col])

    values = pd.to_numeric(frame[value_col], errors='coerce')
    if values.isna().any() or (values < 0).any():
        raise InvalidInputError("Allocation values must be defined and non-negative")

    total = values.sum()
    if total == 0:
        raise InvalidInputError("Allocation values sum to zero")

    slices = pd.DataFrame({
        'label': frame[label_col].astype(str).to_numpy(),
        'value': values.to_numpy(),
        'share': (values / total).to_numpy(),
    })
    if chart_type == 'bar':
        slices = slices.sort_values('value', kind='mergesort').reset_index(drop=True)

    return Panel(
        name='allocation',
        kind=PanelKind.ALLOCATION,
        data=slices,
        title=title,
        annotations={'chart_type': chart_type},
    )


def weights_panel(
    data,
    chart_type: str = 'area',
    title: Optional[str] = "Portfolio Weights Over Time"
) -> Panel:
    """
    Build the weight evolution panel from a long (timestamp, asset, weight) table.

    Raises:
        UnsupportedOptionError: If chart_type is not area or line
        MissingColumnError: If asset, weight or timestamp columns are absent
    """
    if chart_type not in WEIGHTS_CHART_TYPES:
        raise UnsupportedOptionError(f"Unsupported chart type: {chart_type}")

    frame = source_frame(resolve_source(data))
    require_columns(frame, ['asset', 'weight'])
    timestamps = _timestamps_for_rows(frame)

    weights = pd.DataFrame({
        'datetime': timestamps.to_numpy(),
        'asset': frame['asset'].astype(str).to_numpy(),
        'weight': pd.to_numeric(frame['weight'], errors='coerce').to_numpy(),
    })
    weights = weights.sort_values(['datetime'], kind='mergesort').reset_index(drop=True)

    return Panel(
        name='weights',
        kind=PanelKind.WEIGHTS,
        data=weights,
        title=title,
        annotations={'chart_type': chart_type, 'stacked': chart_type == 'area'},
    )


def equity_observations(data) -> int:
    """Number of rows in the equity table of a source."""
    return len(source_frame(resolve_source(data)))

