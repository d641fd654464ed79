"""
Dashboard compositions.
Entry points that resolve the input once, build the needed panels and hand
them to the layout composer.
"""

import logging
from typing import Callable, Dict, Optional, Sequence

from analysis.calculations.columns import require_columns
from analysis.errors import InvalidInputError, UnsupportedOptionError
from analysis.settings import AnalyticsPolicy
from layout.composer import (
    compose_backtest_report,
    compose_equity_curve,
    compose_multi_indicator,
    compose_price_with_volume,
    compose_strategy_dashboard,
)
from layout.nodes import LayoutNode, Panel
from reports.inputs import require_backtest, resolve_source, source_frame
from reports.panels import (
    candles_panel,
    drawdown_panel,
    equity_curve_panel,
    equity_observations,
    indicator_panel,
    monthly_returns_panel,
    performance_comparison_panel,
    returns_distribution_panel,
    volume_panel,
)

logger = logging.getLogger(__name__)


def equity_curve_with_drawdown(
    data,
    title: Optional[str] = "Equity Curve",
    benchmark=None,
    show_drawdown: bool = True,
    log_scale: bool = False,
    equity_col: Optional[str] = None
) -> LayoutNode:
    """
    Equity curve with an optional drawdown panel below (0.7 / 0.3).

    Args:
        data: DataFrame, RawTable or BacktestResult
        title: Equity panel title
        benchmark: Optional table overlaid on the equity panel
        show_drawdown: Include the drawdown panel
        log_scale: Render hint for the equity axis
        equity_col: Explicit equity column (auto-detected if None)

    Returns:
        Leaf (equity only) or vertical stack of equity and drawdown
    """
    source = resolve_source(data)

    equity = equity_curve_panel(
        source, title=title, benchmark=benchmark,
        log_scale=log_scale, equity_col=equity_col
    )

    drawdown = None
    if show_drawdown:
        drawdown = drawdown_panel(source, title=None, highlight_max=False, equity_col=equity_col)

    return compose_equity_curve(equity, drawdown)


def strategy_dashboard(
    results,
    title: Optional[str] = "Strategy Dashboard",
    policy: Optional[AnalyticsPolicy] = None
) -> LayoutNode:
    """
    Multi-panel dashboard for a backtest result.

    Monthly returns are computed only when the equity curve has more
    observations than the policy threshold (30 by default).

    Raises:
        InvalidInputError: If results is not a BacktestResult
    """
    policy = policy if policy is not None else AnalyticsPolicy()
    source = require_backtest(results)
    observations = equity_observations(source)

    panels: Dict[str, Panel] = {
        'equity': equity_curve_panel(source, title="Equity Curve"),
        'drawdown': drawdown_panel(source, title="Drawdown", highlight_max=True),
        'returns_distribution': returns_distribution_panel(
            source, title="Returns Distribution", show_normal=True, policy=policy
        ),
    }

    if observations > policy.monthly_returns_min_observations:
        panels['monthly_returns'] = monthly_returns_panel(source, title="Monthly Returns")

    layout = compose_strategy_dashboard(
        panels,
        observations=observations,
        min_observations=policy.monthly_returns_min_observations,
        title=title
    )
    logger.info(f"Composed strategy dashboard with {len(layout.leaf_names())} panels")
    return layout


def price_with_volume(
    data,
    title: Optional[str] = None,
    show_volume: bool = True,
    volume_height: Optional[float] = None,
    policy: Optional[AnalyticsPolicy] = None
) -> LayoutNode:
    """
    Candlestick panel with volume bars below when a volume column is present.
    """
    policy = policy if policy is not None else AnalyticsPolicy()
    source = resolve_source(data)
    frame = source_frame(source)

    price = candles_panel(source, title=title)

    volume = None
    if show_volume and 'volume' in frame.columns:
        volume = volume_panel(source)
    elif show_volume:
        logger.debug("No volume column; price panel composed alone")

    height = volume_height if volume_height is not None else policy.volume_height
    return compose_price_with_volume(price, volume, volume_height=height)


def backtest_report(
    results,
    data=None,
    title: Optional[str] = "Backtest Report",
    policy: Optional[AnalyticsPolicy] = None
) -> LayoutNode:
    """
    Strategy dashboard, with a price-action section above it (0.3 / 0.7)
    when price data is given.
    """
    dashboard = strategy_dashboard(results, title=title, policy=policy)

    if data is None:
        return dashboard

    price = price_with_volume(data, title="Price Action", show_volume=True, policy=policy)
    return compose_backtest_report(price, dashboard, title=title)


def multi_indicator(
    data,
    indicators: Sequence[str],
    indicator_types: Optional[Sequence[str]] = None,
    title: Optional[str] = "Price with Indicators"
) -> LayoutNode:
    """
    Price chart with overlay indicators drawn on it and panel indicators below.

    Args:
        data: OHLC table carrying the indicator columns
        indicators: Indicator column names
        indicator_types: 'overlay' or 'panel' per indicator (default: all 'panel')
        title: Price panel title

    Raises:
        InvalidInputError: If indicators and indicator_types differ in length
        MissingColumnError: If an indicator column is absent
        UnsupportedOptionError: If an indicator type is unknown
    """
    if indicator_types is None:
        indicator_types = ['panel'] * len(indicators)

    if len(indicators) != len(indicator_types):
        raise InvalidInputError("Length of indicators and indicator_types must match")

    source = resolve_source(data)
    frame = source_frame(source)

    missing = [c for c in indicators if c not in frame.columns]
    if missing:
        require_columns(frame, missing)

    price = candles_panel(source, title=title)
    panels = [
        indicator_panel(source, column, indicator_type)
        for column, indicator_type in zip(indicators, indicator_types)
    ]

    return compose_multi_indicator(price, panels)


def performance_comparison(
    data,
    group_col: Optional[str] = None,
    value_col: Optional[str] = None,
    normalize: bool = True,
    title: Optional[str] = "Performance Comparison"
) -> Panel:
    """Comparison of several strategies or assets on one panel."""
    return performance_comparison_panel(
        data, group_col=group_col, value_col=value_col,
        normalize=normalize, title=title
    )


LAYOUT_BUILDERS: Dict[str, Callable[..., LayoutNode]] = {
    'equity_curve': equity_curve_with_drawdown,
    'strategy_dashboard': strategy_dashboard,
    'backtest_report': backtest_report,
    'multi_indicator': multi_indicator,
    'price_volume': price_with_volume,
}


def build_layout(layout_type: str, data, **options) -> LayoutNode:
    """
    Build a layout by type name.

    Raises:
        UnsupportedOptionError: If layout_type is unknown
    """
    builder = LAYOUT_BUILDERS.get(layout_type)
    if builder is None:
        raise UnsupportedOptionError(
            f"Unsupported layout type: {layout_type}. "
            f"Expected one of: {', '.join(sorted(LAYOUT_BUILDERS))}"
        )
    return builder(data, **options)
