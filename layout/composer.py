"""
Dashboard layout composition.
Pure functions deciding which panels appear and how they are proportioned.
"""

import logging
from typing import Mapping, Optional, Sequence, Union

from analysis.errors import InvalidInputError
from analysis.settings import DEFAULT_VOLUME_HEIGHT, MONTHLY_RETURNS_MIN_OBSERVATIONS
from layout.nodes import LayoutNode, Panel, PanelRole, StackAxis, leaf, stack

logger = logging.getLogger(__name__)

EQUITY_DRAWDOWN_WEIGHTS = (0.7, 0.3)
BACKTEST_REPORT_WEIGHTS = (0.3, 0.7)
PRICE_PANEL_WEIGHT = 0.5

DASHBOARD_PANELS = ('equity', 'drawdown', 'returns_distribution', 'monthly_returns')


def _as_node(item: Union[Panel, LayoutNode]) -> LayoutNode:
    if isinstance(item, LayoutNode):
        return item
    return leaf(item)


def compose_equity_curve(
    equity_panel: Panel,
    drawdown_panel: Optional[Panel] = None,
    title: Optional[str] = None
) -> LayoutNode:
    """
    Stack equity above drawdown with weights 0.7 / 0.3.

    Without a drawdown panel the equity leaf is returned alone.
    """
    if drawdown_panel is None:
        return leaf(equity_panel)

    return stack(
        [leaf(equity_panel), leaf(drawdown_panel)],
        EQUITY_DRAWDOWN_WEIGHTS,
        title=title
    )


def compose_strategy_dashboard(
    panels: Mapping[str, Panel],
    observations: int,
    min_observations: int = MONTHLY_RETURNS_MIN_OBSERVATIONS,
    title: Optional[str] = None
) -> LayoutNode:
    """
    Compose the strategy dashboard from labelled panels.

    Layouts:
    - observations > min_observations:
      (equity | returns_distribution) / (drawdown | monthly_returns)
    - otherwise:
      equity / (drawdown | returns_distribution), monthly returns dropped

    Args:
        panels: Mapping with keys equity, drawdown, returns_distribution
                and (for long histories) monthly_returns
        observations: Number of equity observations
        min_observations: Threshold enabling the monthly returns panel
        title: Dashboard title

    Raises:
        InvalidInputError: If a panel required by the chosen layout is missing
    """
    include_monthly = observations > min_observations
    required = list(DASHBOARD_PANELS[:3])
    if include_monthly:
        required.append('monthly_returns')

    missing = [name for name in required if panels.get(name) is None]
    if missing:
        raise InvalidInputError(f"Missing dashboard panels: {', '.join(missing)}")

    if include_monthly:
        top = stack(
            [leaf(panels['equity']), leaf(panels['returns_distribution'])],
            [0.5, 0.5], axis=StackAxis.HORIZONTAL
        )
        bottom = stack(
            [leaf(panels['drawdown']), leaf(panels['monthly_returns'])],
            [0.5, 0.5], axis=StackAxis.HORIZONTAL
        )
        logger.debug(f"Dashboard with {observations} observations: 2x2 grid")
        return stack([top, bottom], [0.5, 0.5], title=title)

    if panels.get('monthly_returns') is not None:
        logger.debug(
            f"Dropping monthly returns panel: {observations} observations "
            f"<= {min_observations}"
        )

    bottom = stack(
        [leaf(panels['drawdown']), leaf(panels['returns_distribution'])],
        [0.5, 0.5], axis=StackAxis.HORIZONTAL
    )
    return stack([leaf(panels['equity']), bottom], [0.5, 0.5], title=title)


def compose_multi_indicator(
    price_panel: Panel,
    indicator_panels: Sequence[Panel],
    title: Optional[str] = None
) -> LayoutNode:
    """
    Layer overlay indicators onto the price panel and stack the rest below.

    The price panel keeps weight 0.5; each standalone indicator gets
    0.5 / (number of standalone indicators). With no standalone indicators
    the (overlaid) price leaf is returned alone.
    """
    overlays = [p for p in indicator_panels if p.role == PanelRole.OVERLAY]
    standalone = [p for p in indicator_panels if p.role != PanelRole.OVERLAY]

    price = price_panel.with_overlays(overlays) if overlays else price_panel

    if not standalone:
        return leaf(price)

    share = PRICE_PANEL_WEIGHT / len(standalone)
    return stack(
        [leaf(price)] + [leaf(p) for p in standalone],
        [PRICE_PANEL_WEIGHT] + [share] * len(standalone),
        title=title
    )


def compose_backtest_report(
    price: Union[Panel, LayoutNode],
    dashboard: LayoutNode,
    title: Optional[str] = None
) -> LayoutNode:
    """Prepend a price section above a composed dashboard with weights 0.3 / 0.7."""
    return stack([_as_node(price), dashboard], BACKTEST_REPORT_WEIGHTS, title=title)


def compose_price_with_volume(
    price_panel: Panel,
    volume_panel: Optional[Panel] = None,
    volume_height: float = DEFAULT_VOLUME_HEIGHT
) -> LayoutNode:
    """
    Stack price above volume with weights (1 - volume_height, volume_height).

    Raises:
        InvalidInputError: If volume_height is not strictly between 0 and 1
    """
    if volume_panel is None:
        return leaf(price_panel)

    if not 0 < volume_height < 1:
        raise InvalidInputError("volume_height must be between 0 and 1")

    return stack(
        [leaf(price_panel), leaf(volume_panel)],
        [1 - volume_height, volume_height]
    )
