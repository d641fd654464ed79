"""
Panel and layout tree types.
A LayoutNode is either a leaf holding one Panel or a weighted stack of child nodes.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from analysis.errors import InvalidInputError


class PanelRole(str, Enum):
    """How a panel participates in a layout."""
    OVERLAY = 'overlay'
    STANDALONE = 'panel'


class PanelKind(str, Enum):
    """Analytic content carried by a panel."""
    EQUITY = 'equity'
    DRAWDOWN = 'drawdown'
    RETURNS_DISTRIBUTION = 'returns_distribution'
    MONTHLY_RETURNS = 'monthly_returns'
    PRICE = 'price'
    VOLUME = 'volume'
    INDICATOR = 'indicator'
    ROLLING = 'rolling'
    CORRELATION = 'correlation'
    COMPARISON = 'comparison'
    RISK_RETURN = 'risk_return'
    ALLOCATION = 'allocation'
    WEIGHTS = 'weights'


class StackAxis(str, Enum):
    """Direction children of a composite node are stacked in."""
    VERTICAL = 'vertical'
    HORIZONTAL = 'horizontal'


@dataclass(frozen=True, eq=False)
class Panel:
    """One analytic unit prior to rendering."""
    name: str
    kind: PanelKind
    data: Any
    title: Optional[str] = None
    role: PanelRole = PanelRole.STANDALONE
    annotations: Dict[str, Any] = field(default_factory=dict)
    overlays: Tuple['Panel', ...] = ()

    def with_overlays(self, overlays: Sequence['Panel']) -> 'Panel':
        """Return a copy with overlays appended after existing ones."""
        return replace(self, overlays=tuple(self.overlays) + tuple(overlays))


@dataclass(frozen=True, eq=False)
class LayoutNode:
    """Layout tree node; set either panel (leaf) or children (composite)."""
    panel: Optional[Panel] = None
    children: Tuple['LayoutNode', ...] = ()
    weights: Tuple[float, ...] = ()
    axis: StackAxis = StackAxis.VERTICAL
    title: Optional[str] = None

    def __post_init__(self):
        if self.panel is not None and self.children:
            raise InvalidInputError("Layout node cannot hold both a panel and children")

        if self.panel is None:
            if not self.children:
                raise InvalidInputError("Composite layout node needs at least one child")
            if len(self.weights) != len(self.children):
                raise InvalidInputError(
                    f"Expected {len(self.children)} weights, got {len(self.weights)}"
                )
            if any(w <= 0 for w in self.weights):
                raise InvalidInputError("Layout weights must be positive")

    @property
    def is_leaf(self) -> bool:
        return self.panel is not None

    def leaves(self) -> Iterator[Panel]:
        """Yield leaf panels depth-first in layout order."""
        if self.panel is not None:
            yield self.panel
            return
        for child in self.children:
            yield from child.leaves()

    def leaf_names(self) -> List[str]:
        return [p.name for p in self.leaves()]

    def find(self, name: str) -> Optional[Panel]:
        """First leaf panel with the given name, or None."""
        for panel in self.leaves():
            if panel.name == name:
                return panel
        return None

    def describe(self) -> Dict[str, Any]:
        """Plain-dict view of the tree geometry (no panel data)."""
        if self.panel is not None:
            return {
                'panel': self.panel.name,
                'kind': self.panel.kind.value,
                'overlays': [o.name for o in self.panel.overlays],
            }
        return {
            'axis': self.axis.value,
            'weights': list(self.weights),
            'title': self.title,
            'children': [c.describe() for c in self.children],
        }


def leaf(panel: Panel) -> LayoutNode:
    return LayoutNode(panel=panel)


def stack(
    children: Sequence[LayoutNode],
    weights: Sequence[float],
    axis: StackAxis = StackAxis.VERTICAL,
    title: Optional[str] = None
) -> LayoutNode:
    return LayoutNode(
        children=tuple(children),
        weights=tuple(float(w) for w in weights),
        axis=axis,
        title=title
    )
