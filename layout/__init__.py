"""
Layout Composition Module

Builds renderer-independent panel trees:
- Panel and LayoutNode types
- Equity/drawdown, strategy dashboard, multi-indicator and report layouts
"""

__version__ = "0.1.0"
