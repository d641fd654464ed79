"""
Analysis Engine Module

Derived analytics over price, return and equity series:
- Drawdown from running peak
- Rolling mean, volatility, Sharpe and correlation
- Correlation matrices for heatmaps
- Calendar (monthly) returns
"""

__version__ = "0.1.0"
