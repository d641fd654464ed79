"""
Display formatters for panel labels and subtitles.
Deterministic string formatting for percentages, correlations and windows.
"""

import math
from typing import Optional


class FormatterError(Exception):
    """Raised when formatter input validation fails."""
    pass


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_percentage(value: Optional[float], decimal_places: int = 1) -> str:
    """
    Format decimal as percentage with specified precision.

    Args:
        value: Decimal value (0.0845 = 8.45%)
        decimal_places: Number of decimal places (default: 1)

    Returns:
        Formatted percentage string (e.g., "8.5%")
    """
    if _is_missing(value):
        return "Not available"

    if not isinstance(value, (int, float)):
        raise FormatterError(f"Percentage value must be numeric, got {type(value)}")

    if decimal_places < 0:
        raise FormatterError("decimal_places must be non-negative")

    return f"{value * 100:.{decimal_places}f}%"


def format_correlation(value: Optional[float]) -> str:
    """Format correlation coefficient with two decimals (e.g., "0.87")."""
    if _is_missing(value):
        return "NA"

    if not isinstance(value, (int, float)):
        raise FormatterError(f"Correlation value must be numeric, got {type(value)}")

    return f"{value:.2f}"


def format_window_subtitle(window: int) -> str:
    """
    Format rolling window subtitle.

    Returns:
        Subtitle string (e.g., "Window: 60 periods")
    """
    if not isinstance(window, int) or window <= 0:
        raise FormatterError(f"Window must be positive integer, got {window}")

    return f"Window: {window} periods"


def format_max_drawdown_label(max_drawdown_pct: float) -> str:
    """Label for the highlighted deepest drawdown point (e.g., "Max DD: -25.0%")."""
    return f"Max DD: {format_percentage(max_drawdown_pct, decimal_places=1)}"


def format_distribution_subtitle(mean: float, std: float) -> str:
    """
    Subtitle for a returns histogram (e.g., "Mean: 0.05%, Std Dev: 1.20%").

    A missing statistic is shown as "NA".
    """
    mean_text = "NA" if _is_missing(mean) else f"{mean * 100:.2f}%"
    std_text = "NA" if _is_missing(std) else f"{std * 100:.2f}%"
    return f"Mean: {mean_text}, Std Dev: {std_text}"
