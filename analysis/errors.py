"""
Error kinds raised by the analytics core.
Every public operation either returns a complete result or raises one of these.
"""


class AnalyticsError(Exception):
    """Base class for analytics and layout failures."""
    pass


class MissingColumnError(AnalyticsError):
    """Raised when a required column or semantic role cannot be resolved."""
    pass


class InvalidInputError(AnalyticsError, ValueError):
    """Raised when input data cannot be transformed (empty, non-positive, misaligned)."""
    pass


class InvalidWindowError(AnalyticsError, ValueError):
    """Raised when a rolling window size is not usable for the series."""
    pass


class UnsupportedOptionError(AnalyticsError, ValueError):
    """Raised when an option string (method, layout type, chart type) is unknown."""
    pass
