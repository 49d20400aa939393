"""
Exceptions raised by the connected flood engine.

All validation errors derive from ``ValueError`` so callers that already guard
raster processing with ``except ValueError`` keep working.
"""


class FloodError(Exception):
    """Base class for flood computation errors."""

    pass


class InvalidGridError(FloodError, ValueError):
    """Grid is not a rectangular 2-D array with at least one row and column."""

    pass


class EmptyGridError(FloodError, ValueError):
    """Grid holds no valid elevation values (everything is NoData/wall)."""

    pass


class NonFiniteValueError(FloodError, ValueError):
    """Grid or threshold contains NaN or infinite values."""

    pass


class FloodCancelledError(FloodError):
    """Reconstruction was cancelled through its cancel event."""

    pass
