"""Error kinds raised by the anomaly core.

All of them describe configuration or programming mistakes. Data problems
(missing samples, saturated values, zero variance) never raise; they become
no-data instead.
"""


class VianomalyError(Exception):
    """Base class for vianomaly errors."""


class InvalidExtent(VianomalyError, ValueError):
    """Extent edges are out of order or do not fit the target raster."""


class InvalidAggregationFactor(VianomalyError, ValueError):
    """Block aggregation factor is not a positive integer."""


class EmptyStack(VianomalyError, ValueError):
    """A raster stack was built or averaged without any layer."""


class UnknownMethod(VianomalyError, ValueError):
    """Anomaly method token is neither ``simple`` nor ``zscore``."""


class InvalidThresholds(VianomalyError, ValueError):
    """Classification thresholds are unordered or mix threshold modes."""
