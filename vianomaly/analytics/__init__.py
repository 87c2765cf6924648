"""Pure raster computations: sanitizing, aggregation, pooling, anomalies."""

from .sanitize import sanitize
from .aggregate import aggregate
from .temporal import average_mean, average_pooled_sd
from .anomaly import AnomalyMethod, compute
from .classify import ThresholdMode, ThresholdSpec, classify, CLASS_LABELS
from .results import ClassSummary

__all__ = [
    "sanitize",
    "aggregate",
    "average_mean",
    "average_pooled_sd",
    "AnomalyMethod",
    "compute",
    "ThresholdMode",
    "ThresholdSpec",
    "classify",
    "CLASS_LABELS",
    "ClassSummary",
]
