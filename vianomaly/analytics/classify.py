"""
Five-class ordinal classification of anomaly layers.

Classes, with ``t1 < t2`` and ties going to the upper class::

    1: a < -t2          (a <= -t2 for absolute thresholds)
    2: -t2 <= a < -t1   (-t2 < a < -t1 for absolute thresholds)
    3: -t1 <= a < t1
    4: t1 <= a < t2
    5: a >= t2

Thresholds are either absolute anomaly values or multipliers of the
reference standard deviation (see :class:`ThresholdSpec`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from vianomaly.core.exceptions import InvalidThresholds
from vianomaly.core.logger import Logger
from vianomaly.raster.layer import CLASS_NODATA, ClassifiedLayer, RasterLayer
from .anomaly import AnomalyMethod

logger = Logger.get_logger(__name__)

# anomaly and bound values are compared at this precision
BOUNDARY_DECIMALS = 7

CLASS_LABELS = {
    1: "Strongly below normal",
    2: "Below normal",
    3: "Normal",
    4: "Above normal",
    5: "Strongly above normal",
}

_SD_PATTERN = re.compile(r"^\s*([+-]?\d+(?:\.\d*)?|[+-]?\.\d+)\s*\*\s*sd\s*$", re.I)


class ThresholdMode(str, Enum):
    """How threshold values are interpreted."""

    ABSOLUTE = "absolute"
    SD_MULTIPLIER = "sd"


@dataclass(frozen=True)
class ThresholdSpec:
    """Pair of positive thresholds ``t1 < t2`` and their mode."""

    mode: ThresholdMode
    t1: float
    t2: float

    def __post_init__(self) -> None:
        if not isinstance(self.mode, ThresholdMode):
            raise InvalidThresholds(f"Unknown threshold mode {self.mode!r}")
        if not (np.isfinite(self.t1) and np.isfinite(self.t2)):
            raise InvalidThresholds("thresholds must be finite numbers")
        if self.t1 >= self.t2:
            raise InvalidThresholds(
                f"t1 ({self.t1}) must be smaller than t2 ({self.t2})"
            )
        if self.t1 <= 0:
            raise InvalidThresholds(f"thresholds must be positive, got t1={self.t1}")

    @classmethod
    def absolute(cls, t1: float, t2: float) -> "ThresholdSpec":
        return cls(ThresholdMode.ABSOLUTE, float(t1), float(t2))

    @classmethod
    def sd_multiplier(cls, t1: float, t2: float) -> "ThresholdSpec":
        return cls(ThresholdMode.SD_MULTIPLIER, float(t1), float(t2))

    @classmethod
    def parse(
        cls, anom1: Union[str, float, int], anom2: Union[str, float, int]
    ) -> "ThresholdSpec":
        """Build a spec from two user values such as ``0.05`` or ``"1*SD"``.

        Both values must use the same mode.
        """
        v1, sd1 = _parse_value(anom1)
        v2, sd2 = _parse_value(anom2)
        if sd1 != sd2:
            raise InvalidThresholds(
                f"'{anom1}' and '{anom2}' mix absolute and SD-multiplier thresholds"
            )
        return cls.sd_multiplier(v1, v2) if sd1 else cls.absolute(v1, v2)


def _parse_value(value: Union[str, float, int]) -> Tuple[float, bool]:
    if isinstance(value, bool):
        raise InvalidThresholds(f"Invalid threshold value {value!r}")
    if isinstance(value, (int, float)):
        return float(value), False
    text = str(value)
    match = _SD_PATTERN.match(text)
    if match:
        return float(match.group(1)), True
    try:
        return float(text), False
    except ValueError as exc:
        raise InvalidThresholds(f"Invalid threshold value {value!r}") from exc


def _bin(
    anomaly: np.ndarray,
    lo_outer,
    lo_inner,
    hi_inner,
    hi_outer,
    *,
    closed_lowest: bool = False,
) -> np.ndarray:
    """Apply the five-class rule; NaN anywhere gives class 0.

    With *closed_lowest* the first interval also takes values equal to
    *lo_outer*.
    """
    r = BOUNDARY_DECIMALS
    a = np.round(anomaly, r)
    bounds = [np.round(b, r) for b in (lo_outer, lo_inner, hi_inner, hi_outer)]
    classes = np.ones(a.shape, dtype=np.uint8)
    lowest, *upper = bounds
    classes += ((a > lowest) if closed_lowest else (a >= lowest)).astype(np.uint8)
    for bound in upper:
        classes += (a >= bound).astype(np.uint8)
    valid = ~np.isnan(a)
    for bound in bounds:
        valid &= ~np.isnan(bound)
    classes[~valid] = CLASS_NODATA
    return classes


def classify(
    anomaly: RasterLayer,
    thresholds: ThresholdSpec,
    *,
    method: Union[str, AnomalyMethod] = AnomalyMethod.SIMPLE,
    ref_sd: Optional[RasterLayer] = None,
) -> ClassifiedLayer:
    """Classify *anomaly* into classes 1..5.

    Absolute thresholds apply as-is; the outer classes reach the data minimum
    and maximum, so some classes may be empty, and the lowest class is
    closed at ``-t2``. SD-multiplier thresholds become per-pixel bounds
    ``t * ref_sd`` for a simple anomaly, where a zero ``ref_sd`` gives
    no-data, and apply directly to a z-score anomaly.
    """
    method = AnomalyMethod.parse(method)
    values = anomaly.to_nan()
    t1, t2 = thresholds.t1, thresholds.t2

    if thresholds.mode is ThresholdMode.SD_MULTIPLIER and method is AnomalyMethod.SIMPLE:
        if ref_sd is None:
            raise InvalidThresholds(
                "SD-multiplier thresholds on a simple anomaly need ref_sd"
            )
        if not anomaly.same_grid(ref_sd):
            raise ValueError("ref_sd is not on the same grid as the anomaly layer")
        sd = ref_sd.to_nan()
        sd[sd == 0] = np.nan
        classes = _bin(values, -t2 * sd, -t1 * sd, t1 * sd, t2 * sd)
    else:
        if thresholds.mode is ThresholdMode.ABSOLUTE and np.isnan(values).all():
            logger.warning("Anomaly layer holds no valid pixels")
        classes = _bin(
            values,
            -t2,
            -t1,
            t1,
            t2,
            closed_lowest=thresholds.mode is ThresholdMode.ABSOLUTE,
        )

    logger.info(
        "Classified anomaly (%s thresholds %s/%s, %s method)",
        thresholds.mode.value,
        t1,
        t2,
        method.value,
    )
    return ClassifiedLayer(
        classes.astype(np.float64),
        anomaly.extent,
        anomaly.cell_size,
        CLASS_NODATA,
    )
