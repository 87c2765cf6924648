"""Anomaly scoring of a current layer against long-term statistics."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

import numpy as np

from vianomaly.core.exceptions import UnknownMethod
from vianomaly.core.logger import Logger
from vianomaly.raster.layer import RasterLayer

logger = Logger.get_logger(__name__)


class AnomalyMethod(str, Enum):
    """Anomaly formula."""

    SIMPLE = "simple"
    ZSCORE = "zscore"

    @classmethod
    def parse(cls, token: Union[str, "AnomalyMethod"]) -> "AnomalyMethod":
        """Return the method for *token*, raising :class:`UnknownMethod`."""
        if isinstance(token, AnomalyMethod):
            return token
        try:
            return cls(str(token).strip().lower())
        except ValueError as exc:
            choices = ", ".join(m.value for m in cls)
            raise UnknownMethod(
                f"Unknown anomaly method '{token}' (choices: {choices})"
            ) from exc


def _check_grid(ref: RasterLayer, other: RasterLayer, name: str) -> None:
    if not ref.same_grid(other):
        raise ValueError(f"{name} is not on the same grid as the current layer")


def compute(
    current: RasterLayer,
    ref_mean: RasterLayer,
    method: Union[str, AnomalyMethod] = AnomalyMethod.SIMPLE,
    ref_sd: Optional[RasterLayer] = None,
) -> RasterLayer:
    """Return the signed anomaly of *current* relative to the reference.

    ``simple`` gives ``current - ref_mean``; ``zscore`` gives
    ``(current - ref_mean) / ref_sd``. No-data in any input, and a zero
    standard deviation for ``zscore``, yield no-data.

    Raises:
        UnknownMethod: *method* is not a recognised token.
        ValueError: ``zscore`` without *ref_sd*, or inputs on different grids.
    """
    method = AnomalyMethod.parse(method)
    _check_grid(current, ref_mean, "ref_mean")
    diff = current.to_nan() - ref_mean.to_nan()

    if method is AnomalyMethod.SIMPLE:
        logger.info("Computing simple anomaly")
        return RasterLayer.like(current, diff)

    if ref_sd is None:
        raise ValueError("zscore anomaly needs a reference standard deviation")
    _check_grid(current, ref_sd, "ref_sd")
    sd = ref_sd.to_nan()
    out = np.full(diff.shape, np.nan)
    np.divide(diff, sd, out=out, where=~np.isnan(sd) & (sd != 0))
    n_zero = int(np.count_nonzero(sd == 0))
    if n_zero:
        logger.debug("%d pixels with zero standard deviation set to no-data", n_zero)
    logger.info("Computing z-score anomaly")
    return RasterLayer.like(current, out)
