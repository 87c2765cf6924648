"""Conversion of saturated digital values to no-data."""

from __future__ import annotations

import numpy as np

from vianomaly.core.logger import Logger
from vianomaly.raster.layer import RasterLayer

logger = Logger.get_logger(__name__)


def sanitize(layer: RasterLayer, upper_bound: float) -> RasterLayer:
    """Return *layer* with every sample ``>= upper_bound`` set to no-data.

    Values at or above the bound are flags left over from rescaling stored
    digital numbers, not measurements. Index and standard-deviation layers
    each have their own bound.
    """
    valid = layer.valid_mask()
    saturated = valid & (layer.data >= upper_bound)
    n_bad = int(np.count_nonzero(saturated))
    if n_bad == 0:
        return layer
    logger.debug("Masking %d samples >= %s", n_bad, upper_bound)
    data = np.where(saturated, layer.nodata, layer.data)
    if not np.any(valid & ~saturated):
        logger.warning("Layer has no valid samples below %s", upper_bound)
    return layer.replace(data=data)
