"""
Block aggregation of a fine raster onto a coarser grid.

Each output cell is the mean of the ``factor x factor`` input block it
covers, but only when the block holds more than ``min_valid_count`` valid
samples; sparser blocks become no-data. Rows and columns that do not fill a
whole block at the southern and eastern edges are dropped, so the output
stays anchored at the input's north-west corner.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from vianomaly.core.exceptions import InvalidAggregationFactor
from vianomaly.core.logger import Logger
from vianomaly.geo.grid import Extent
from vianomaly.raster.layer import RasterLayer
from .parallel import map_row_chunks

logger = Logger.get_logger(__name__)


def _block_means(
    values: np.ndarray, factor: int, min_valid_count: int
) -> np.ndarray:
    rows, cols = values.shape[0] // factor, values.shape[1] // factor
    blocks = values.reshape(rows, factor, cols, factor)
    valid = ~np.isnan(blocks)
    n_valid = valid.sum(axis=(1, 3))
    totals = np.where(valid, blocks, 0.0).sum(axis=(1, 3))
    out = np.full((rows, cols), np.nan)
    keep = n_valid > min_valid_count
    out[keep] = totals[keep] / n_valid[keep]
    return out


def aggregate(
    layer: RasterLayer,
    block_factor: int,
    min_valid_count: int,
    *,
    max_workers: Optional[int] = None,
    chunk_rows: Optional[int] = None,
) -> RasterLayer:
    """Downsample *layer* by *block_factor* in both directions.

    Args:
        layer: fine-resolution input.
        block_factor: input cells per output cell along each axis.
        min_valid_count: a block needs strictly more valid samples than this.
        max_workers: worker threads; ``None`` lets the pool decide.
        chunk_rows: output rows handled per worker task.

    Raises:
        InvalidAggregationFactor: *block_factor* is not a positive integer.
    """
    if int(block_factor) != block_factor or block_factor <= 0:
        raise InvalidAggregationFactor(
            f"block_factor must be a positive integer, got {block_factor}"
        )
    factor = int(block_factor)
    rows, cols = layer.shape
    out_rows, out_cols = rows // factor, cols // factor
    if out_rows == 0 or out_cols == 0:
        raise InvalidAggregationFactor(
            f"block_factor {factor} is larger than the {rows}x{cols} input"
        )
    if out_rows * factor != rows or out_cols * factor != cols:
        logger.warning(
            "Dropping %d partial rows and %d partial columns at the raster edge",
            rows - out_rows * factor,
            cols - out_cols * factor,
        )

    values = layer.to_nan()[: out_rows * factor, : out_cols * factor]

    def _chunk(start: int, stop: int) -> np.ndarray:
        return _block_means(
            values[start * factor : stop * factor], factor, min_valid_count
        )

    result = map_row_chunks(
        _chunk, out_rows, chunk_rows=chunk_rows, max_workers=max_workers
    )
    cell = layer.cell_size * factor
    extent = Extent(
        west=layer.extent.west,
        east=layer.extent.west + out_cols * cell,
        south=layer.extent.north - out_rows * cell,
        north=layer.extent.north,
    )
    logger.info(
        "Aggregated %dx%d -> %dx%d (factor %d, min valid > %d)",
        rows,
        cols,
        out_rows,
        out_cols,
        factor,
        min_valid_count,
    )
    return RasterLayer.from_nan(
        result, extent=extent, cell_size=cell, nodata=layer.nodata
    )
