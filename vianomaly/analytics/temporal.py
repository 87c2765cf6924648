"""
Per-pixel pooling of co-registered layers from several periods.

A period that is no-data at a pixel is left out of that pixel's result; the
output is no-data only where every period is no-data.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np

from vianomaly.core.exceptions import EmptyStack
from vianomaly.core.logger import Logger
from vianomaly.raster.layer import RasterLayer, RasterStack
from .parallel import map_row_chunks

logger = Logger.get_logger(__name__)

StackLike = Union[RasterStack, Sequence[RasterLayer]]


def _as_stack(stack: StackLike) -> RasterStack:
    if isinstance(stack, RasterStack):
        return stack
    if len(stack) == 0:
        raise EmptyStack("cannot average an empty stack")
    return RasterStack(stack)


def _valid_sum(cube: np.ndarray):
    valid = ~np.isnan(cube)
    return np.where(valid, cube, 0.0).sum(axis=0), valid.sum(axis=0)


def _mean_rows(cube: np.ndarray) -> np.ndarray:
    total, n = _valid_sum(cube)
    out = np.full(total.shape, np.nan)
    np.divide(total, n, out=out, where=n > 0)
    return out


def _pooled_sd_rows(cube: np.ndarray) -> np.ndarray:
    total, n = _valid_sum(cube**2)
    out = np.full(total.shape, np.nan)
    np.divide(total, n, out=out, where=n > 0)
    return np.sqrt(out)


def _reduce(
    stack: StackLike,
    reducer,
    max_workers: Optional[int],
    chunk_rows: Optional[int],
) -> RasterLayer:
    stack = _as_stack(stack)
    cube = stack.to_nan()
    result = map_row_chunks(
        lambda start, stop: reducer(cube[:, start:stop]),
        stack.shape[0],
        chunk_rows=chunk_rows,
        max_workers=max_workers,
    )
    return RasterLayer.like(stack.template, result)


def average_mean(
    stack: StackLike,
    *,
    max_workers: Optional[int] = None,
    chunk_rows: Optional[int] = None,
) -> RasterLayer:
    """Per-pixel arithmetic mean over the valid periods."""
    logger.info("Averaging %d mean layers", len(stack))
    return _reduce(stack, _mean_rows, max_workers, chunk_rows)


def average_pooled_sd(
    stack: StackLike,
    *,
    max_workers: Optional[int] = None,
    chunk_rows: Optional[int] = None,
) -> RasterLayer:
    """Per-pixel pooled standard deviation ``sqrt(sum(sd_i**2) / n)``.

    ``n`` counts the periods valid at the pixel. Averaging the standard
    deviations directly would understate the combined spread.
    """
    logger.info("Pooling %d standard-deviation layers", len(stack))
    return _reduce(stack, _pooled_sd_rows, max_workers, chunk_rows)
