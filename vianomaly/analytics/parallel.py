"""Row-chunk data parallelism for per-pixel raster operations."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

import numpy as np

from vianomaly.core.logger import Logger

logger = Logger.get_logger(__name__)

DEFAULT_CHUNK_ROWS = 256


def row_chunks(n_rows: int, chunk_rows: int) -> List[Tuple[int, int]]:
    """Split ``[0, n_rows)`` into contiguous ``(start, stop)`` ranges."""
    if chunk_rows <= 0:
        raise ValueError(f"chunk_rows must be positive, got {chunk_rows}")
    return [
        (start, min(start + chunk_rows, n_rows))
        for start in range(0, n_rows, chunk_rows)
    ]


def map_row_chunks(
    func: Callable[[int, int], np.ndarray],
    n_rows: int,
    *,
    chunk_rows: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> np.ndarray:
    """Run ``func(start, stop)`` over row chunks and stack the results.

    Each call must return the output rows for its range. Results are
    concatenated in chunk order whatever order the workers finish in. The
    pool lives for this call only; if a chunk fails, chunks not yet started
    are cancelled, running ones are waited for, and the error is re-raised.
    """
    chunks = row_chunks(n_rows, chunk_rows or DEFAULT_CHUNK_ROWS)
    if not chunks:
        return func(0, 0)
    if len(chunks) <= 1 or max_workers == 1:
        return np.concatenate([func(start, stop) for start, stop in chunks])

    logger.debug(
        "Processing %d rows in %d chunks (max_workers=%s)",
        n_rows,
        len(chunks),
        max_workers,
    )
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = [ex.submit(func, start, stop) for start, stop in chunks]
        try:
            parts = [fut.result() for fut in futures]
        except Exception:
            for fut in futures:
                fut.cancel()
            raise
    return np.concatenate(parts)
