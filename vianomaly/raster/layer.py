"""
Module `raster.layer` defines the in-memory raster values passed between
pipeline stages: :class:`RasterLayer`, :class:`RasterStack` and
:class:`ClassifiedLayer`.

Layers are immutable. Their sample arrays are flagged read-only and every
transformation returns a new instance.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

import numpy as np

from vianomaly.core.exceptions import EmptyStack
from vianomaly.geo.grid import Extent, same_coord

DEFAULT_NODATA = -9999.0


def _readonly(values: np.ndarray, dtype) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class RasterLayer:
    """Single-band raster on a north-up geographic grid."""

    data: np.ndarray
    extent: Extent
    cell_size: float
    nodata: float = DEFAULT_NODATA

    def __post_init__(self) -> None:
        arr = _readonly(self.data, np.float64)
        if arr.ndim != 2:
            raise ValueError(f"raster data must be 2-D, got shape {arr.shape}")
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")
        rows, cols = arr.shape
        tol = self.cell_size * 1e-3
        if abs(self.extent.width - cols * self.cell_size) > tol or abs(
            self.extent.height - rows * self.cell_size
        ) > tol:
            raise ValueError(
                f"extent {self.extent.as_tuple()} does not span "
                f"{rows}x{cols} cells of {self.cell_size} deg"
            )
        object.__setattr__(self, "data", arr)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    def valid_mask(self) -> np.ndarray:
        """Boolean array, True where the sample is not no-data."""
        valid = ~np.isnan(self.data)
        if not np.isnan(self.nodata):
            valid &= self.data != self.nodata
        return valid

    def to_nan(self) -> np.ndarray:
        """Return a writable float copy with no-data replaced by NaN."""
        out = np.array(self.data, dtype=np.float64, copy=True)
        out[~self.valid_mask()] = np.nan
        return out

    def replace(self, **changes) -> "RasterLayer":
        """Return a copy of this layer with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_nan(
        cls,
        values: np.ndarray,
        *,
        extent: Extent,
        cell_size: float,
        nodata: float = DEFAULT_NODATA,
    ) -> "RasterLayer":
        """Build a layer from a float array where NaN marks no-data."""
        arr = np.array(values, dtype=np.float64, copy=True)
        arr[~np.isfinite(arr)] = nodata
        return cls(arr, extent, cell_size, nodata)

    @classmethod
    def like(cls, template: "RasterLayer", values: np.ndarray) -> "RasterLayer":
        """Build a layer on *template*'s grid from a NaN-for-no-data array."""
        return cls.from_nan(
            values,
            extent=template.extent,
            cell_size=template.cell_size,
            nodata=template.nodata,
        )

    def same_grid(self, other: "RasterLayer") -> bool:
        return (
            self.shape == other.shape
            and same_coord(self.cell_size, other.cell_size)
            and self.extent.almost_equal(other.extent)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterLayer):
            return NotImplemented
        return (
            self.same_grid(other)
            and bool(np.array_equal(self.valid_mask(), other.valid_mask()))
            and bool(
                np.array_equal(
                    self.data[self.valid_mask()], other.data[other.valid_mask()]
                )
            )
        )


class RasterStack:
    """Ordered sequence of co-registered layers (same shape and extent)."""

    def __init__(self, layers: Sequence[RasterLayer]) -> None:
        layers = tuple(layers)
        if not layers:
            raise EmptyStack("raster stack needs at least one layer")
        first = layers[0]
        for i, layer in enumerate(layers[1:], start=1):
            if not first.same_grid(layer):
                raise ValueError(
                    f"layer {i} is not co-registered with layer 0: "
                    f"{layer.shape} {layer.extent.as_tuple()} vs "
                    f"{first.shape} {first.extent.as_tuple()}"
                )
        self._layers: Tuple[RasterLayer, ...] = layers

    @property
    def layers(self) -> Tuple[RasterLayer, ...]:
        return self._layers

    @property
    def template(self) -> RasterLayer:
        """First layer; carries the shared extent and cell size."""
        return self._layers[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.template.shape

    def to_nan(self) -> np.ndarray:
        """3-D float array ``(layer, row, col)`` with NaN for no-data."""
        return np.stack([layer.to_nan() for layer in self._layers])

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[RasterLayer]:
        return iter(self._layers)

    def __getitem__(self, idx: int) -> RasterLayer:
        return self._layers[idx]


CLASS_NODATA = 0
CLASS_VALUES = (1, 2, 3, 4, 5)


@dataclass(frozen=True, eq=False)
class ClassifiedLayer(RasterLayer):
    """Five-class anomaly raster; values in 1..5, no-data is 0."""

    nodata: float = CLASS_NODATA

    def __post_init__(self) -> None:
        super().__post_init__()
        valid = self.valid_mask()
        bad = ~np.isin(self.data[valid], CLASS_VALUES)
        if bad.any():
            raise ValueError("classified layer may only hold classes 1..5")

    def classes(self) -> np.ndarray:
        """Integer class array with 0 where no-data."""
        return np.where(self.valid_mask(), self.data, CLASS_NODATA).astype(np.uint8)

    def class_counts(self):
        """Return a :class:`ClassSummary` of pixels per class."""
        from vianomaly.analytics.results import ClassSummary

        return ClassSummary.from_classes(self.classes())
