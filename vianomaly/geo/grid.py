"""
Module `geo.grid` describes the fixed global reference grid and snaps
arbitrary extents onto it.

The grid is implicit: boundaries are never stored, only derived from a
:class:`GridSpec`. Longitude boundaries run east from
``origin_lon - offset`` and latitude boundaries run south from
``origin_lat + offset``, where ``offset`` is half a cell when
``half_cell_offset`` is set.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Tuple

from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from vianomaly.core.exceptions import InvalidExtent
from vianomaly.core.logger import Logger

if TYPE_CHECKING:  # pragma: no cover
    from vianomaly.raster.layer import RasterLayer

logger = Logger.get_logger(__name__)

# Coordinates agreeing to this many decimals are the same coordinate.
COORD_DECIMALS = 7


def same_coord(a: float, b: float) -> bool:
    """Return True when *a* and *b* agree to ``COORD_DECIMALS`` decimals."""
    return round(a, COORD_DECIMALS) == round(b, COORD_DECIMALS)


@dataclass(frozen=True)
class GridSpec:
    """Fixed global geographic grid (EPSG:4326)."""

    origin_lon: float
    origin_lat: float
    cell_size: float
    half_cell_offset: bool = True
    east_bound: float = 180.0
    south_bound: float = -60.0

    def __post_init__(self) -> None:
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")

    @property
    def offset(self) -> float:
        return self.cell_size / 2.0 if self.half_cell_offset else 0.0

    @property
    def lon_start(self) -> float:
        return self.origin_lon - self.offset

    @property
    def lat_start(self) -> float:
        return self.origin_lat + self.offset

    @property
    def n_lon(self) -> int:
        """Number of longitude boundaries up to ``east_bound``."""
        span = (self.east_bound - self.lon_start) / self.cell_size
        return int(math.floor(round(span, COORD_DECIMALS))) + 1

    @property
    def n_lat(self) -> int:
        """Number of latitude boundaries down to ``south_bound``."""
        span = (self.lat_start - self.south_bound) / self.cell_size
        return int(math.floor(round(span, COORD_DECIMALS))) + 1

    def lon_at(self, index: int) -> float:
        return self.lon_start + index * self.cell_size

    def lat_at(self, index: int) -> float:
        return self.lat_start - index * self.cell_size

    @classmethod
    def from_name(cls, name: str) -> "GridSpec":
        """Return a preset grid by name (``"1km"`` or ``"300m"``)."""
        try:
            return GRID_PRESETS[name.lower()]
        except KeyError as exc:
            raise ValueError(
                f"Unknown grid '{name}'. Choices: {', '.join(GRID_PRESETS)}"
            ) from exc


# Copernicus Global Land products: 1 km (1/112 deg) and 300 m (1/336 deg)
GRID_1KM = GridSpec(origin_lon=-180.0, origin_lat=80.0, cell_size=1.0 / 112)
GRID_300M = GridSpec(origin_lon=-180.0, origin_lat=80.0, cell_size=1.0 / 336)

GRID_PRESETS = {"1km": GRID_1KM, "300m": GRID_300M}


@dataclass(frozen=True)
class Extent:
    """Bounding box in degrees: ``(west, east, south, north)``."""

    west: float
    east: float
    south: float
    north: float

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.east, self.south, self.north)

    def validate(self) -> "Extent":
        """Raise :class:`InvalidExtent` unless west < east and south < north."""
        if self.west >= self.east:
            raise InvalidExtent(
                f"west ({self.west}) must be smaller than east ({self.east})"
            )
        if self.south >= self.north:
            raise InvalidExtent(
                f"south ({self.south}) must be smaller than north ({self.north})"
            )
        return self

    def intersection(self, other: "Extent") -> "Extent":
        """Return the overlap of two extents; raises if they do not overlap."""
        return Extent(
            west=max(self.west, other.west),
            east=min(self.east, other.east),
            south=max(self.south, other.south),
            north=min(self.north, other.north),
        ).validate()

    def contains(self, other: "Extent") -> bool:
        """Return True when *other* lies inside this extent (7-decimal tolerance)."""
        r = COORD_DECIMALS
        return (
            round(other.west, r) >= round(self.west, r)
            and round(other.east, r) <= round(self.east, r)
            and round(other.south, r) >= round(self.south, r)
            and round(other.north, r) <= round(self.north, r)
        )

    def almost_equal(self, other: "Extent") -> bool:
        return all(
            same_coord(a, b) for a, b in zip(self.as_tuple(), other.as_tuple())
        )

    def to_polygon(self) -> BaseGeometry:
        """Return the extent as a shapely polygon."""
        return box(self.west, self.south, self.east, self.north)


@lru_cache(maxsize=8)
def lon_boundaries(grid: GridSpec) -> Tuple[float, ...]:
    """Return every longitude cell boundary of *grid*, west to east."""
    return tuple(grid.lon_at(i) for i in range(grid.n_lon))


@lru_cache(maxsize=8)
def lat_boundaries(grid: GridSpec) -> Tuple[float, ...]:
    """Return every latitude cell boundary of *grid*, north to south."""
    return tuple(grid.lat_at(i) for i in range(grid.n_lat))


def _nearest_index(coord: float, start: float, step: float, count: int) -> int:
    """Index of the boundary ``start + i * step`` closest to *coord*.

    Equidistant candidates resolve to the lower coordinate value.
    """
    pos = (coord - start) / step
    lo = min(max(int(math.floor(pos)), 0), count - 1)
    hi = min(lo + 1, count - 1)
    d_lo = round(abs(coord - (start + lo * step)), COORD_DECIMALS)
    d_hi = round(abs(coord - (start + hi * step)), COORD_DECIMALS)
    if d_lo == d_hi:
        # lower value: for a descending axis that is the larger index
        return hi if step < 0 else lo
    return lo if d_lo < d_hi else hi


def _on_axis(coord: float, start: float, step: float, count: int) -> bool:
    idx = _nearest_index(coord, start, step, count)
    return same_coord(coord, start + idx * step)


def is_aligned(extent: Extent, grid: GridSpec) -> bool:
    """Return True when all four edges of *extent* are grid boundaries."""
    lon = (grid.lon_start, grid.cell_size, grid.n_lon)
    lat = (grid.lat_start, -grid.cell_size, grid.n_lat)
    return (
        _on_axis(extent.west, *lon)
        and _on_axis(extent.east, *lon)
        and _on_axis(extent.south, *lat)
        and _on_axis(extent.north, *lat)
    )


def align(extent: Extent, grid: GridSpec) -> Extent:
    """Snap each edge of *extent* to the nearest boundary of *grid*.

    Longitude edges snap against longitude boundaries and latitude edges
    against latitude boundaries. An extent already on the grid is returned
    unchanged.

    Raises:
        InvalidExtent: edges are out of order, or snapping collapses the
            extent to zero width or height.
    """
    extent.validate()
    if is_aligned(extent, grid):
        return extent

    lon = (grid.lon_start, grid.cell_size, grid.n_lon)
    lat = (grid.lat_start, -grid.cell_size, grid.n_lat)
    snapped = Extent(
        west=grid.lon_at(_nearest_index(extent.west, *lon)),
        east=grid.lon_at(_nearest_index(extent.east, *lon)),
        south=grid.lat_at(_nearest_index(extent.south, *lat)),
        north=grid.lat_at(_nearest_index(extent.north, *lat)),
    )
    if same_coord(snapped.west, snapped.east) or same_coord(
        snapped.south, snapped.north
    ):
        raise InvalidExtent(f"{extent} collapses to zero size on the grid")
    logger.debug("Aligned %s -> %s", extent, snapped)
    return snapped.validate()


def _offset_cells(delta: float, cell_size: float) -> int:
    cells = delta / cell_size
    nearest = round(cells)
    if abs(cells - nearest) > 1e-3:
        raise InvalidExtent(
            f"offset of {delta} deg is not a whole number of {cell_size} deg cells"
        )
    return int(nearest)


def crop(layer: "RasterLayer", extent: Extent) -> "RasterLayer":
    """Cut *layer* down to *extent*.

    The extent must lie inside the layer and on the layer's own cell
    lattice. The returned layer owns a copy of the selected samples.
    """
    extent.validate()
    if not layer.extent.contains(extent):
        raise InvalidExtent(f"{extent} is not inside layer extent {layer.extent}")
    if layer.extent.almost_equal(extent):
        return layer

    col0 = _offset_cells(extent.west - layer.extent.west, layer.cell_size)
    col1 = _offset_cells(extent.east - layer.extent.west, layer.cell_size)
    row0 = _offset_cells(layer.extent.north - extent.north, layer.cell_size)
    row1 = _offset_cells(layer.extent.north - extent.south, layer.cell_size)
    return layer.replace(
        data=layer.data[row0:row1, col0:col1],
        extent=Extent(
            west=layer.extent.west + col0 * layer.cell_size,
            east=layer.extent.west + col1 * layer.cell_size,
            south=layer.extent.north - row1 * layer.cell_size,
            north=layer.extent.north - row0 * layer.cell_size,
        ),
    )
