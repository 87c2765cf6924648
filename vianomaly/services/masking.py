from __future__ import annotations

"""Polygon masking of layers, e.g. restricting a map to one country."""

from typing import Iterable, List, Optional

import geopandas as gpd
import numpy as np
from rasterio.features import geometry_mask
from rasterio.transform import from_origin
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from vianomaly.core.logger import Logger
from vianomaly.raster.layer import RasterLayer

logger = Logger.get_logger(__name__)


def load_mask_geometries(
    path: str, column: Optional[str] = None, value: Optional[str] = None
) -> List[BaseGeometry]:
    """Read polygons from a vector file, optionally keeping rows where
    ``column == value`` (e.g. a country or continent name)."""
    gdf = gpd.read_file(path)
    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        gdf = gdf.to_crs(epsg=4326)
    if column is not None:
        if column not in gdf.columns:
            raise KeyError(f"Column '{column}' not found in {path}")
        if value is not None:
            gdf = gdf[gdf[column].astype(str) == str(value)]
    if gdf.empty:
        raise ValueError(f"No mask polygons selected from {path}")
    logger.info("Loaded %d mask polygons from %s", len(gdf), path)
    return list(gdf.geometry)


def mask_layer(layer: RasterLayer, geometries: Iterable[BaseGeometry]) -> RasterLayer:
    """Return *layer* with pixels whose centre lies outside *geometries*
    set to no-data."""
    shapes = [mapping(geom) for geom in geometries]
    if not shapes:
        raise ValueError("mask_layer needs at least one geometry")
    transform = from_origin(
        layer.extent.west, layer.extent.north, layer.cell_size, layer.cell_size
    )
    outside = geometry_mask(shapes, out_shape=layer.shape, transform=transform)
    return layer.replace(data=np.where(outside, layer.nodata, layer.data))
