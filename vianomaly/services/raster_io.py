from __future__ import annotations

"""Reading and writing single-band rasters as :class:`RasterLayer` values."""

from typing import Optional

import numpy as np
import rasterio
from rasterio.transform import from_origin

from vianomaly.core.logger import Logger
from vianomaly.geo.grid import Extent
from vianomaly.raster.layer import DEFAULT_NODATA, RasterLayer

logger = Logger.get_logger(__name__)


def read_layer(path: str, band: int = 1, nodata: Optional[float] = None) -> RasterLayer:
    """Decode *band* of the raster at *path* into a :class:`RasterLayer`.

    Stored digital numbers are rescaled with the band's scale and offset.
    Samples equal to the file's nodata value (or *nodata*, when given)
    become the layer's no-data sentinel. Accepts any GDAL path, including
    ``NETCDF:"file.nc":variable`` subdatasets.
    """
    with rasterio.open(path) as src:
        transform = src.transform
        if transform.b != 0 or transform.d != 0:
            raise ValueError(f"{path} is rotated; only north-up rasters are supported")
        if not np.isclose(abs(transform.a), abs(transform.e), rtol=1e-6):
            raise ValueError(f"{path} has non-square pixels {src.res}")
        raw = src.read(band)
        file_nodata = nodata if nodata is not None else src.nodata
        scale = src.scales[band - 1] if src.scales else 1.0
        offset = src.offsets[band - 1] if src.offsets else 0.0
        bounds = src.bounds

    invalid = np.zeros(raw.shape, dtype=bool)
    if file_nodata is not None:
        invalid |= raw == file_nodata
    values = raw.astype(np.float64) * scale + offset
    values[invalid] = np.nan
    logger.info("Read %s (%dx%d, cell %s)", path, *raw.shape, abs(transform.a))
    return RasterLayer.from_nan(
        values,
        extent=Extent(bounds.left, bounds.right, bounds.bottom, bounds.top),
        cell_size=abs(transform.a),
        nodata=DEFAULT_NODATA,
    )


def write_layer(layer: RasterLayer, path: str, dtype: str = "float32") -> str:
    """Write *layer* to a single-band EPSG:4326 GeoTIFF and return *path*."""
    rows, cols = layer.shape
    nodata = layer.nodata
    data = layer.data.astype(dtype)
    profile = {
        "driver": "GTiff",
        "height": rows,
        "width": cols,
        "count": 1,
        "dtype": dtype,
        "crs": "EPSG:4326",
        "transform": from_origin(
            layer.extent.west, layer.extent.north, layer.cell_size, layer.cell_size
        ),
        "nodata": nodata,
        "compress": "deflate",
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data, 1)
    logger.info("Wrote %s", path)
    return path
