# pylint: disable=missing-module-docstring,missing-function-docstring,redefined-outer-name
import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from vianomaly.geo.grid import Extent, GRID_1KM
from vianomaly.raster.layer import DEFAULT_NODATA, RasterLayer


def _layer(values, west=10.0, north=5.0, cell=1.0, nodata=DEFAULT_NODATA):
    arr = np.array(
        [[np.nan if v is None else v for v in row] for row in values], dtype=float
    )
    rows, cols = arr.shape
    extent = Extent(west, west + cols * cell, north - rows * cell, north)
    return RasterLayer.from_nan(arr, extent=extent, cell_size=cell, nodata=nodata)


def _tif(path, data, west, north, cell, nodata=None, dtype="float32", **extra):
    data = np.asarray(data, dtype=dtype)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=data.shape[0],
        width=data.shape[1],
        count=1,
        dtype=dtype,
        crs="EPSG:4326",
        transform=from_origin(west, north, cell, cell),
        nodata=nodata,
        **extra,
    ) as dst:
        dst.write(data, 1)
    return str(path)


@pytest.fixture
def make_layer():
    """Factory for layers from nested lists where ``None`` marks no-data."""
    return _layer


@pytest.fixture
def write_tif():
    """Factory writing a single-band EPSG:4326 GeoTIFF and returning its path."""
    return _tif


@pytest.fixture
def lts_files(tmp_path):
    """Current / LTS mean / LTS sd GeoTIFFs on a 6x6 patch of the 1 km grid."""
    west, north, cell = GRID_1KM.lon_at(24000), GRID_1KM.lat_at(3000), GRID_1KM.cell_size
    current = np.full((6, 6), 0.50)
    mean = np.full((6, 6), 0.40)
    sd = np.full((6, 6), 0.05)
    current[0, 0] = 0.25  # z = -3 -> class 1
    current[0, 1] = 0.45  # z = 1 -> class 4
    sd[5, 5] = 0.0  # zero variance -> no-data
    opts = {"west": west, "north": north, "cell": cell, "nodata": -1, "dtype": "float64"}
    return {
        "current": _tif(tmp_path / "cur.tif", current, **opts),
        "mean": _tif(tmp_path / "mean.tif", mean, **opts),
        "sd": _tif(tmp_path / "sd.tif", sd, **opts),
        "extent": Extent(west, west + 6 * cell, north - 6 * cell, north),
    }
