# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np
import pytest
import rasterio

from vianomaly.services.raster_io import read_layer, write_layer


def test_read_layer_rescales_and_masks(tmp_path, write_tif):
    dn = np.array([[20, 145], [255, 250]], dtype="uint8")
    path = write_tif(tmp_path / "ndvi.tif", dn, 10.0, 5.0, 0.5, nodata=255, dtype="uint8")
    with rasterio.open(path, "r+") as dst:
        dst.scales = (0.004,)
        dst.offsets = (-0.08,)

    layer = read_layer(path)

    assert layer.extent.as_tuple() == (10.0, 11.0, 4.0, 5.0)
    assert layer.cell_size == 0.5
    np.testing.assert_array_equal(layer.valid_mask(), [[True, True], [False, True]])
    assert layer.data[0, 0] == pytest.approx(0.0)
    assert layer.data[0, 1] == pytest.approx(0.5)
    assert layer.data[1, 1] == pytest.approx(0.92)


def test_read_layer_without_nodata(tmp_path, write_tif):
    path = write_tif(tmp_path / "plain.tif", [[0.1, 0.2]], 0.0, 1.0, 1.0)
    layer = read_layer(path)
    assert layer.valid_mask().all()


def test_write_then_read(tmp_path, make_layer):
    layer = make_layer([[0.25, None], [0.5, 0.75]], west=2.0, north=3.0, cell=0.25)
    path = write_layer(layer, str(tmp_path / "out.tif"))
    with rasterio.open(path) as src:
        assert src.crs.to_epsg() == 4326
        assert src.nodata == layer.nodata
    assert read_layer(path) == layer


def test_non_square_pixels_rejected(tmp_path):
    from rasterio.transform import Affine

    path = tmp_path / "rect.tif"
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=1,
        width=1,
        count=1,
        dtype="float32",
        crs="EPSG:4326",
        transform=Affine(1.0, 0.0, 0.0, 0.0, -2.0, 2.0),
    ) as dst:
        dst.write(np.ones((1, 1), dtype="float32"), 1)
    with pytest.raises(ValueError):
        read_layer(str(path))
