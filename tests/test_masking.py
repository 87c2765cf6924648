# pylint: disable=missing-module-docstring,missing-function-docstring
import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import box

from vianomaly.analytics.classify import ThresholdSpec, classify
from vianomaly.services.masking import load_mask_geometries, mask_layer


@pytest.fixture
def countries(tmp_path):
    gdf = gpd.GeoDataFrame(
        {"name": ["West", "East"], "geometry": [box(0, 0, 2, 2), box(2, 0, 4, 2)]},
        crs="EPSG:4326",
    )
    path = tmp_path / "countries.geojson"
    gdf.to_file(path, driver="GeoJSON")
    return str(path)


def test_load_all_geometries(countries):
    assert len(load_mask_geometries(countries)) == 2


def test_filter_by_attribute(countries):
    geoms = load_mask_geometries(countries, column="name", value="East")
    assert len(geoms) == 1
    assert geoms[0].bounds == (2.0, 0.0, 4.0, 2.0)


def test_filter_errors(countries):
    with pytest.raises(KeyError):
        load_mask_geometries(countries, column="iso3", value="KEN")
    with pytest.raises(ValueError):
        load_mask_geometries(countries, column="name", value="Atlantis")


def test_mask_layer_outside_pixels_become_nodata(make_layer):
    layer = make_layer([[1.0, 2.0, 3.0, 4.0]], west=0.0, north=1.0)
    out = mask_layer(layer, [box(0, 0, 2, 1)])
    np.testing.assert_array_equal(out.valid_mask(), [[True, True, False, False]])
    assert layer.valid_mask().all()


def test_mask_keeps_classified_type(make_layer):
    anomaly = make_layer([[0.0, 0.5]], west=0.0, north=1.0)
    classified = classify(anomaly, ThresholdSpec.absolute(0.1, 0.2))
    out = mask_layer(classified, [box(1, 0, 2, 1)])
    np.testing.assert_array_equal(out.classes(), [[0, 5]])
