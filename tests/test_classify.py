# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np
import pytest

from vianomaly.analytics.anomaly import AnomalyMethod
from vianomaly.analytics.classify import ThresholdMode, ThresholdSpec, classify
from vianomaly.core.exceptions import InvalidThresholds
from vianomaly.raster.layer import ClassifiedLayer


def test_sd_multiplier_simple_method_per_pixel_bounds(make_layer):
    anomaly = make_layer([[-0.25, -0.15, 0.05, 0.18, 0.25]])
    sd = make_layer([[0.1] * 5])
    out = classify(
        anomaly,
        ThresholdSpec.sd_multiplier(1, 2),
        method=AnomalyMethod.SIMPLE,
        ref_sd=sd,
    )
    assert isinstance(out, ClassifiedLayer)
    np.testing.assert_array_equal(out.classes(), [[1, 2, 3, 4, 5]])


def test_sd_bounds_vary_by_pixel(make_layer):
    anomaly = make_layer([[0.15, 0.15]])
    sd = make_layer([[0.1, 0.05]])
    out = classify(anomaly, ThresholdSpec.sd_multiplier(1, 2), ref_sd=sd)
    np.testing.assert_array_equal(out.classes(), [[4, 5]])


def test_zscore_uses_multipliers_directly(make_layer):
    z = make_layer([[-2.5, -2.0, -1.0, 0.0, 1.0, 2.0]])
    out = classify(z, ThresholdSpec.sd_multiplier(1, 2), method="zscore")
    np.testing.assert_array_equal(out.classes(), [[1, 2, 3, 3, 4, 5]])


def test_boundary_hit_despite_float_error(make_layer):
    z = make_layer([[(0.50 - 0.40) / 0.05]])
    out = classify(z, ThresholdSpec.sd_multiplier(1, 2), method="zscore")
    assert out.classes()[0, 0] == 5


def test_absolute_thresholds(make_layer):
    anomaly = make_layer([[-0.3, -0.07, -0.05, 0.0, 0.05, 0.1, 0.3]])
    out = classify(anomaly, ThresholdSpec.absolute(0.05, 0.1))
    np.testing.assert_array_equal(out.classes(), [[1, 2, 3, 3, 4, 5, 5]])


def test_absolute_lowest_class_includes_lower_threshold(make_layer):
    anomaly = make_layer([[-0.3, -0.1, 0.05, 0.1]])
    out = classify(anomaly, ThresholdSpec.absolute(0.05, 0.1))
    np.testing.assert_array_equal(out.classes(), [[1, 1, 4, 5]])


def test_absolute_thresholds_outside_data_range_leave_empty_classes(make_layer):
    anomaly = make_layer([[-0.01, 0.0, 0.02]])
    out = classify(anomaly, ThresholdSpec.absolute(0.5, 1.0))
    np.testing.assert_array_equal(out.classes(), [[3, 3, 3]])
    counts = out.class_counts().to_dataframe().set_index("class")["pixels"]
    assert counts[3] == 3 and counts[[1, 2, 4, 5]].sum() == 0


def test_zero_sd_with_simple_method_is_nodata(make_layer):
    anomaly = make_layer([[0.0, -0.01, 0.2]])
    sd = make_layer([[0.0, 0.0, 0.1]])
    out = classify(anomaly, ThresholdSpec.sd_multiplier(1, 2), ref_sd=sd)
    np.testing.assert_array_equal(out.classes(), [[0, 0, 5]])


def test_nodata_never_classified(make_layer):
    anomaly = make_layer([[None, 0.3, 0.3]])
    sd = make_layer([[0.1, None, 0.1]])
    out = classify(anomaly, ThresholdSpec.sd_multiplier(1, 2), ref_sd=sd)
    np.testing.assert_array_equal(out.classes(), [[0, 0, 5]])


def test_sd_mode_simple_needs_sd(make_layer):
    with pytest.raises(InvalidThresholds):
        classify(make_layer([[0.1]]), ThresholdSpec.sd_multiplier(1, 2))


@pytest.mark.parametrize("t1,t2", [(2, 1), (1, 1), (0, 1), (-1, 2)])
def test_invalid_threshold_values(t1, t2):
    with pytest.raises(InvalidThresholds):
        ThresholdSpec.absolute(t1, t2)


@pytest.mark.parametrize(
    "anom1,anom2,mode,t1,t2",
    [
        ("1*SD", "2*SD", ThresholdMode.SD_MULTIPLIER, 1.0, 2.0),
        ("0.5 * sd", "1.5*SD", ThresholdMode.SD_MULTIPLIER, 0.5, 1.5),
        (0.05, "0.1", ThresholdMode.ABSOLUTE, 0.05, 0.1),
    ],
)
def test_parse_thresholds(anom1, anom2, mode, t1, t2):
    spec = ThresholdSpec.parse(anom1, anom2)
    assert spec.mode is mode
    assert (spec.t1, spec.t2) == pytest.approx((t1, t2))


@pytest.mark.parametrize(
    "anom1,anom2", [("1*SD", 0.1), (0.05, "2*SD"), ("one", "two"), (True, 2)]
)
def test_parse_rejects_mixed_or_malformed(anom1, anom2):
    with pytest.raises(InvalidThresholds):
        ThresholdSpec.parse(anom1, anom2)
