# pylint: disable=missing-module-docstring,missing-function-docstring
import math

import numpy as np
import pytest

from vianomaly.analytics.temporal import average_mean, average_pooled_sd
from vianomaly.core.exceptions import EmptyStack
from vianomaly.raster.layer import RasterStack


def test_pooled_sd_is_not_mean_of_sds(make_layer):
    out = average_pooled_sd([make_layer([[0.1]]), make_layer([[0.3]])])
    assert out.data[0, 0] == pytest.approx(math.sqrt((0.01 + 0.09) / 2))
    assert out.data[0, 0] == pytest.approx(0.2236, abs=1e-4)
    assert out.data[0, 0] != pytest.approx(0.2)


def test_mean_skips_missing_periods(make_layer):
    stack = RasterStack(
        [
            make_layer([[0.2, None, None]]),
            make_layer([[0.4, 0.6, None]]),
            make_layer([[None, 0.8, None]]),
        ]
    )
    out = average_mean(stack)
    assert out.data[0, 0] == pytest.approx(0.3)
    assert out.data[0, 1] == pytest.approx(0.7)
    np.testing.assert_array_equal(out.valid_mask(), [[True, True, False]])


def test_pooled_sd_counts_only_valid_periods(make_layer):
    out = average_pooled_sd([make_layer([[0.3, None]]), make_layer([[None, None]])])
    assert out.data[0, 0] == pytest.approx(0.3)
    assert not out.valid_mask()[0, 1]


def test_single_layer_is_unchanged(make_layer):
    layer = make_layer([[0.1, None], [0.3, 0.4]])
    assert average_mean([layer]) == layer


def test_keeps_grid_of_inputs(make_layer):
    layers = [make_layer([[1.0, 2.0]], west=3.0), make_layer([[3.0, 4.0]], west=3.0)]
    out = average_mean(layers, max_workers=2, chunk_rows=1)
    assert out.extent == layers[0].extent
    np.testing.assert_allclose(out.data, [[2.0, 3.0]])


def test_empty_stack():
    with pytest.raises(EmptyStack):
        average_mean([])
    with pytest.raises(EmptyStack):
        average_pooled_sd([])
