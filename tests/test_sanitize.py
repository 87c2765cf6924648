# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np

from vianomaly.analytics.sanitize import sanitize


def test_values_at_or_above_bound_become_nodata(make_layer):
    layer = make_layer([[0.5, 0.92, 0.96], [None, 0.1, 1.2]])
    out = sanitize(layer, 0.92)
    np.testing.assert_array_equal(
        out.valid_mask(), [[True, False, False], [False, True, False]]
    )
    assert out.data[0, 0] == 0.5
    # input untouched
    assert layer.data[0, 1] == 0.92


def test_all_below_bound_is_noop(make_layer):
    layer = make_layer([[0.1, 0.2], [None, 0.3]])
    assert sanitize(layer, 0.92) == layer


def test_fully_saturated_layer_is_valid(make_layer):
    out = sanitize(make_layer([[1.0, 2.0]]), 0.5)
    assert not out.valid_mask().any()


def test_each_variable_has_its_own_bound(make_layer):
    index = make_layer([[0.6]])
    sd = make_layer([[0.6]])
    assert sanitize(index, 0.92).valid_mask().all()
    assert not sanitize(sd, 0.5).valid_mask().any()
