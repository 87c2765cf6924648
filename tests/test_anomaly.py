# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np
import pytest

from vianomaly.analytics.anomaly import AnomalyMethod, compute
from vianomaly.core.exceptions import UnknownMethod


def test_simple_difference_propagates_nodata(make_layer):
    cur = make_layer([[0.5, None, 0.3]])
    mean = make_layer([[0.4, 0.4, None]])
    out = compute(cur, mean, "simple")
    assert out.data[0, 0] == pytest.approx(0.1)
    np.testing.assert_array_equal(out.valid_mask(), [[True, False, False]])


def test_zscore(make_layer):
    cur = make_layer([[0.50, 0.30]])
    mean = make_layer([[0.40, 0.40]])
    sd = make_layer([[0.05, 0.1]])
    out = compute(cur, mean, AnomalyMethod.ZSCORE, ref_sd=sd)
    np.testing.assert_allclose(out.data, [[2.0, -1.0]])


def test_zscore_zero_sd_is_nodata(make_layer):
    cur = make_layer([[0.9, 0.4, 0.5]])
    mean = make_layer([[0.4, 0.4, 0.4]])
    sd = make_layer([[0.0, 0.0, None]])
    out = compute(cur, mean, "zscore", ref_sd=sd)
    assert not out.valid_mask().any()
    assert np.isfinite(out.data).all()


def test_zscore_needs_sd(make_layer):
    with pytest.raises(ValueError):
        compute(make_layer([[1.0]]), make_layer([[1.0]]), "zscore")


@pytest.mark.parametrize("token", ["ratio", "", "z-score", None])
def test_unknown_method(token, make_layer):
    with pytest.raises(UnknownMethod):
        compute(make_layer([[1.0]]), make_layer([[1.0]]), token)


def test_method_tokens_case_insensitive():
    assert AnomalyMethod.parse(" ZScore ") is AnomalyMethod.ZSCORE
    assert AnomalyMethod.parse(AnomalyMethod.SIMPLE) is AnomalyMethod.SIMPLE


def test_grids_must_match(make_layer):
    with pytest.raises(ValueError):
        compute(make_layer([[1.0]]), make_layer([[1.0]], west=0.0), "simple")
