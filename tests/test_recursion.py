# tests/test_recursion.py

"""
Tests for differencing, the parameter layout and the one-step recursion.
"""

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from sarimax_engine.core.exceptions import InvalidInputError
from sarimax_engine.core.parameters import SARIMAXParameters
from sarimax_engine.models.time_series._numba_core import difference, seasonal_difference
from sarimax_engine.models.time_series.recursion import RecursionStructure, differencing_polynomial


class TestDifferencing:
    """Tests for regular and seasonal differencing."""

    @given(st.floats(min_value=-100, max_value=100),
           st.floats(min_value=-10, max_value=10),
           st.integers(min_value=3, max_value=60))
    @settings(max_examples=50, deadline=None)
    def test_linear_ramp_becomes_constant(self, intercept, slope, n):
        x = intercept + slope * np.arange(n, dtype=np.float64)
        diffed = difference(x, 1)
        assert len(diffed) == n - 1
        np.testing.assert_allclose(diffed, slope, atol=1e-9)
        np.testing.assert_allclose(difference(x, 2), 0.0, atol=1e-8)

    def test_seasonal_difference_removes_pattern(self):
        pattern = np.array([3.0, -1.0, 4.0, 1.0])
        x = np.tile(pattern, 6)
        result = seasonal_difference(x, 4, 1)
        assert len(result) == 20
        np.testing.assert_allclose(result, 0.0)

    def test_zero_order_is_copy(self):
        x = np.array([1.0, 5.0, 2.0])
        np.testing.assert_array_equal(difference(x, 0), x)

    def test_polynomials(self):
        np.testing.assert_array_equal(differencing_polynomial(0), [1.0])
        np.testing.assert_array_equal(differencing_polynomial(2), [1.0, -2.0, 1.0])
        np.testing.assert_array_equal(differencing_polynomial(0, [(4, 1)]),
                                      [1.0, 0.0, 0.0, 0.0, -1.0])
        np.testing.assert_array_equal(differencing_polynomial(1, [(2, 1)]),
                                      [1.0, -1.0, -1.0, 1.0])


class TestParameters:
    """Tests for the flat parameter layout."""

    def test_names_and_order(self):
        params = SARIMAXParameters.zeros(2, 1, seasonal=[(12, 1, 1)], exogenous_names=["promo"])
        assert params.names() == [
            "ar.S12.L1", "ma.S12.L1", "ar.L1", "ar.L2", "ma.L1", "exog.promo"
        ]
        assert params.size == 6
        assert params.sarima_size == 5

    def test_duplicate_periods_are_indexed(self):
        params = SARIMAXParameters.zeros(0, 0, seasonal=[(7, 1, 0), (7, 0, 1)])
        assert params.names() == ["ar.S7[0].L1", "ma.S7[1].L1"]

    def test_from_array(self):
        template = SARIMAXParameters.zeros(1, 1, exogenous_names=["x"])
        filled = template.from_array([0.5, -0.2, 3.0])
        assert filled.to_dict() == {"ar.L1": 0.5, "ma.L1": -0.2, "exog.x": 3.0}
        sarima, exog = filled.split(filled.to_array())
        np.testing.assert_array_equal(sarima, [0.5, -0.2])
        np.testing.assert_array_equal(exog, [3.0])
        with pytest.raises(InvalidInputError):
            template.from_array([1.0])

    def test_stationarity(self):
        template = SARIMAXParameters.zeros(1, 1)
        assert template.from_array([0.5, 0.3]).is_stationary()
        assert not template.from_array([1.2, 0.3]).is_stationary()
        assert template.from_array([0.5, 0.3]).is_invertible()
        assert not template.from_array([0.5, -1.5]).is_invertible()


class TestRecursion:
    """Tests for the one-step predictor."""

    def _structure(self, p=0, q=0, d=0, seasonal=(), exog=()):
        template = SARIMAXParameters.zeros(
            p, q, seasonal=[(s, P, Q) for s, P, _, Q in seasonal], exogenous_names=exog
        )
        return RecursionStructure.build(
            template, d, [D for _, _, D, _ in seasonal],
            np.zeros(len(seasonal)), np.ones(len(seasonal))
        )

    def test_ar1_predictions(self):
        structure = self._structure(p=1)
        values = np.array([1.0, 2.0, 4.0, 3.0])
        predictions, residuals = structure.one_step(values, np.zeros((4, 0)), np.array([0.5]))
        assert structure.warmup == 1
        np.testing.assert_allclose(predictions, [1.0, 0.5, 1.0, 2.0])
        np.testing.assert_allclose(residuals, [0.0, 1.5, 3.0, 1.0])

    def test_random_walk_predicts_last_value(self):
        structure = self._structure(d=1)
        values = np.array([3.0, 5.0, 4.0, 8.0])
        predictions, residuals = structure.one_step(values, np.zeros((4, 0)), np.zeros(0))
        np.testing.assert_allclose(predictions[1:], values[:-1])
        forecast = structure.forecast(values, residuals, np.zeros((4, 0)), np.zeros((3, 0)), np.zeros(0))
        np.testing.assert_allclose(forecast, [8.0, 8.0, 8.0])

    def test_ma1_uses_residuals(self):
        structure = self._structure(q=1)
        values = np.array([1.0, 2.0, 0.0])
        predictions, residuals = structure.one_step(values, np.zeros((3, 0)), np.array([0.5]))
        np.testing.assert_allclose(predictions, [1.0, 0.0, 1.0])
        np.testing.assert_allclose(residuals, [0.0, 2.0, -1.0])

    def test_exogenous_term(self):
        structure = self._structure(exog=("x",))
        values = np.array([2.0, 4.0, 6.0])
        exog = np.array([[1.0], [2.0], [3.0]])
        predictions, residuals = structure.one_step(values, exog, np.array([2.0]))
        np.testing.assert_allclose(predictions, values)
        np.testing.assert_allclose(residuals, 0.0)

    def test_seasonal_warmup(self):
        structure = self._structure(p=1, seasonal=[(4, 1, 1, 1)])
        assert structure.warmup == 8

    def test_forecast_does_not_modify_inputs(self):
        structure = self._structure(p=1)
        values = np.array([1.0, 2.0, 3.0])
        residuals = np.zeros(3)
        structure.forecast(values, residuals, np.zeros((3, 0)), np.zeros((4, 0)), np.array([0.9]))
        np.testing.assert_array_equal(values, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(residuals, 0.0)

    def test_ar1_forecast_decays(self):
        structure = self._structure(p=1)
        values = np.array([1.0, 2.0])
        forecast = structure.forecast(values, np.zeros(2), np.zeros((2, 0)), np.zeros((3, 0)),
                                      np.array([0.5]))
        np.testing.assert_allclose(forecast, [1.0, 0.5, 0.25])

    def test_too_short(self):
        structure = self._structure(p=3)
        with pytest.raises(InvalidInputError):
            structure.one_step(np.array([1.0, 2.0, 3.0]), np.zeros((3, 0)), np.zeros(3))
