# tests/test_sarimax.py

"""
Tests for SARIMAX estimation and forecasting.

The suite covers the Unfit/Fit lifecycle, parameter recovery on simulated
series, degenerate inputs, exogenous covariates, seasonal components and the
shape and coverage of the prediction intervals.
"""

import numpy as np
import pandas as pd
import pytest

from sarimax_engine.core.exceptions import (
    InvalidInputError, MissingExogenousDataError, ModelNotFitError
)
from sarimax_engine.core.types import Observation, observations_from_pandas
from sarimax_engine.models.time_series.forecast import ForecastResult
from sarimax_engine.models.time_series.sarimax import (
    FittedState, SARIMAXConfig, SARIMAXModel, exogenous_matrix
)


class TestLifecycle:
    """Tests for the Unfit -> Fit state machine."""

    def test_unfit_model_raises(self):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        assert not model.fitted
        with pytest.raises(ModelNotFitError):
            model.predict(3)
        with pytest.raises(ModelNotFitError):
            model.get_diagnostics([])
        with pytest.raises(ModelNotFitError):
            model.parameters
        assert "not fitted" in model.summary()

    def test_mapping_config(self):
        model = SARIMAXModel({"order": [1, 0, 1], "maxIterations": 10})
        assert model.config.max_iterations == 10
        assert model.name == "SARIMAX(1,0,1)"

    def test_refit_replaces_state(self, rng, simulate, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        first = model.fit(observations(simulate(rng, 300, ar=[0.3])))
        second = model.fit(observations(simulate(rng, 300, ar=[0.8])))
        assert model.state is second
        assert first is not second
        assert second.parameters.non_seasonal.ar[0] > first.parameters.non_seasonal.ar[0]

    def test_predict_leaves_state_untouched(self, ar1_series, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 1)))
        state = model.fit(observations(ar1_series))
        values = state.values.copy()
        residuals = state.residuals.copy()
        first = model.predict(5)
        second = model.predict(5)
        np.testing.assert_array_equal(first.predictions, second.predictions)
        np.testing.assert_array_equal(state.values, values)
        np.testing.assert_array_equal(state.residuals, residuals)
        assert model.state is state


class TestEstimation:
    """Tests for parameter estimation."""

    def test_ar1_recovery(self, rng, simulate, observations):
        y = simulate(rng, 2000, ar=[0.6])
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        state = model.fit(observations(y))
        assert isinstance(state, FittedState)
        assert state.converged
        assert model.parameters["ar.L1"] == pytest.approx(0.6, abs=0.05)
        assert state.residual_variance == pytest.approx(1.0, abs=0.1)
        assert state.warmup == 1
        np.testing.assert_array_equal(state.residuals[:1], 0.0)
        np.testing.assert_allclose(state.fitted_values + state.residuals, y)

    def test_ma1_sign(self, rng, simulate, observations):
        y = simulate(rng, 1500, ma=[0.5])
        model = SARIMAXModel(SARIMAXConfig(order=(0, 0, 1)))
        model.fit(observations(y))
        assert model.parameters["ma.L1"] == pytest.approx(0.5, abs=0.1)

    def test_short_trending_series(self, observations):
        values = [10, 12, 11, 13, 12, 14, 13, 15, 14, 16]
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        state = model.fit(observations(values))
        assert np.isfinite(state.log_likelihood)
        assert model.parameters["ar.L1"] > 0.9
        forecast = model.predict(1)
        assert 14.0 < forecast.predictions[0] < 18.0
        interval = forecast.confidence_intervals[0]
        assert interval.lower < forecast.predictions[0] < interval.upper

    def test_exogenous_regression(self, rng, observations):
        n = 400
        x = rng.normal(size=n)
        y = 2.0 + 3.0 * x + rng.normal(scale=0.5, size=n)
        obs = observations(y, exog={"const": np.ones(n), "x": x})
        model = SARIMAXModel(SARIMAXConfig(exogenous_variables=["const", "x"]))
        state = model.fit(obs)
        assert model.parameters["exog.const"] == pytest.approx(2.0, abs=0.1)
        assert model.parameters["exog.x"] == pytest.approx(3.0, abs=0.1)
        np.testing.assert_allclose(state.exogenous_coefficients,
                                   [model.parameters["exog.const"], model.parameters["exog.x"]])

    def test_constant_series_with_intercept(self, observations):
        n = 30
        obs = observations(np.full(n, 5.0), exog={"intercept": np.ones(n)})
        model = SARIMAXModel(SARIMAXConfig(exogenous_variables=["intercept"]))
        state = model.fit(obs)
        assert np.isfinite(state.log_likelihood)
        np.testing.assert_allclose(state.residuals, 0.0, atol=1e-8)
        forecast = model.predict(2, exogenous=[{"intercept": 1.0}, {"intercept": 1.0}])
        np.testing.assert_allclose(forecast.predictions, 5.0, atol=1e-6)

    def test_constant_series_random_walk(self, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(0, 1, 0)))
        state = model.fit(observations(np.full(20, 3.0)))
        assert state.n_parameters == 0
        assert state.converged
        assert np.isfinite(state.log_likelihood)
        np.testing.assert_array_equal(state.residuals, 0.0)
        forecast = model.predict(4)
        np.testing.assert_allclose(forecast.predictions, 3.0)

    def test_seasonal_model(self, seasonal_series):
        model = SARIMAXModel(SARIMAXConfig(seasonal_orders=[{"order": (1, 1, 0), "period": 12}]))
        train = observations_from_pandas(seasonal_series.iloc[:108])
        state = model.fit(train)
        assert list(model.parameters) == ["ar.S12.L1"]
        assert state.warmup == 24
        assert len(state.seasonal_differenced[0]) == 108 - 12
        forecast = model.predict(12)
        truth = seasonal_series.iloc[108:].to_numpy()
        assert np.mean(np.abs(forecast.predictions - truth)) < 6.0

    def test_seasonal_drift_carried_into_forecast(self, rng, observations):
        t = np.arange(132)
        clean = 100 + 10 * np.sin(2 * np.pi * t / 12) + 0.5 * t
        y = clean[:120] + rng.normal(0.0, 0.1, 120)
        model = SARIMAXModel(SARIMAXConfig(seasonal_orders=[{"order": (0, 1, 0), "period": 12}]))
        state = model.fit(observations(y))
        drift = state.seasonal_means[0]
        assert drift == pytest.approx(6.0, abs=0.1)
        assert abs(np.mean(state.effective_residuals)) < 1e-8
        forecast = model.predict(12)
        np.testing.assert_allclose(forecast.predictions, y[-12:] + drift, atol=1e-8)
        np.testing.assert_allclose(forecast.predictions, clean[120:], atol=0.5)

    def test_series_too_short(self, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(3, 0, 0)))
        with pytest.raises(InvalidInputError):
            model.fit(observations([1.0, 2.0, 3.0]))
        seasonal = SARIMAXModel(SARIMAXConfig(seasonal_orders=[{"order": (0, 2, 0), "period": 12}]))
        with pytest.raises(InvalidInputError):
            seasonal.fit(observations(np.arange(24.0)))

    def test_empty_series(self):
        with pytest.raises(InvalidInputError):
            SARIMAXModel(SARIMAXConfig()).fit([])

    def test_pandas_input_is_rejected(self, ar1_series):
        with pytest.raises(InvalidInputError):
            SARIMAXModel(SARIMAXConfig(order=(1, 0, 0))).fit(pd.Series(ar1_series))

    def test_non_finite_values(self, observations):
        with pytest.raises(InvalidInputError):
            SARIMAXModel(SARIMAXConfig()).fit(observations([1.0, np.inf, 2.0]))

    def test_summary(self, ar1_series, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        model.fit(observations(ar1_series))
        text = model.summary()
        assert "SARIMAX(1,0,0)" in text
        assert "ar.L1" in text
        assert "Log-Likelihood" in text


class TestExogenousData:
    """Tests for covariate handling in fit and predict."""

    @pytest.fixture
    def fitted(self, rng, observations):
        n = 200
        x = rng.normal(size=n)
        y = 1.5 * x + rng.normal(size=n)
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0), exogenous_variables=["x"]))
        model.fit(observations(y, exog={"x": x}))
        return model

    def test_missing_in_fit(self):
        obs = [Observation(0, 1.0, {"x": 1.0}), Observation(1, 2.0, {"y": 1.0}),
               Observation(2, 3.0, {"x": 2.0})]
        model = SARIMAXModel(SARIMAXConfig(exogenous_variables=["x"]))
        with pytest.raises(MissingExogenousDataError) as excinfo:
            model.fit(obs)
        assert excinfo.value.missing == ["x"]
        assert excinfo.value.index == 1
        assert not model.fitted

    def test_missing_in_predict(self, fitted):
        with pytest.raises(MissingExogenousDataError):
            fitted.predict(3)
        with pytest.raises(MissingExogenousDataError):
            fitted.predict(3, exogenous=[{"x": 0.0}, {"x": 1.0}])
        with pytest.raises(MissingExogenousDataError):
            fitted.predict(2, exogenous=[{"x": 0.0}, {"z": 1.0}])
        with pytest.raises(MissingExogenousDataError):
            fitted.predict(1, exogenous=[{"x": float("nan")}])

    def test_dataframe_covariates(self, fitted):
        frame = pd.DataFrame({"x": [0.0, 1.0, -1.0]})
        from_frame = fitted.predict(3, exogenous=frame)
        from_rows = fitted.predict(3, exogenous=[{"x": 0.0}, {"x": 1.0}, {"x": -1.0}])
        np.testing.assert_allclose(from_frame.predictions, from_rows.predictions)

    def test_covariates_shift_forecast(self, fitted):
        low = fitted.predict(1, exogenous=[{"x": 0.0}])
        high = fitted.predict(1, exogenous=[{"x": 1.0}])
        difference = high.predictions[0] - low.predictions[0]
        assert difference == pytest.approx(fitted.parameters["exog.x"], rel=1e-6)

    def test_exogenous_matrix(self):
        rows = [{"a": 1.0, "b": 2.0}, {"b": 4.0, "a": 3.0}]
        np.testing.assert_array_equal(exogenous_matrix(rows, ["a", "b"], "predict"),
                                      [[1.0, 2.0], [3.0, 4.0]])
        assert exogenous_matrix(rows, [], "predict").shape == (2, 0)

    def test_none_covariate_counts_as_missing(self):
        point = Observation(0, 1.0, {"x": None, "z": 2})
        assert point.exogenous == {"z": 2.0}
        assert point.missing_exogenous(["x", "z"]) == ["x"]
        assert Observation(1, 1.0, {"x": float("inf")}).missing_exogenous(["x"]) == ["x"]
        assert point.missing_exogenous([]) == []
        obs = [Observation(0, 1.0, {"x": 1.0}), Observation(1, 2.0, {"x": None}),
               Observation(2, 3.0, {"x": 2.0})]
        with pytest.raises(MissingExogenousDataError) as excinfo:
            SARIMAXModel(SARIMAXConfig(exogenous_variables=["x"])).fit(obs)
        assert excinfo.value.missing == ["x"]
        assert excinfo.value.index == 1
        with pytest.raises(MissingExogenousDataError):
            exogenous_matrix(obs, ["x"], "fit")


class TestForecastShape:
    """Tests for forecast lengths and interval behaviour."""

    @pytest.fixture
    def model(self, ar1_series, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        model.fit(observations(ar1_series))
        return model

    @pytest.mark.parametrize("horizon", [1, 5, 24])
    def test_lengths(self, model, horizon):
        forecast = model.predict(horizon)
        assert isinstance(forecast, ForecastResult)
        assert len(forecast) == horizon
        assert len(forecast.confidence_intervals) == horizon
        assert len(forecast.standard_errors) == horizon
        assert np.all(forecast.lower < forecast.upper)

    def test_zero_horizon(self, model):
        forecast = model.predict(0)
        assert len(forecast) == 0
        assert forecast.confidence_intervals == []

    @pytest.mark.parametrize("horizon", [-1, 1.5, "3"])
    def test_invalid_horizon(self, model, horizon):
        with pytest.raises(InvalidInputError):
            model.predict(horizon)

    def test_width_grows_with_horizon(self, model):
        widths = np.array([ci.width for ci in model.predict(5).confidence_intervals])
        assert np.all(np.diff(widths) >= -1e-12)
        assert widths[-1] > widths[0]

    def test_forecast_reverts_to_mean(self, model):
        forecast = model.predict(60)
        assert abs(forecast.predictions[-1]) < 0.1

    def test_confidence_level(self, model):
        wide = model.predict(3, confidence_level=0.99)
        narrow = model.predict(3, confidence_level=0.8)
        assert np.all(narrow.upper - narrow.lower < wide.upper - wide.lower)
        np.testing.assert_allclose(narrow.predictions, wide.predictions)
        assert narrow.confidence_level == 0.8
        with pytest.raises(InvalidInputError):
            model.predict(3, confidence_level=1.0)

    def test_to_frame(self, model):
        frame = model.predict(4).to_frame()
        assert list(frame.columns) == ["forecast", "std_error", "lower_95", "upper_95"]
        assert len(frame) == 4

    def test_interval_coverage(self, rng, simulate, observations):
        hits = 0
        trials = 60
        for _ in range(trials):
            y = simulate(rng, 301, ar=[0.5])
            model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
            model.fit(observations(y[:300]))
            interval = model.predict(1).confidence_intervals[0]
            hits += interval.lower <= y[300] <= interval.upper
        assert hits / trials >= 0.85
