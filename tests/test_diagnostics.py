# tests/test_diagnostics.py

"""
Tests for model diagnostics and plot-ready series.

Residual tests are compared with statsmodels where it computes the same
statistic; information criteria are checked against their closed forms.
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf as sm_acf

from sarimax_engine.core.exceptions import InvalidInputError
from sarimax_engine.models.time_series.diagnostics import (
    DiagnosticResult, box_pierce, default_lags, information_criteria, jarque_bera,
    ljung_box, residual_statistics, white_noise_test
)
from sarimax_engine.models.time_series.plots import (
    acf_plot, cumulative_periodogram_plot, diagnostic_plots, forecast_plot,
    histogram_plot, pacf_plot, plot_lags, qq_plot, residual_plot
)
from sarimax_engine.models.time_series.sarimax import SARIMAXConfig, SARIMAXModel


class TestInformationCriteria:
    """Tests for the model-selection criteria."""

    def test_closed_forms(self, rng):
        e = rng.standard_normal(100)
        ll, k, n = -140.0, 3, 100
        ic = information_criteria(ll, e, k)
        assert ic.aic == pytest.approx(-2 * ll + 2 * k)
        assert ic.bic == pytest.approx(-2 * ll + k * np.log(n))
        assert ic.hqic == pytest.approx(-2 * ll + 2 * k * np.log(np.log(n)))
        assert ic.aicc == pytest.approx(ic.aic + 2 * k * (k + 1) / (n - k - 1))
        var = np.var(e)
        assert ic.mallows_cp == pytest.approx(np.sum(e ** 2) / var - n + 2 * k)
        assert ic.fpe == pytest.approx(var * (n + k) / (n - k))
        assert ic.nobs == n and ic.nparams == k

    def test_small_sample_limits(self):
        ic = information_criteria(-3.0, [0.5, -0.2, 0.1], 2)
        assert ic.aicc == np.inf
        assert np.isfinite(ic.fpe)
        assert information_criteria(-3.0, [0.5, -0.2, 0.1], 3).fpe == np.inf
        assert np.isnan(information_criteria(-1.0, [0.3], 0).hqic)

    def test_zero_residual_variance(self):
        ic = information_criteria(10.0, [0.0, 0.0, 0.0, 0.0], 1)
        assert np.isnan(ic.mallows_cp)

    def test_non_finite_log_likelihood(self):
        with pytest.raises(InvalidInputError):
            information_criteria(np.nan, [1.0, 2.0], 1)

    def test_to_dict(self, rng):
        d = information_criteria(-10.0, rng.standard_normal(20), 1).to_dict()
        assert set(d) == {"aic", "bic", "hqic", "aicc", "mallows_cp", "fpe",
                          "log_likelihood", "nobs", "nparams"}


class TestResidualTests:
    """Tests for Ljung-Box, Box-Pierce, Jarque-Bera and the white-noise test."""

    def test_default_lags(self):
        assert default_lags(50) == 10
        assert default_lags(500) == 20
        assert default_lags(3) == 1

    def test_ljung_box_closed_form(self, rng):
        e = rng.standard_normal(30)
        r = sm_acf(e, nlags=6, adjusted=False, fft=False)[1:]
        h = np.arange(1, 7)
        expected = 30 * 32 * np.sum(r ** 2 / (30 - h - 1))
        result = ljung_box(e, lags=6)
        assert result.test_statistic == pytest.approx(expected, rel=1e-10)
        assert result.p_value == pytest.approx(stats.chi2.sf(expected, 6), rel=1e-6)

    def test_ljung_box_exceeds_statsmodels_variant(self, ar1_series):
        # statsmodels divides by n - h, one more than n - h - 1
        result = ljung_box(ar1_series, lags=10)
        expected = acorr_ljungbox(ar1_series, lags=[10], boxpierce=True)
        assert result.test_statistic > expected["lb_stat"].iloc[0]
        assert result.test_statistic == pytest.approx(expected["lb_stat"].iloc[0], rel=0.05)

    def test_box_pierce_against_statsmodels(self, ar1_series):
        expected = acorr_ljungbox(ar1_series, lags=[10], boxpierce=True)
        bp = box_pierce(ar1_series, lags=10)
        assert bp.test_statistic == pytest.approx(expected["bp_stat"].iloc[0], rel=1e-8)

    def test_ljung_box_needs_two_more_points_than_lags(self):
        e = np.array([0.5, -1.0, 2.0, 0.3, -0.7])
        assert np.isfinite(ljung_box(e, lags=3).test_statistic)
        with pytest.raises(InvalidInputError):
            ljung_box(e, lags=4)

    def test_ljung_box_degrees_of_freedom(self, white_noise):
        result = ljung_box(white_noise, lags=10, nparams=2)
        assert result.degrees_of_freedom == 8
        assert result.lags == 10
        assert ljung_box(white_noise, lags=3, nparams=5).degrees_of_freedom == 1
        assert set(result.critical_values) == {"1%", "5%", "10%"}

    def test_ljung_box_detects_autocorrelation(self, ar1_series):
        result = ljung_box(ar1_series)
        assert result.reject_null
        assert result.conclusion.startswith("Reject")


    def test_jarque_bera_against_scipy(self, rng):
        e = rng.standard_t(5, size=800)
        result = jarque_bera(e)
        expected = stats.jarque_bera(e)
        assert result.test_statistic == pytest.approx(expected.statistic, rel=1e-10)
        assert result.p_value == pytest.approx(expected.pvalue, rel=1e-6, abs=1e-300)
        assert result.degrees_of_freedom == 2

    def test_white_noise_test(self, white_noise):
        result = white_noise_test(white_noise)
        assert 0.0 <= result.p_value <= 1.0
        t = np.arange(400)
        periodic = np.sin(2 * np.pi * t / 8) + 0.1 * white_noise
        assert white_noise_test(periodic).p_value < 0.01
        with pytest.raises(InvalidInputError):
            white_noise_test(np.ones(10))

    def test_residual_statistics(self, white_noise):
        stats_ = residual_statistics(white_noise, nparams=1)
        assert stats_.mean == pytest.approx(np.mean(white_noise))
        assert stats_.variance == pytest.approx(np.var(white_noise))
        assert stats_.ljung_box.degrees_of_freedom == 19
        assert stats_.durbin_watson == pytest.approx(2.0, abs=0.3)

    def test_str(self, white_noise):
        text = str(ljung_box(white_noise))
        assert "Ljung-Box" in text and "P-value" in text


class TestPlots:
    """Tests for plot-ready series."""

    def test_plot_lags(self):
        assert plot_lags(400) == 40
        assert plot_lags(100) == 25
        assert plot_lags(3) == 0

    def test_residual_plot(self):
        data = residual_plot([1.0, -1.0, 1.0, -1.0], timestamps=["a", "b", "c", "d"])
        assert data.sigma == pytest.approx(1.0)
        assert data.bands["+2σ"] == pytest.approx(2.0)
        assert data.points[0] == ("a", 1.0)

    def test_correlograms(self, white_noise):
        acf_data = acf_plot(white_noise)
        assert acf_data.lags[0] == 0 and acf_data.values[0] == 1.0
        assert len(acf_data.lags) == 41
        assert acf_data.bound == pytest.approx(1.959963984540054 / np.sqrt(400))
        assert 0 not in acf_data.significant_lags()
        pacf_data = pacf_plot(white_noise, max_lag=10)
        assert list(pacf_data.lags) == list(range(1, 11))
        assert len(pacf_data.values) == 10

    def test_qq_plot(self, white_noise):
        data = qq_plot(white_noise)
        assert np.all(np.diff(data.sample) >= 0)
        assert data.theoretical[0] == pytest.approx(stats.norm.ppf(0.5 / 400))
        assert np.corrcoef(data.theoretical, data.sample)[0, 1] > 0.99

    def test_histogram(self, white_noise):
        data = histogram_plot(white_noise, bins=20)
        assert len(data.edges) == 21
        assert np.sum(data.density * np.diff(data.edges)) == pytest.approx(1.0)
        assert len(data.curve_x) == 100

    def test_cumulative_periodogram(self, white_noise):
        data = cumulative_periodogram_plot(white_noise)
        assert data.cumulative[-1] == pytest.approx(1.0)
        assert np.all(np.diff(data.cumulative) >= 0)
        assert data.diagonal[-1] == 1.0

    def test_forecast_plot(self, ar1_series, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        model.fit(observations(ar1_series))
        data = forecast_plot(ar1_series, model.predict(5))
        assert data.forecast_x == tuple(range(500, 505))
        assert np.all(data.lower < data.forecast) and np.all(data.forecast < data.upper)

    def test_diagnostic_plots_need_two_points(self):
        with pytest.raises(InvalidInputError):
            diagnostic_plots([1.0])


class TestModelDiagnostics:
    """Tests for diagnostics of fitted models."""

    @pytest.fixture
    def fitted(self, ar1_series, observations):
        model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        obs = observations(ar1_series)
        model.fit(obs)
        return model, obs

    def test_result(self, fitted):
        model, obs = fitted
        result = model.get_diagnostics(obs)
        assert isinstance(result, DiagnosticResult)
        state = model.state
        np.testing.assert_allclose(result.residuals, state.effective_residuals)
        assert result.timestamps == tuple(range(1, 500))
        ic = result.model_selection
        assert ic.nobs == 499 and ic.nparams == 1
        assert ic.log_likelihood == pytest.approx(state.log_likelihood)
        assert ic.aic == pytest.approx(-2 * state.log_likelihood + 2)
        assert 0.0 <= result.residual_statistics.ljung_box.p_value <= 1.0

    def test_parameter_table(self, fitted):
        model, obs = fitted
        table = model.get_diagnostics(obs).parameter_table()
        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == ["value", "std_error", "t_stat", "p_value"]
        assert list(table.index) == ["ar.L1"]
        row = table.loc["ar.L1"]
        assert row["value"] == pytest.approx(model.parameters["ar.L1"])
        assert row["std_error"] == pytest.approx(np.sqrt(0.64 / 500), rel=0.3)
        assert row["t_stat"] == pytest.approx(row["value"] / row["std_error"])
        assert row["p_value"] < 1e-6

    def test_new_observations(self, fitted, rng, simulate, observations):
        model, _ = fitted
        fresh = observations(simulate(rng, 200, ar=[0.6]))
        result = model.get_diagnostics(fresh)
        assert len(result.residuals) == 199
        assert model.state.values.shape == (500,)

    def test_summary(self, fitted):
        model, obs = fitted
        text = model.get_diagnostics(obs).summary()
        assert "AIC" in text and "Jarque-Bera" in text and "ar.L1" in text

    def test_white_noise_mostly_passes(self, observations):
        passes = 0
        for seed in range(20):
            e = np.random.default_rng(seed).standard_normal(300)
            obs = observations(e)
            model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
            model.fit(obs)
            lb = model.get_diagnostics(obs).residual_statistics.ljung_box
            assert lb.degrees_of_freedom == 19
            passes += lb.p_value > 0.05
        assert passes >= 16

    def test_constant_residuals_raise(self, observations):
        n = 30
        obs = observations(np.full(n, 2.0), exog={"c": np.ones(n)})
        model = SARIMAXModel(SARIMAXConfig(exogenous_variables=["c"]))
        model.fit(obs)
        with pytest.raises(InvalidInputError):
            model.get_diagnostics(obs)
