# tests/test_decomposition.py

"""
Tests for seasonal decomposition utilities, using statsmodels'
additive decomposition as the reference.
"""

import numpy as np
import pandas as pd
import pytest
from statsmodels.tsa.seasonal import seasonal_decompose as sm_seasonal_decompose

from sarimax_engine.core.exceptions import InvalidInputError
from sarimax_engine.models.time_series.decomposition import (
    centered_moving_average, find_seasonal_peaks, seasonal_decompose, seasonal_strength
)


class TestSeasonalDecompose:
    """Tests for the additive decomposition."""

    @pytest.mark.parametrize("period", [4, 7, 12])
    def test_against_statsmodels(self, seasonal_series, period):
        values = seasonal_series.to_numpy()
        result = seasonal_decompose(values, period)
        expected = sm_seasonal_decompose(values, model="additive", period=period)
        np.testing.assert_allclose(result.trend, expected.trend, equal_nan=True)
        np.testing.assert_allclose(result.seasonal, expected.seasonal)
        np.testing.assert_allclose(result.residual, expected.resid, equal_nan=True)

    def test_components_add_up(self, seasonal_series):
        result = seasonal_decompose(seasonal_series, 12)
        defined = ~np.isnan(result.trend)
        np.testing.assert_allclose(
            (result.trend + result.seasonal + result.residual)[defined],
            result.observed[defined]
        )
        assert np.sum(np.isnan(result.trend)) == 12
        assert result.seasonal_pattern.sum() == pytest.approx(0.0, abs=1e-10)

    def test_pattern(self):
        x = [10, 20, 30, 40, 12, 22, 32, 42, 14, 24, 34, 44]
        result = seasonal_decompose(x, 4)
        np.testing.assert_allclose(result.seasonal_pattern, [-14.25, -4.75, 4.75, 14.25])

    def test_to_frame_keeps_index(self, seasonal_series):
        frame = seasonal_decompose(seasonal_series, 12).to_frame()
        assert list(frame.columns) == ["observed", "trend", "seasonal", "residual"]
        assert frame.index.equals(seasonal_series.index)

    def test_odd_period_moving_average(self):
        trend = centered_moving_average(np.arange(7.0), 3)
        np.testing.assert_allclose(trend, [np.nan, 1, 2, 3, 4, 5, np.nan])

    @pytest.mark.parametrize("period", [1, 0, 2.5])
    def test_invalid_period(self, period):
        with pytest.raises(InvalidInputError):
            seasonal_decompose(np.arange(20.0), period)

    def test_too_short(self):
        with pytest.raises(InvalidInputError):
            seasonal_decompose(np.arange(20.0), 12)


class TestSeasonality:
    """Tests for seasonal strength and periodogram peaks."""

    def test_strength(self, rng, seasonal_series):
        assert seasonal_strength(seasonal_series, 12) > 0.9
        assert seasonal_strength(rng.standard_normal(240), 12) < 0.3
        assert seasonal_strength(np.full(24, 3.0), 12) == 0.0

    def test_peaks(self, rng):
        t = np.arange(240)
        x = 10 * np.sin(2 * np.pi * t / 12) + 4 * np.sin(2 * np.pi * t / 30) + rng.normal(0, 1, 240)
        peaks = find_seasonal_peaks(x)
        assert peaks[0].period == 12
        assert peaks[0].strength == pytest.approx(1.0)
        assert 30 in [peak.period for peak in peaks]
        assert all(a.strength >= b.strength for a, b in zip(peaks, peaks[1:]))

    def test_peak_filters(self, rng):
        t = np.arange(240)
        x = 10 * np.sin(2 * np.pi * t / 12) + 4 * np.sin(2 * np.pi * t / 30) + rng.normal(0, 1, 240)
        assert [p.period for p in find_seasonal_peaks(x, max_period=20)][0] == 12
        assert all(p.period <= 20 for p in find_seasonal_peaks(x, max_period=20))
        assert len(find_seasonal_peaks(x, max_peaks=1)) == 1

    def test_constant_series_has_no_peaks(self):
        assert find_seasonal_peaks(np.ones(16)) == []

    def test_pandas_input(self, seasonal_series):
        assert isinstance(seasonal_series, pd.Series)
        assert seasonal_strength(seasonal_series, 12) == pytest.approx(
            seasonal_strength(seasonal_series.to_numpy(), 12))
