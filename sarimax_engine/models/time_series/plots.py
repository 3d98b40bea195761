# sarimax_engine/models/time_series/plots.py
"""
Plot-ready series for SARIMAX diagnostics.

Nothing here renders. Every function returns a frozen dataclass with the
coordinates, bounds and reference lines a charting layer needs:

- residual_plot: residuals against time with ±1σ and ±2σ bands
- acf_plot / pacf_plot: correlogram bars with ±z/√n confidence bounds
- qq_plot: sorted residuals against normal quantiles at (i + 0.5)/n
- histogram_plot: residual histogram with a fitted normal density
- cumulative_periodogram_plot: normalized cumulative periodogram and diagonal
- forecast_plot: history, point forecasts and interval bounds

``diagnostic_plots`` bundles the residual-based series for ``DiagnosticResult``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from sarimax_engine.core.config import get_diagnostics_config
from sarimax_engine.models.time_series.correlation import acf, pacf
from sarimax_engine.models.time_series.forecast import ForecastResult
from sarimax_engine.utils.statistics import (
    as_series, mean, normal_inverse_cdf, periodogram, standard_deviation
)

logger = logging.getLogger("sarimax_engine.models.time_series.plots")


@dataclass(frozen=True)
class ResidualPlotData:
    """Residuals against time.

    Attributes:
        x: Timestamps (or positions) of the residuals
        residuals: Residual values
        sigma: Standard deviation of the residuals
        bands: Horizontal reference levels keyed by label ("-2σ" ... "+2σ")
    """
    x: Tuple[Any, ...]
    residuals: np.ndarray
    sigma: float
    bands: Dict[str, float]

    @property
    def points(self) -> list:
        """(timestamp, residual) pairs."""
        return list(zip(self.x, self.residuals.tolist()))


@dataclass(frozen=True)
class CorrelogramData:
    """ACF or PACF bars with a symmetric confidence bound."""
    kind: str
    lags: np.ndarray
    values: np.ndarray
    bound: float

    @property
    def lower(self) -> float:
        return -self.bound

    @property
    def upper(self) -> float:
        return self.bound

    def significant_lags(self) -> np.ndarray:
        """Lags (other than 0) whose bar crosses the bound."""
        mask = (np.abs(self.values) > self.bound) & (self.lags > 0)
        return self.lags[mask]


@dataclass(frozen=True)
class QQPlotData:
    """Normal Q-Q points and the reference line mean + std * q."""
    theoretical: np.ndarray
    sample: np.ndarray
    line_x: np.ndarray
    line_y: np.ndarray


@dataclass(frozen=True)
class HistogramData:
    """Residual histogram on the density scale with a normal overlay."""
    edges: np.ndarray
    density: np.ndarray
    curve_x: np.ndarray
    curve_y: np.ndarray


@dataclass(frozen=True)
class CumulativePeriodogramData:
    frequencies: np.ndarray
    cumulative: np.ndarray
    diagonal: np.ndarray


@dataclass(frozen=True)
class ForecastPlotData:
    """History followed by forecasts and their interval bounds."""
    history_x: Tuple[Any, ...]
    history: np.ndarray
    forecast_x: Tuple[Any, ...]
    forecast: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    confidence_level: float


@dataclass(frozen=True)
class DiagnosticPlots:
    """All residual-based plot series of a diagnostic run."""
    residual: ResidualPlotData
    acf: CorrelogramData
    pacf: CorrelogramData
    qq: QQPlotData
    histogram: HistogramData
    cumulative_periodogram: CumulativePeriodogramData


def plot_lags(n: int) -> int:
    """Number of correlogram lags, min(max_plot_lags, n // plot_lag_divisor)."""
    config = get_diagnostics_config()
    return max(0, min(config.max_plot_lags, n // config.plot_lag_divisor, n - 1))


def _confidence_bound(n: int, confidence_level: float) -> float:
    return float(normal_inverse_cdf(0.5 + confidence_level / 2.0)) / np.sqrt(n)


def residual_plot(residuals: Sequence[float],
                  timestamps: Optional[Sequence[Any]] = None) -> ResidualPlotData:
    """Residuals against time with reference bands at 0, ±1σ and ±2σ."""
    e = as_series(residuals, "residuals")
    x = tuple(timestamps) if timestamps is not None else tuple(range(len(e)))
    sigma = standard_deviation(e)
    bands = {"-2σ": -2 * sigma, "-1σ": -sigma, "0": 0.0, "+1σ": sigma, "+2σ": 2 * sigma}
    return ResidualPlotData(x=x, residuals=e, sigma=sigma, bands=bands)


def acf_plot(residuals: Sequence[float],
             max_lag: Optional[int] = None,
             confidence_level: Optional[float] = None) -> CorrelogramData:
    """
    Autocorrelation bars for lags 0..L.

    Args:
        residuals: Residual series
        max_lag: Largest lag L; defaults to ``plot_lags(n)``
        confidence_level: Level of the ±z/√n bound; defaults to the
            ``diagnostics.confidence_level`` setting
    """
    e = as_series(residuals, "residuals")
    n = len(e)
    max_lag = plot_lags(n) if max_lag is None else max_lag
    level = get_diagnostics_config().confidence_level if confidence_level is None else confidence_level
    return CorrelogramData(
        kind="acf",
        lags=np.arange(max_lag + 1),
        values=acf(e, max_lag),
        bound=_confidence_bound(n, level)
    )


def pacf_plot(residuals: Sequence[float],
              max_lag: Optional[int] = None,
              confidence_level: Optional[float] = None) -> CorrelogramData:
    """Partial autocorrelation bars for lags 1..L (lag 0 is omitted)."""
    e = as_series(residuals, "residuals")
    n = len(e)
    max_lag = plot_lags(n) if max_lag is None else max_lag
    level = get_diagnostics_config().confidence_level if confidence_level is None else confidence_level
    return CorrelogramData(
        kind="pacf",
        lags=np.arange(1, max_lag + 1),
        values=pacf(e, max_lag)[1:],
        bound=_confidence_bound(n, level)
    )


def qq_plot(residuals: Sequence[float]) -> QQPlotData:
    e = as_series(residuals, "residuals")
    n = len(e)
    theoretical = np.asarray(normal_inverse_cdf((np.arange(n) + 0.5) / n), dtype=np.float64)
    line_x = np.array([theoretical[0], theoretical[-1]])
    line_y = mean(e) + standard_deviation(e) * line_x
    return QQPlotData(theoretical=theoretical, sample=np.sort(e), line_x=line_x, line_y=line_y)


def histogram_plot(residuals: Sequence[float], bins: int = 30,
                   curve_points: int = 100) -> HistogramData:
    """Histogram (density scale) with the normal density of matching mean and std over ±4σ."""
    e = as_series(residuals, "residuals")
    density, edges = np.histogram(e, bins=bins, density=True)
    mu, sigma = mean(e), standard_deviation(e)
    if sigma > 0:
        curve_x = np.linspace(mu - 4 * sigma, mu + 4 * sigma, curve_points)
        curve_y = stats.norm.pdf(curve_x, loc=mu, scale=sigma)
    else:
        curve_x = np.zeros(0)
        curve_y = np.zeros(0)
    return HistogramData(edges=edges, density=density, curve_x=curve_x, curve_y=curve_y)


def cumulative_periodogram_plot(residuals: Sequence[float]) -> CumulativePeriodogramData:
    """Normalized cumulative periodogram; white noise stays close to the diagonal."""
    frequencies, power = periodogram(residuals)
    total = power.sum()
    cumulative = np.cumsum(power) / total if total > 0 else np.zeros_like(power)
    m = len(power)
    return CumulativePeriodogramData(
        frequencies=frequencies,
        cumulative=cumulative,
        diagonal=np.arange(1, m + 1) / m
    )


def forecast_plot(history: Sequence[float],
                  forecast: ForecastResult,
                  history_x: Optional[Sequence[Any]] = None,
                  forecast_x: Optional[Sequence[Any]] = None) -> ForecastPlotData:
    """
    History, forecasts and interval bounds on one axis.

    Without explicit coordinates, history is placed at 0..n-1 and the
    forecast at n..n+h-1.
    """
    y = as_series(history, "history")
    n, h = len(y), len(forecast)
    if history_x is None:
        history_x = range(n)
    if forecast_x is None:
        forecast_x = forecast.index if forecast.index is not None else range(n, n + h)
    return ForecastPlotData(
        history_x=tuple(history_x),
        history=y,
        forecast_x=tuple(forecast_x),
        forecast=np.asarray(forecast.predictions, dtype=np.float64),
        lower=forecast.lower,
        upper=forecast.upper,
        confidence_level=forecast.confidence_level
    )


def diagnostic_plots(residuals: Sequence[float],
                     timestamps: Optional[Sequence[Any]] = None,
                     confidence_level: Optional[float] = None) -> DiagnosticPlots:
    """Every residual-based plot series."""
    e = as_series(residuals, "residuals", min_length=2)
    return DiagnosticPlots(
        residual=residual_plot(e, timestamps),
        acf=acf_plot(e, confidence_level=confidence_level),
        pacf=pacf_plot(e, confidence_level=confidence_level),
        qq=qq_plot(e),
        histogram=histogram_plot(e),
        cumulative_periodogram=cumulative_periodogram_plot(e)
    )
