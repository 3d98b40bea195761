# sarimax_engine/models/time_series/decomposition.py
"""
Seasonal decomposition utilities.

These functions do not need a fitted model. ``seasonal_decompose`` splits a
series additively into trend, seasonal and residual parts:

- trend: centered moving average over one period. An even period uses the
  2 x period average (half weights at both ends) so the window stays
  centered. The first and last half-window points have no trend (NaN).
- seasonal: the average detrended value of each phase, shifted so the
  phase averages sum to zero, repeated over the series.
- residual: original - trend - seasonal.

``seasonal_strength`` and ``find_seasonal_peaks`` summarize how pronounced a
seasonal pattern is and which periods the periodogram points at.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.utils.statistics import as_series, periodogram

logger = logging.getLogger("sarimax_engine.models.time_series.decomposition")

SeriesInput = Union[Sequence[float], np.ndarray, pd.Series]


@dataclass(frozen=True)
class DecompositionResult:
    """Additive decomposition of a series.

    Attributes:
        observed: Original series
        trend: Centered moving average (NaN at the edges)
        seasonal: Zero-mean periodic component
        residual: observed - trend - seasonal (NaN where the trend is)
        period: Seasonal period
        index: Index of the original series, if it was a pandas Series
    """
    observed: np.ndarray
    trend: np.ndarray
    seasonal: np.ndarray
    residual: np.ndarray
    period: int
    index: Optional[pd.Index] = None

    @property
    def seasonal_pattern(self) -> np.ndarray:
        """One period of the seasonal component, starting at the first observation."""
        return self.seasonal[:self.period]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "observed": self.observed,
                "trend": self.trend,
                "seasonal": self.seasonal,
                "residual": self.residual,
            },
            index=self.index
        )


@dataclass(frozen=True)
class SeasonalPeak:
    """A candidate seasonal period and its power relative to the strongest peak."""
    period: int
    strength: float


def _values(series: SeriesInput, min_length: int = 1) -> Any:
    index = series.index if isinstance(series, pd.Series) else None
    values = series.to_numpy(dtype=np.float64) if isinstance(series, pd.Series) else series
    return as_series(values, "series", min_length=min_length), index


def _check_period(period: Any) -> int:
    if isinstance(period, bool) or int(period) != period or period < 2:
        raise_invalid_input("Seasonal period must be an integer of at least 2",
                            data_name="period", issue=f"period={period}")
    return int(period)


def centered_moving_average(x: np.ndarray, period: int) -> np.ndarray:
    """Centered moving average over one period, NaN where the window is incomplete."""
    if period % 2:
        weights = np.full(period, 1.0 / period)
    else:
        weights = np.full(period + 1, 1.0 / period)
        weights[[0, -1]] = 0.5 / period
    half = len(weights) // 2
    trend = np.full(len(x), np.nan)
    trend[half:len(x) - half] = np.convolve(x, weights, mode="valid")
    return trend


def seasonal_decompose(series: SeriesInput, period: int) -> DecompositionResult:
    """
    Additive seasonal decomposition.

    Args:
        series: Series to decompose (at least two full periods)
        period: Seasonal period

    Returns:
        DecompositionResult: Trend, seasonal and residual components

    Raises:
        InvalidInputError: If the period is below 2 or the series holds fewer
            than two full periods

    Examples:
        >>> x = [10, 20, 30, 40, 12, 22, 32, 42, 14, 24, 34, 44]
        >>> result = seasonal_decompose(x, period=4)
        >>> np.round(result.seasonal_pattern, 2)
        array([-14.25,  -4.75,   4.75,  14.25])
    """
    period = _check_period(period)
    x, index = _values(series)
    if len(x) < 2 * period:
        raise_invalid_input(
            f"Series of length {len(x)} holds fewer than two full periods of {period}",
            data_name="series", issue="Series too short"
        )

    trend = centered_moving_average(x, period)
    detrended = x - trend
    phase_means = np.array([np.nanmean(detrended[phase::period]) for phase in range(period)])
    phase_means -= phase_means.mean()
    seasonal = np.tile(phase_means, len(x) // period + 1)[:len(x)]
    residual = x - trend - seasonal

    return DecompositionResult(observed=x, trend=trend, seasonal=seasonal,
                               residual=residual, period=period, index=index)


def seasonal_strength(series: SeriesInput, period: int) -> float:
    """
    Share of the non-trend variance explained by the seasonal component.

    var(seasonal) / (var(seasonal) + var(residual)), computed where the trend
    is defined; 0 for a series with neither.
    """
    result = seasonal_decompose(series, period)
    defined = ~np.isnan(result.residual)
    seasonal_var = float(np.var(result.seasonal[defined]))
    residual_var = float(np.var(result.residual[defined]))
    total = seasonal_var + residual_var
    return seasonal_var / total if total > 0 else 0.0


def find_seasonal_peaks(series: SeriesInput,
                        max_period: Optional[int] = None,
                        max_peaks: int = 3,
                        min_strength: float = 0.1) -> List[SeasonalPeak]:
    """
    Candidate seasonal periods from local maxima of the periodogram.

    Args:
        series: Input series (at least 4 observations)
        max_period: Discard peaks with a longer period
        max_peaks: Number of peaks returned
        min_strength: Discard peaks whose power is below this share of the
            strongest periodogram ordinate

    Returns:
        Peaks sorted by decreasing strength
    """
    x, _ = _values(series, min_length=4)
    frequencies, power = periodogram(x)
    top = power.max()
    if top <= 0:
        return []

    peaks = []
    for i in range(1, len(power) - 1):
        if power[i] > power[i - 1] and power[i] > power[i + 1]:
            period = int(round(1.0 / frequencies[i]))
            if max_period is not None and period > max_period:
                continue
            strength = float(power[i] / top)
            if strength > min_strength:
                peaks.append(SeasonalPeak(period=period, strength=strength))

    peaks.sort(key=lambda peak: peak.strength, reverse=True)
    logger.debug(f"Found {len(peaks)} periodogram peaks")
    return peaks[:max_peaks]
