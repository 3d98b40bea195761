# sarimax_engine/utils/statistics.py
"""
Statistics primitives.

Pure, stateless numeric functions shared by estimation, diagnostics and
backtesting: sample moments, normal and chi-square distribution functions,
the periodogram and the Durbin-Watson statistic. Every function accepts any
non-empty finite sequence; empty, non-finite or degenerate input raises
``InvalidInputError`` instead of returning NaN.

Normalizations:

- ``variance`` is the population variance (divide by n).
- ``skewness`` is the third standardized central moment m3 / m2**1.5.
- ``kurtosis`` is the *excess* kurtosis m4 / m2**2 - 3, so that the
  Jarque-Bera statistic n * (skew**2 / 6 + kurt**2 / 24) is zero in
  expectation for normal data.
"""

import logging
from typing import Sequence, Tuple, Union

import numpy as np
from scipy import stats

from sarimax_engine.core.exceptions import raise_invalid_input

logger = logging.getLogger("sarimax_engine.utils.statistics")

ArrayLike = Union[Sequence[float], np.ndarray]


def as_series(x: ArrayLike, name: str = "series", min_length: int = 1) -> np.ndarray:
    """
    Convert input to a 1D float array and validate it.

    Args:
        x: Input sequence
        name: Name used in error messages
        min_length: Minimum number of observations required

    Returns:
        np.ndarray: Validated 1D float64 array

    Raises:
        InvalidInputError: If the input is empty, too short, multi-dimensional
            or contains non-finite values
    """
    array = np.asarray(x, dtype=np.float64)
    if array.ndim > 1:
        array = np.squeeze(array)
    if array.ndim != 1:
        raise_invalid_input(f"{name} must be one-dimensional",
                            data_name=name, issue=f"shape {array.shape}")
    if array.size == 0:
        raise_invalid_input(f"{name} is empty", data_name=name, issue="Empty series")
    if array.size < min_length:
        raise_invalid_input(
            f"{name} is too short: {array.size} observations, at least {min_length} required",
            data_name=name,
            issue="Series too short"
        )
    if not np.all(np.isfinite(array)):
        bad = int(np.flatnonzero(~np.isfinite(array))[0])
        raise_invalid_input(f"{name} contains non-finite values",
                            data_name=name, issue="NaN or infinite value", index=bad)
    return array


def mean(x: ArrayLike) -> float:
    return float(np.mean(as_series(x)))


def variance(x: ArrayLike) -> float:
    """Population variance (divides by n)."""
    array = as_series(x)
    return float(np.mean((array - array.mean()) ** 2))


def standard_deviation(x: ArrayLike) -> float:
    return float(np.sqrt(variance(x)))


def _central_moments(x: ArrayLike, name: str) -> Tuple[float, float, float]:
    array = as_series(x, name)
    centered = array - array.mean()
    m2 = float(np.mean(centered ** 2))
    if m2 <= 0.0:
        raise_invalid_input(f"{name} has zero variance",
                            data_name=name, issue="Standardized moment undefined")
    return m2, float(np.mean(centered ** 3)), float(np.mean(centered ** 4))


def skewness(x: ArrayLike) -> float:
    """Third standardized moment.

    Raises:
        InvalidInputError: If the series is empty or constant
    """
    m2, m3, _ = _central_moments(x, "series")
    return m3 / m2 ** 1.5


def kurtosis(x: ArrayLike) -> float:
    """Excess kurtosis (fourth standardized moment minus 3).

    Raises:
        InvalidInputError: If the series is empty or constant
    """
    m2, _, m4 = _central_moments(x, "series")
    return m4 / m2 ** 2 - 3.0


def quantile(x: ArrayLike, q: float) -> float:
    """Sample quantile with linear interpolation between order statistics."""
    if not 0.0 <= q <= 1.0:
        raise_invalid_input("Quantile level must lie in [0, 1]",
                            data_name="q", issue=f"q={q}")
    return float(np.quantile(as_series(x), q))


def normal_cdf(x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Standard normal cumulative distribution function."""
    result = stats.norm.cdf(x)
    return float(result) if np.ndim(result) == 0 else result


def normal_inverse_cdf(p: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Standard normal quantile function.

    Raises:
        InvalidInputError: If any probability lies outside the open interval (0, 1)
    """
    p_array = np.asarray(p, dtype=np.float64)
    if np.any((p_array <= 0.0) | (p_array >= 1.0)) or not np.all(np.isfinite(p_array)):
        raise_invalid_input("Probabilities must lie strictly between 0 and 1",
                            data_name="p", issue=f"p={p}")
    result = stats.norm.ppf(p_array)
    return float(result) if np.ndim(result) == 0 else result


def _check_dof(degrees_of_freedom: float) -> None:
    if not degrees_of_freedom > 0:
        raise_invalid_input("Degrees of freedom must be positive",
                            data_name="degrees_of_freedom",
                            issue=f"degrees_of_freedom={degrees_of_freedom}")


def chi_square_cdf(x: float, degrees_of_freedom: float) -> float:
    """Chi-square cumulative distribution function."""
    _check_dof(degrees_of_freedom)
    return float(stats.chi2.cdf(x, degrees_of_freedom))


def chi_square_survival(x: float, degrees_of_freedom: float) -> float:
    """Upper tail probability 1 - CDF, computed without cancellation."""
    _check_dof(degrees_of_freedom)
    return float(stats.chi2.sf(x, degrees_of_freedom))


def chi_square_inverse_cdf(p: float, degrees_of_freedom: float) -> float:
    _check_dof(degrees_of_freedom)
    if not 0.0 < p < 1.0:
        raise_invalid_input("Probability must lie strictly between 0 and 1",
                            data_name="p", issue=f"p={p}")
    return float(stats.chi2.ppf(p, degrees_of_freedom))


def periodogram(x: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Raw periodogram of the demeaned series at the Fourier frequencies.

    The zero frequency is excluded, so for n observations the result holds
    frequencies k/n for k = 1..n//2.

    Args:
        x: Input series (at least 2 observations)

    Returns:
        Tuple of (frequencies in cycles per observation, power)
    """
    array = as_series(x, min_length=2)
    n = len(array)
    spectrum = np.fft.rfft(array - array.mean())
    power = (np.abs(spectrum) ** 2) / n
    frequencies = np.arange(len(spectrum)) / n
    return frequencies[1:], power[1:]


def durbin_watson(residuals: ArrayLike) -> float:
    """
    Durbin-Watson statistic sum((e_t - e_{t-1})**2) / sum(e_t**2).

    Values near 2 indicate no first-order autocorrelation.
    """
    array = as_series(residuals, "residuals", min_length=2)
    denominator = float(np.sum(array ** 2))
    if denominator <= 0.0:
        raise_invalid_input("Residuals are identically zero",
                            data_name="residuals", issue="Statistic undefined")
    return float(np.sum(np.diff(array) ** 2)) / denominator
