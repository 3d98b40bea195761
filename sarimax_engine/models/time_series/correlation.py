# sarimax_engine/models/time_series/correlation.py
"""
Autocorrelation and partial autocorrelation functions.

``acf`` normalizes the lag-h autocovariance by n (the biased estimator), so
the sequence is positive semi-definite and agrees with
``statsmodels.tsa.stattools.acf(adjusted=False)``. ``pacf`` applies the
Durbin-Levinson recursion to that sequence.
"""

import logging
from typing import Sequence, Union

import numpy as np
from numba import jit

from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.utils.statistics import as_series

logger = logging.getLogger("sarimax_engine.models.time_series.correlation")


@jit(nopython=True, cache=True)
def _acf_numba(x: np.ndarray, nlags: int) -> np.ndarray:
    """Autocorrelations of lags 0..nlags around the sample mean."""
    n = len(x)
    x_centered = x - np.mean(x)
    variance = np.sum(x_centered ** 2) / n

    acf = np.zeros(nlags + 1)
    acf[0] = 1.0
    for lag in range(1, nlags + 1):
        cov = 0.0
        for t in range(lag, n):
            cov += x_centered[t] * x_centered[t - lag]
        acf[lag] = (cov / n) / variance
    return acf


@jit(nopython=True, cache=True)
def _durbin_levinson(acf: np.ndarray) -> np.ndarray:
    """Partial autocorrelations from an autocorrelation sequence."""
    nlags = len(acf) - 1
    pacf = np.zeros(nlags + 1)
    pacf[0] = 1.0
    if nlags == 0:
        return pacf

    phi = np.zeros(nlags + 1)
    previous = np.zeros(nlags + 1)
    phi[1] = acf[1]
    pacf[1] = acf[1]
    error = 1.0 - acf[1] * acf[1]

    for k in range(2, nlags + 1):
        for j in range(1, k):
            previous[j] = phi[j]
        numerator = acf[k]
        for j in range(1, k):
            numerator -= previous[j] * acf[k - j]
        if error <= 1e-15:
            # Perfectly predictable: higher partial correlations vanish
            break
        reflection = numerator / error
        phi[k] = reflection
        for j in range(1, k):
            phi[j] = previous[j] - reflection * previous[k - j]
        pacf[k] = reflection
        error *= 1.0 - reflection * reflection

    return pacf


def _validate(series: Union[Sequence[float], np.ndarray], max_lag: int) -> np.ndarray:
    if int(max_lag) != max_lag or max_lag < 0:
        raise_invalid_input("max_lag must be a non-negative integer",
                            data_name="max_lag", issue=f"max_lag={max_lag}")
    x = as_series(series, "series", min_length=int(max_lag) + 1)
    if np.all(x == x[0]):
        raise_invalid_input("Autocorrelation of a constant series is undefined",
                            data_name="series", issue="Zero variance")
    return x


def acf(series: Union[Sequence[float], np.ndarray], max_lag: int) -> np.ndarray:
    """
    Sample autocorrelation function.

    Args:
        series: Input series
        max_lag: Largest lag; the series must hold more than ``max_lag`` points

    Returns:
        Autocorrelations for lags 0..max_lag (element 0 is 1)

    Raises:
        InvalidInputError: If the series is empty, too short or constant
    """
    x = _validate(series, max_lag)
    return _acf_numba(x, int(max_lag))


def pacf(series: Union[Sequence[float], np.ndarray], max_lag: int) -> np.ndarray:
    """
    Sample partial autocorrelation function (Durbin-Levinson).

    Args:
        series: Input series
        max_lag: Largest lag; the series must hold more than ``max_lag`` points

    Returns:
        Partial autocorrelations for lags 0..max_lag (element 0 is 1)

    Raises:
        InvalidInputError: If the series is empty, too short or constant
    """
    x = _validate(series, max_lag)
    return _durbin_levinson(_acf_numba(x, int(max_lag)))
