"""
Numba-accelerated core functions for SARIMAX models.

This module holds the performance-critical loops: regular and seasonal
differencing, application of a differencing polynomial, and the one-step
SARIMAX recursion that produces in-sample predictions, residuals and
forecast paths. The recursion is written against plain arrays so that it can
be compiled in nopython mode; the Python layer in ``recursion.py`` assembles
those arrays from the named parameter blocks.
"""

import logging

import numpy as np
from numba import jit

logger = logging.getLogger("sarimax_engine.models.time_series._numba_core")


@jit(nopython=True, cache=True)
def seasonal_difference(x: np.ndarray, period: int, d: int = 1) -> np.ndarray:
    """
    Apply ``x[t] - x[t - period]`` ``d`` times.

    Args:
        x: Input series
        period: Seasonal period (1 gives ordinary differencing)
        d: Number of times the difference is applied

    Returns:
        np.ndarray: Differenced series of length len(x) - d * period
    """
    result = x.copy()

    for _ in range(d):
        temp = np.zeros(len(result) - period)
        for i in range(len(temp)):
            temp[i] = result[i + period] - result[i]
        result = temp

    return result


@jit(nopython=True, cache=True)
def difference(x: np.ndarray, d: int = 1) -> np.ndarray:
    """Apply ``x[t] - x[t - 1]`` ``d`` times."""
    return seasonal_difference(x, 1, d)


@jit(nopython=True, cache=True)
def _apply_polynomial(values: np.ndarray, t: int, poly: np.ndarray, length: int) -> float:
    # sum_k poly[k] * values[t - k]
    total = 0.0
    for k in range(length):
        total += poly[k] * values[t - k]
    return total


@jit(nopython=True, cache=True)
def sarimax_recursion(values: np.ndarray,
                      residuals: np.ndarray,
                      exog: np.ndarray,
                      n_obs: int,
                      start: int,
                      warmup: int,
                      regular_poly: np.ndarray,
                      joint_poly: np.ndarray,
                      seasonal_polys: np.ndarray,
                      seasonal_poly_lengths: np.ndarray,
                      seasonal_means: np.ndarray,
                      seasonal_stds: np.ndarray,
                      ar: np.ndarray,
                      ma: np.ndarray,
                      periods: np.ndarray,
                      seasonal_ar: np.ndarray,
                      seasonal_ar_orders: np.ndarray,
                      seasonal_ma: np.ndarray,
                      seasonal_ma_orders: np.ndarray,
                      beta: np.ndarray,
                      shocks: np.ndarray) -> np.ndarray:
    """
    One-step SARIMAX recursion, in place over ``values`` and ``residuals``.

    For each t in [start, len(values)) the prediction is

        integration term of the joint differencing polynomial
        + non-seasonal AR terms on the regular-differenced series
        + non-seasonal MA terms on past residuals
        + per seasonal component: AR terms on the standardized seasonal
          working series and MA terms on past residuals (divided by the
          component sd) are summed, destandardized, and the component
          mean is added once
        + exogenous terms.

    Observed points (t < n_obs) before ``warmup`` get prediction = value and
    a zero residual; later observed points get residual = value - prediction.
    Points at or beyond ``n_obs`` are forecasts: the prediction plus
    ``shocks[t - n_obs]`` is written into ``values`` and the shock into
    ``residuals``, so later steps reference it.

    Args:
        values: Observed values followed by room for forecast steps
        residuals: Residual history, same length as ``values``
        exog: Covariates, shape (len(values), k)
        n_obs: Number of observed points in ``values``
        start: First index to process
        warmup: First observed index with a full lag history
        regular_poly: Coefficients of (1 - B)^d
        joint_poly: Coefficients of the product of all differencing operators
        seasonal_polys: Zero-padded coefficients of (1 - B^s)^D per component
        seasonal_poly_lengths: Used length of each row of ``seasonal_polys``
        seasonal_means: Mean of each seasonal working series
        seasonal_stds: Standard deviation of each seasonal working series
        ar: Non-seasonal AR coefficients
        ma: Non-seasonal MA coefficients
        periods: Period of each seasonal component
        seasonal_ar: Zero-padded seasonal AR coefficients per component
        seasonal_ar_orders: Seasonal AR order per component
        seasonal_ma: Zero-padded seasonal MA coefficients per component
        seasonal_ma_orders: Seasonal MA order per component
        beta: Exogenous coefficients
        shocks: Innovations added to forecast steps (zeros for a point forecast)

    Returns:
        np.ndarray: Predictions, same length as ``values`` (zeros before ``start``)
    """
    total = len(values)
    predictions = np.zeros(total)
    n_components = len(periods)
    regular_length = len(regular_poly)
    joint_length = len(joint_poly)

    for t in range(start, total):
        if t < n_obs and t < warmup:
            predictions[t] = values[t]
            residuals[t] = 0.0
            continue

        prediction = 0.0

        # Integration: y_t minus the jointly differenced value, from past values
        for k in range(1, joint_length):
            prediction -= joint_poly[k] * values[t - k]

        for j in range(len(ar)):
            prediction += ar[j] * _apply_polynomial(values, t - j - 1, regular_poly, regular_length)
        for j in range(len(ma)):
            prediction += ma[j] * residuals[t - j - 1]

        for i in range(n_components):
            period = periods[i]
            standardized_sum = 0.0
            for j in range(seasonal_ar_orders[i]):
                working = _apply_polynomial(values, t - (j + 1) * period,
                                            seasonal_polys[i], seasonal_poly_lengths[i])
                standardized_sum += seasonal_ar[i, j] * (working - seasonal_means[i]) / seasonal_stds[i]
            # Residuals are already in data units: sd * (theta * e / sd) == theta * e
            for j in range(seasonal_ma_orders[i]):
                standardized_sum += seasonal_ma[i, j] * residuals[t - (j + 1) * period] / seasonal_stds[i]
            prediction += seasonal_stds[i] * standardized_sum + seasonal_means[i]

        for k in range(len(beta)):
            prediction += beta[k] * exog[t, k]

        predictions[t] = prediction
        if t < n_obs:
            residuals[t] = values[t] - prediction
        else:
            values[t] = prediction + shocks[t - n_obs]
            residuals[t] = shocks[t - n_obs]

    return predictions


@jit(nopython=True, cache=True)
def concentrated_loglikelihood(residuals: np.ndarray, warmup: int, variance_floor: float) -> float:
    """
    Gaussian log-likelihood of residuals[warmup:] with the variance concentrated out.

        -m/2 * (log(2*pi*sigma2) + 1),  sigma2 = max(mean(e**2), variance_floor)
    """
    m = len(residuals) - warmup
    sigma2 = 0.0
    for t in range(warmup, len(residuals)):
        sigma2 += residuals[t] * residuals[t]
    sigma2 /= m
    if sigma2 < variance_floor:
        sigma2 = variance_floor
    return -0.5 * m * (np.log(2.0 * np.pi * sigma2) + 1.0)
