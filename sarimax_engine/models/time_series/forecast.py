# sarimax_engine/models/time_series/forecast.py
"""
Forecasting for SARIMAX models.

Point forecasts substitute each predicted value back into a local copy of the
value history (with a zero innovation) so that later horizons can reference
it. The width of the prediction interval at step h reflects two sources of
uncertainty:

- innovation uncertainty, σ² (1 + Σ_{k<h} ψ_{h,k}²), where ψ_{h,k} is the
  response of the step-h forecast to a unit innovation at step k. The
  recursion is linear in the innovations, so the ψ weights are obtained
  exactly by feeding unit shocks through the same pure forecast path.
- parameter uncertainty through the delta method, gᵀ Σ g, where g is the
  forward-difference gradient of the step-h forecast with respect to the flat
  parameter vector and Σ the parameter covariance.

The critical value is computed from the normal quantile function so that any
two-sided confidence level can be requested.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import numpy as np
import pandas as pd

from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.models.time_series.recursion import RecursionStructure
from sarimax_engine.utils.differentiation import forward_jacobian
from sarimax_engine.utils.statistics import normal_inverse_cdf

logger = logging.getLogger("sarimax_engine.models.time_series.forecast")


@dataclass(frozen=True)
class ConfidenceInterval:
    """Two-sided prediction interval for one forecast step."""
    lower: float
    upper: float

    @property
    def width(self) -> float:
        return self.upper - self.lower


@dataclass(frozen=True)
class ForecastResult:
    """Container for multi-step forecasts.

    Attributes:
        predictions: Point forecast for each step
        confidence_intervals: Interval for each step, same length as ``predictions``
        confidence_level: Two-sided level of the intervals
        standard_errors: Forecast standard error for each step
        index: Optional labels of the forecast steps
    """
    predictions: np.ndarray
    confidence_intervals: List[ConfidenceInterval]
    confidence_level: float
    standard_errors: np.ndarray = field(default_factory=lambda: np.zeros(0))
    index: Optional[Sequence[Any]] = None

    def __len__(self) -> int:
        return len(self.predictions)

    @property
    def lower(self) -> np.ndarray:
        return np.array([ci.lower for ci in self.confidence_intervals])

    @property
    def upper(self) -> np.ndarray:
        return np.array([ci.upper for ci in self.confidence_intervals])

    def to_frame(self) -> pd.DataFrame:
        """Forecasts and interval bounds as a DataFrame, one row per step."""
        level = int(round(self.confidence_level * 100))
        frame = pd.DataFrame(
            {
                "forecast": self.predictions,
                "std_error": self.standard_errors,
                f"lower_{level}": self.lower,
                f"upper_{level}": self.upper,
            },
            index=list(self.index) if self.index is not None else None
        )
        frame.attrs["confidence_level"] = self.confidence_level
        return frame


def empty_forecast(confidence_level: float) -> ForecastResult:
    return ForecastResult(np.zeros(0), [], confidence_level, np.zeros(0))


def critical_value(confidence_level: float) -> float:
    """Two-sided standard normal critical value for ``confidence_level``.

    Raises:
        InvalidInputError: If the level is not strictly between 0 and 1
    """
    if not 0.0 < confidence_level < 1.0:
        raise_invalid_input("Confidence level must lie strictly between 0 and 1",
                            data_name="confidence_level", issue=f"level={confidence_level}")
    return float(normal_inverse_cdf(0.5 + confidence_level / 2.0))


def psi_weights(structure: RecursionStructure,
                values: np.ndarray,
                residuals: np.ndarray,
                exog_history: np.ndarray,
                exog_future: np.ndarray,
                params: np.ndarray) -> np.ndarray:
    """
    Response of each forecast step to a unit innovation at each earlier step.

    Returns:
        np.ndarray: Lower-triangular (h, h) matrix; entry [j, k] is the change of
        the step-j forecast when step k receives a unit innovation (zero for k >= j)
    """
    horizon = len(exog_future)
    base = structure.forecast(values, residuals, exog_history, exog_future, params)
    psi = np.zeros((horizon, horizon))
    for k in range(horizon - 1):
        shocks = np.zeros(horizon)
        shocks[k] = 1.0
        path = structure.forecast(values, residuals, exog_history, exog_future, params, shocks)
        psi[k + 1:, k] = path[k + 1:] - base[k + 1:]
    return psi


def forecast_variance(structure: RecursionStructure,
                      values: np.ndarray,
                      exog_history: np.ndarray,
                      exog_future: np.ndarray,
                      params: np.ndarray,
                      covariance: np.ndarray,
                      residual_variance: float,
                      epsilon: float = 1e-8) -> np.ndarray:
    """
    Forecast error variance at each step.

    The forecast is differentiated as a pure function of the parameters: for
    every perturbed vector the in-sample residuals are replayed from the
    observed series before the forecast path is computed, so nothing outside
    the call is modified.

    Args:
        structure: Recursion structure of the fitted model
        values: Observed series
        exog_history: Covariates of the observed series
        exog_future: Covariates of the forecast steps
        params: Estimated flat parameter vector
        covariance: Parameter covariance matrix
        residual_variance: Innovation variance σ²
        epsilon: Forward-difference step

    Returns:
        np.ndarray: Variance of each forecast step
    """
    _, residuals = structure.one_step(values, exog_history, params)
    psi = psi_weights(structure, values, residuals, exog_history, exog_future, params)
    variance = residual_variance * (1.0 + np.sum(psi ** 2, axis=1))

    if len(params):
        def path(p: np.ndarray) -> np.ndarray:
            _, replayed = structure.one_step(values, exog_history, p)
            return structure.forecast(values, replayed, exog_history, exog_future, p)

        gradients = forward_jacobian(path, params, epsilon)
        parameter_part = np.einsum("hi,ij,hj->h", gradients, covariance, gradients)
        if not np.all(np.isfinite(parameter_part)):
            logger.warning("Parameter uncertainty is not finite; intervals use innovation variance only")
        else:
            variance = variance + parameter_part

    return np.maximum(variance, 0.0)


def compute_forecast(structure: RecursionStructure,
                     values: np.ndarray,
                     residuals: np.ndarray,
                     exog_history: np.ndarray,
                     exog_future: np.ndarray,
                     params: np.ndarray,
                     covariance: np.ndarray,
                     residual_variance: float,
                     confidence_level: float = 0.95,
                     epsilon: float = 1e-8,
                     index: Optional[Sequence[Any]] = None) -> ForecastResult:
    """
    Point forecasts and prediction intervals for ``len(exog_future)`` steps.

    Args:
        structure: Recursion structure of the fitted model
        values: Observed series
        residuals: In-sample residuals of the observed series
        exog_history: Covariates of the observed series, shape (n, k)
        exog_future: Covariates of the forecast steps, shape (h, k)
        params: Estimated flat parameter vector
        covariance: Parameter covariance matrix
        residual_variance: Innovation variance
        confidence_level: Two-sided interval level
        epsilon: Forward-difference step of the delta method
        index: Optional labels of the forecast steps

    Returns:
        ForecastResult: Forecasts with intervals of exactly h entries
    """
    z = critical_value(confidence_level)
    horizon = len(exog_future)
    if horizon == 0:
        return empty_forecast(confidence_level)

    predictions = structure.forecast(values, residuals, exog_history, exog_future, params)
    variance = forecast_variance(structure, values, exog_history, exog_future, params,
                                 covariance, residual_variance, epsilon)
    standard_errors = np.sqrt(variance)
    intervals = [ConfidenceInterval(float(p - z * se), float(p + z * se))
                 for p, se in zip(predictions, standard_errors)]

    logger.debug(f"Forecast {horizon} steps at level {confidence_level}")
    return ForecastResult(
        predictions=predictions,
        confidence_intervals=intervals,
        confidence_level=confidence_level,
        standard_errors=standard_errors,
        index=index
    )
