# sarimax_engine/models/time_series/estimation.py
"""
Parameter estimation for SARIMAX models.

Two pieces live here. ``method_of_moments`` produces starting values from the
standardized working series: Yule-Walker solutions for AR blocks, scaled
autocorrelations for MA blocks and least squares for the exogenous
coefficients. ``DampedNewtonEstimator`` then maximizes the log-likelihood with
Newton steps scaled by an adaptive step size: the scale starts small, grows
by a constant factor after every accepted step up to a cap, and shrinks after
every rejected step, in which case the same direction is retried. A step is
accepted only when it increases the log-likelihood.

Running out of iterations is not an error. The best parameters found are
returned with ``converged=False`` and a warning is logged.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy import linalg

from sarimax_engine.core.config import NumericalConfig, get_numerical_config
from sarimax_engine.core.exceptions import NumericError
from sarimax_engine.core.parameters import (
    ExogenousBlock, NonSeasonalBlock, SARIMAXParameters, SeasonalBlock
)
from sarimax_engine.models.time_series.correlation import acf
from sarimax_engine.utils.differentiation import gradient_2sided, hessian_2sided

logger = logging.getLogger("sarimax_engine.models.time_series.estimation")


@dataclass
class EstimationResult:
    """Container for estimation results.

    Attributes:
        params: Estimated flat parameter vector
        log_likelihood: Log-likelihood at ``params``
        converged: Whether the improvement fell below the tolerance
        iterations: Number of candidate steps evaluated
        gradient: Gradient at ``params``
        hessian: Hessian at ``params``
        message: Reason the iteration stopped
    """
    params: np.ndarray
    log_likelihood: float
    converged: bool
    iterations: int
    gradient: np.ndarray
    hessian: np.ndarray
    message: str = ""


def _yule_walker(autocorrelations: np.ndarray, order: int) -> np.ndarray:
    """Solve the Yule-Walker equations for ``order`` coefficients."""
    if order == 0:
        return np.zeros(0)
    try:
        coefficients = linalg.solve_toeplitz(autocorrelations[:order], autocorrelations[1:order + 1])
    except (linalg.LinAlgError, ValueError):
        return np.zeros(order)
    if not np.all(np.isfinite(coefficients)):
        return np.zeros(order)
    return coefficients


def _lag_autocorrelations(series: Optional[np.ndarray], step: int, count: int) -> Optional[np.ndarray]:
    """Autocorrelations at lags 0, step, ..., count*step, or None if unavailable."""
    if series is None or count == 0:
        return None
    max_lag = step * count
    if len(series) <= max_lag + 1 or np.ptp(series) == 0:
        return None
    return acf(series, max_lag)[::step][:count + 1]


def method_of_moments(template: SARIMAXParameters,
                      standardized_regular: Optional[np.ndarray],
                      standardized_seasonal: Sequence[Optional[np.ndarray]],
                      values: np.ndarray,
                      exog: np.ndarray) -> SARIMAXParameters:
    """
    Starting values for the damped Newton iteration.

    Args:
        template: Parameter layout
        standardized_regular: Standardized regular-differenced series
        standardized_seasonal: Standardized working series per seasonal component
        values: Raw series (for the exogenous regression)
        exog: Covariates, shape (n, k)

    Returns:
        SARIMAXParameters: Initial parameters; blocks whose series is too short
        or constant start at zero
    """
    p = len(template.non_seasonal.ar)
    q = len(template.non_seasonal.ma)
    r = _lag_autocorrelations(standardized_regular, 1, max(p, q))
    ar = _yule_walker(r, p) if r is not None else np.zeros(p)
    ma = 0.5 * r[1:q + 1] if r is not None else np.zeros(q)

    seasonal = []
    for block, series in zip(template.seasonal, standardized_seasonal):
        P, Q = len(block.ar), len(block.ma)
        r = _lag_autocorrelations(series, block.period, max(P, Q))
        seasonal.append(SeasonalBlock(
            period=block.period,
            ar=_yule_walker(r, P) if r is not None else np.zeros(P),
            ma=0.5 * r[1:Q + 1] if r is not None else np.zeros(Q)
        ))

    coefficients = np.zeros(template.exogenous.size)
    if template.exogenous.size:
        solution, *_ = np.linalg.lstsq(exog, values, rcond=None)
        if np.all(np.isfinite(solution)):
            coefficients = solution

    return SARIMAXParameters(
        non_seasonal=NonSeasonalBlock(ar, ma),
        seasonal=seasonal,
        exogenous=ExogenousBlock(template.exogenous.names, coefficients)
    )


class DampedNewtonEstimator:
    """Maximize a log-likelihood with step-size-damped Newton iterations.

    Args:
        tolerance: Stop when a step changes the log-likelihood by less than this
        max_iterations: Maximum number of candidate steps
        numerical: Step-size schedule and derivative settings; defaults to the
            ``numerical`` configuration section
    """

    def __init__(self,
                 tolerance: Optional[float] = None,
                 max_iterations: Optional[int] = None,
                 numerical: Optional[NumericalConfig] = None):
        self.numerical = numerical or get_numerical_config()
        self.tolerance = self.numerical.tolerance if tolerance is None else tolerance
        self.max_iterations = (self.numerical.max_iterations
                               if max_iterations is None else max_iterations)

    def _derivatives(self, objective: Callable[[np.ndarray], float], params: np.ndarray):
        step = self.numerical.hessian_step
        return gradient_2sided(objective, params, step), hessian_2sided(objective, params, step)

    @staticmethod
    def newton_direction(gradient: np.ndarray, hessian: np.ndarray) -> np.ndarray:
        """
        Ascent direction solving (-H + shift * I) delta = g.

        The shift is zero when -H is positive definite; otherwise it lifts the
        smallest eigenvalue of -H to a small positive multiple of the largest
        eigenvalue magnitude.
        """
        if gradient.size == 0:
            return gradient
        information = -(hessian + hessian.T) / 2
        eigenvalues = np.linalg.eigvalsh(information)
        floor = 1e-3 * max(1.0, float(np.max(np.abs(eigenvalues))))
        shift = 0.0 if eigenvalues[0] > 1e-10 * floor else floor - eigenvalues[0]
        return linalg.solve(information + shift * np.eye(len(gradient)), gradient, assume_a='sym')

    def maximize(self,
                 objective: Callable[[np.ndarray], float],
                 start: np.ndarray) -> EstimationResult:
        """
        Run the damped Newton iteration from ``start``.

        Args:
            objective: Log-likelihood as a function of the flat parameter vector
            start: Starting parameter vector

        Returns:
            EstimationResult: Best parameters found and convergence information

        Raises:
            NumericError: If the log-likelihood is not finite at ``start``
        """
        params = np.asarray(start, dtype=np.float64).copy()
        current = float(objective(params))
        if not np.isfinite(current):
            raise NumericError(
                "Log-likelihood is not finite at the starting values",
                operation="DampedNewtonEstimator.maximize",
                values=params,
                error_type="non_finite_value"
            )

        if params.size == 0:
            return EstimationResult(params, current, True, 0, np.zeros(0), np.zeros((0, 0)),
                                    "No free parameters")

        numerical = self.numerical
        step_size = numerical.initial_step_size
        try:
            gradient, hessian = self._derivatives(objective, params)
        except NumericError as e:
            logger.warning(f"Derivatives not finite at the starting values: {e.message}")
            return EstimationResult(params, current, False, 0,
                                    np.zeros(params.size), np.zeros((params.size, params.size)),
                                    "Derivatives not finite at the starting values")
        direction = self.newton_direction(gradient, hessian)
        converged = False
        stale = False
        message = "Maximum number of iterations reached"
        iterations = 0

        while iterations < self.max_iterations:
            iterations += 1
            candidate = params + step_size * direction
            value = float(objective(candidate))

            if np.isfinite(value) and abs(value - current) < self.tolerance:
                if value > current:
                    params, current = candidate, value
                    stale = True
                converged = True
                message = "Log-likelihood improvement below tolerance"
                break

            if np.isfinite(value) and value > current:
                params, current = candidate, value
                step_size = min(step_size * numerical.step_growth, numerical.max_step_size)
                try:
                    gradient, hessian = self._derivatives(objective, params)
                except NumericError as e:
                    message = f"Derivatives not finite at the current estimate: {e.message}"
                    stale = False
                    break
                direction = self.newton_direction(gradient, hessian)
                logger.debug(f"Iteration {iterations}: log-likelihood {current:.6f}, step {step_size:.4g}")
            else:
                step_size *= numerical.step_shrink
                if step_size < numerical.min_step_size:
                    message = "Step size fell below the minimum without improvement"
                    break

        if stale:
            try:
                gradient, hessian = self._derivatives(objective, params)
            except NumericError:
                logger.debug("Keeping derivatives of the previous iterate")

        if not converged:
            logger.warning(
                f"Estimation stopped without convergence after {iterations} iterations "
                f"({message}); returning the best parameters found"
            )

        return EstimationResult(
            params=params,
            log_likelihood=current,
            converged=converged,
            iterations=iterations,
            gradient=gradient,
            hessian=hessian,
            message=message
        )
