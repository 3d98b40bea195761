# sarimax_engine/models/time_series/recursion.py
"""
Pure one-step SARIMAX predictor.

``RecursionStructure`` captures everything about a fitted model that does not
depend on the coefficient values: the differencing polynomials, the mean and
standard deviation of each seasonal working series, the parameter layout and
the warm-up length. Its methods take the value/residual history and a flat
parameter vector explicitly and never touch model state, so the estimator,
the in-sample replay, the forecaster and the finite-difference derivatives can
all call them with perturbed parameters freely. Every call works on its own
copies of the history buffers.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.core.parameters import SARIMAXParameters
from sarimax_engine.models.time_series._numba_core import (
    concentrated_loglikelihood, sarimax_recursion
)

logger = logging.getLogger("sarimax_engine.models.time_series.recursion")


def differencing_polynomial(d: int, seasonal: Sequence[Tuple[int, int]] = ()) -> np.ndarray:
    """
    Coefficients of (1 - B)^d * prod_i (1 - B^s_i)^D_i in increasing powers of B.

    Args:
        d: Regular differencing order
        seasonal: (period, D) pairs

    Returns:
        np.ndarray: Polynomial coefficients, element 0 is 1
    """
    poly = np.array([1.0])
    for _ in range(d):
        poly = np.convolve(poly, [1.0, -1.0])
    for period, order in seasonal:
        factor = np.zeros(period + 1)
        factor[0] = 1.0
        factor[-1] = -1.0
        for _ in range(order):
            poly = np.convolve(poly, factor)
    return poly


@dataclass(frozen=True, eq=False)
class RecursionStructure:
    """Coefficient-independent description of the one-step predictor.

    Attributes:
        template: Parameter layout used to read flat vectors
        regular_poly: (1 - B)^d
        joint_poly: Product of every differencing operator of the model
        seasonal_polys: Zero-padded (1 - B^s)^D per seasonal component
        seasonal_poly_lengths: Used length of each row of ``seasonal_polys``
        seasonal_means: Mean of each seasonal working series
        seasonal_stds: Standard deviation of each seasonal working series
        warmup: Number of leading observations without a full lag history
    """
    template: SARIMAXParameters
    regular_poly: np.ndarray
    joint_poly: np.ndarray
    seasonal_polys: np.ndarray
    seasonal_poly_lengths: np.ndarray
    seasonal_means: np.ndarray
    seasonal_stds: np.ndarray
    warmup: int

    @classmethod
    def build(cls,
              template: SARIMAXParameters,
              d: int,
              seasonal_differencing: Sequence[int],
              seasonal_means: Sequence[float],
              seasonal_stds: Sequence[float]) -> 'RecursionStructure':
        """
        Assemble the structure for a parameter layout.

        Args:
            template: Parameter layout (one seasonal block per component)
            d: Regular differencing order
            seasonal_differencing: Seasonal differencing order D per component
            seasonal_means: Mean of each seasonal working series
            seasonal_stds: Standard deviation of each seasonal working series
        """
        periods = [block.period for block in template.seasonal]
        seasonal_pairs = list(zip(periods, seasonal_differencing))
        polys = [differencing_polynomial(0, [pair]) for pair in seasonal_pairs]
        width = max((len(p) for p in polys), default=1)
        seasonal_polys = np.zeros((len(polys), width))
        for i, poly in enumerate(polys):
            seasonal_polys[i, :len(poly)] = poly

        regular_poly = differencing_polynomial(d)
        joint_poly = differencing_polynomial(d, seasonal_pairs)

        warmup = max(len(joint_poly) - 1,
                     len(template.non_seasonal.ar) + len(regular_poly) - 1,
                     len(template.non_seasonal.ma))
        for block, poly in zip(template.seasonal, polys):
            if len(block.ar):
                warmup = max(warmup, len(block.ar) * block.period + len(poly) - 1)
            warmup = max(warmup, len(block.ma) * block.period)

        return cls(
            template=template,
            regular_poly=regular_poly,
            joint_poly=joint_poly,
            seasonal_polys=seasonal_polys,
            seasonal_poly_lengths=np.array([len(p) for p in polys], dtype=np.int64),
            seasonal_means=np.asarray(seasonal_means, dtype=np.float64),
            seasonal_stds=np.asarray(seasonal_stds, dtype=np.float64),
            warmup=int(warmup)
        )

    def _run(self, values: np.ndarray, residuals: np.ndarray, exog: np.ndarray,
             n_obs: int, start: int, params: np.ndarray, shocks: np.ndarray) -> np.ndarray:
        blocks = self.template.from_array(params)
        ar, ma, periods, s_ar, s_ar_orders, s_ma, s_ma_orders, beta = blocks.kernel_arrays()
        return sarimax_recursion(
            values, residuals, np.ascontiguousarray(exog, dtype=np.float64),
            n_obs, start, self.warmup,
            self.regular_poly, self.joint_poly,
            self.seasonal_polys, self.seasonal_poly_lengths,
            self.seasonal_means, self.seasonal_stds,
            ar, ma, periods, s_ar, s_ar_orders, s_ma, s_ma_orders, beta,
            shocks
        )

    def one_step(self, values: np.ndarray, exog: np.ndarray,
                 params: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Replay the recursion over an observed series.

        Args:
            values: Observed series (undifferenced)
            exog: Covariates, shape (len(values), k)
            params: Flat parameter vector

        Returns:
            Tuple of (in-sample one-step predictions, residuals)
        """
        values = np.array(values, dtype=np.float64)
        if len(values) <= self.warmup:
            raise_invalid_input(
                f"Series of length {len(values)} is too short for the configured lags "
                f"(at least {self.warmup + 1} observations required)",
                data_name="observations",
                issue="Series too short"
            )
        residuals = np.zeros(len(values))
        predictions = self._run(values, residuals, exog, len(values), 0, params, np.zeros(0))
        return predictions, residuals

    def log_likelihood(self, values: np.ndarray, exog: np.ndarray,
                       params: np.ndarray, variance_floor: float) -> float:
        """Concentrated Gaussian log-likelihood of the post-warm-up residuals."""
        _, residuals = self.one_step(values, exog, params)
        return float(concentrated_loglikelihood(residuals, self.warmup, variance_floor))

    def forecast(self,
                 values: np.ndarray,
                 residuals: np.ndarray,
                 exog_history: np.ndarray,
                 exog_future: np.ndarray,
                 params: np.ndarray,
                 shocks: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Forecast by substitution past the end of the history.

        Each step's prediction (plus its shock, zero by default) is appended to
        a local copy of the value history and the shock to a local copy of the
        residual history, so later steps can reference it.

        Args:
            values: Observed series
            residuals: In-sample residuals of the observed series
            exog_history: Covariates of the observed series, shape (n, k)
            exog_future: Covariates of the forecast steps, shape (h, k)
            params: Flat parameter vector
            shocks: Optional innovations added at each forecast step

        Returns:
            np.ndarray: Predictions for the h forecast steps
        """
        n = len(values)
        horizon = len(exog_future)
        if horizon == 0:
            return np.zeros(0)
        if shocks is None:
            shocks = np.zeros(horizon)

        value_buffer = np.concatenate([np.asarray(values, dtype=np.float64), np.zeros(horizon)])
        residual_buffer = np.concatenate([np.asarray(residuals, dtype=np.float64), np.zeros(horizon)])
        exog_buffer = np.vstack([exog_history, exog_future])
        predictions = self._run(value_buffer, residual_buffer, exog_buffer, n, n,
                                params, np.asarray(shocks, dtype=np.float64))
        return predictions[n:]
