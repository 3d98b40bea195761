# sarimax_engine/models/time_series/sarimax.py
"""
Seasonal ARIMA model with exogenous regressors.

``SARIMAXModel`` moves from Unfit to Fit through ``fit`` and stays Fit until it
is fitted again. Fitting differences the series (regularly ``d`` times for the
non-seasonal component and ``D`` times at lag ``s`` for each seasonal
component), standardizes each seasonal working series, estimates every
coefficient jointly by damped Newton maximization of the Gaussian
log-likelihood and replays the one-step recursion over the original series to
obtain fitted values and residuals. All of that is stored in an immutable
``FittedState``; ``predict`` and ``get_diagnostics`` read it and never modify it,
so concurrent forecasts from the same instance do not interfere.

Non-convergence is not an error. The best parameters found are kept and
``FittedState.converged`` is False; check it (and ``iterations``) when a
convergence guarantee matters.
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from sarimax_engine.core.base import ModelBase
from sarimax_engine.core.config import get_diagnostics_config, get_numerical_config
from sarimax_engine.core.exceptions import (
    InvalidConfigurationError, MissingExogenousDataError, raise_invalid_input
)
from sarimax_engine.core.parameters import SARIMAXParameters
from sarimax_engine.core.types import Observation
from sarimax_engine.models.time_series import diagnostics
from sarimax_engine.models.time_series._numba_core import difference, seasonal_difference
from sarimax_engine.models.time_series.estimation import DampedNewtonEstimator, method_of_moments
from sarimax_engine.models.time_series.forecast import (
    ForecastResult, compute_forecast, empty_forecast
)
from sarimax_engine.models.time_series.recursion import RecursionStructure
from sarimax_engine.utils.matrix_ops import inverse_information
from sarimax_engine.utils.statistics import as_series, mean, standard_deviation

logger = logging.getLogger("sarimax_engine.models.time_series.sarimax")

ExogenousInput = Union[Sequence[Mapping[str, float]], pd.DataFrame]


def _is_integer(value: Any) -> bool:
    return isinstance(value, (numbers.Integral, np.integer)) and not isinstance(value, bool)


def _validate_order(order: Any, setting: str) -> Tuple[int, int, int]:
    if isinstance(order, (str, bytes)) or not isinstance(order, Sequence) and not isinstance(order, np.ndarray):
        raise InvalidConfigurationError(
            f"{setting} must be a sequence of three integers",
            setting=setting, value=order, issue="Not a sequence"
        )
    order = tuple(order)
    if len(order) != 3 or not all(_is_integer(v) for v in order):
        raise InvalidConfigurationError(
            f"{setting} must contain exactly three integers",
            setting=setting, value=order, issue="Expected (AR, differencing, MA) orders"
        )
    if any(v < 0 for v in order):
        raise InvalidConfigurationError(
            f"{setting} components must be non-negative",
            setting=setting, value=order, issue="Negative order component"
        )
    return tuple(int(v) for v in order)


@dataclass
class SeasonalOrder:
    """One seasonal component.

    Attributes:
        order: (P, D, Q) seasonal AR order, seasonal differencing order and
            seasonal MA order
        period: Seasonal period s (observations per cycle)
    """
    order: Tuple[int, int, int]
    period: int

    def __post_init__(self) -> None:
        self.order = _validate_order(self.order, "seasonal_orders.order")
        if not _is_integer(self.period) or self.period <= 0:
            raise InvalidConfigurationError(
                "Seasonal period must be a positive integer",
                setting="seasonal_orders.period", value=self.period, issue="Non-positive period"
            )
        self.period = int(self.period)

    @property
    def P(self) -> int:
        return self.order[0]

    @property
    def D(self) -> int:
        return self.order[1]

    @property
    def Q(self) -> int:
        return self.order[2]

    def to_dict(self) -> Dict[str, Any]:
        return {"order": list(self.order), "period": self.period}


_CAMEL_CASE_KEYS = {
    "seasonalOrders": "seasonal_orders",
    "exogenousVariables": "exogenous_variables",
    "maxIterations": "max_iterations",
}


@dataclass
class SARIMAXConfig:
    """Configuration of a SARIMAX model.

    Invalid values raise ``InvalidConfigurationError`` at construction.

    Attributes:
        order: Non-seasonal (p, d, q)
        seasonal_orders: Seasonal components, modelled jointly
        exogenous_variables: Names of the external regressors
        tolerance: Log-likelihood improvement below which estimation stops;
            defaults to the ``numerical.tolerance`` setting
        max_iterations: Iteration budget of the estimation loop; defaults to
            the ``numerical.max_iterations`` setting
    """
    order: Tuple[int, int, int] = (0, 0, 0)
    seasonal_orders: List[SeasonalOrder] = field(default_factory=list)
    exogenous_variables: Tuple[str, ...] = ()
    tolerance: Optional[float] = None
    max_iterations: Optional[int] = None

    def __post_init__(self) -> None:
        self.order = _validate_order(self.order, "order")

        seasonal = []
        for entry in self.seasonal_orders or []:
            if isinstance(entry, SeasonalOrder):
                seasonal.append(entry)
            elif isinstance(entry, Mapping):
                if set(entry) != {"order", "period"}:
                    raise InvalidConfigurationError(
                        "Seasonal order entries need exactly the keys 'order' and 'period'",
                        setting="seasonal_orders", value=dict(entry), issue="Unexpected keys"
                    )
                seasonal.append(SeasonalOrder(entry["order"], entry["period"]))
            else:
                raise InvalidConfigurationError(
                    "Seasonal order entries must be SeasonalOrder instances or mappings",
                    setting="seasonal_orders", value=entry, issue="Unsupported type"
                )
        self.seasonal_orders = seasonal

        if isinstance(self.exogenous_variables, str):
            raise InvalidConfigurationError(
                "exogenous_variables must be a collection of names",
                setting="exogenous_variables", value=self.exogenous_variables,
                issue="Single string given"
            )
        names = tuple(self.exogenous_variables or ())
        if not all(isinstance(name, str) and name for name in names):
            raise InvalidConfigurationError(
                "Exogenous variable names must be non-empty strings",
                setting="exogenous_variables", value=names, issue="Invalid name"
            )
        if len(set(names)) != len(names):
            raise InvalidConfigurationError(
                "Exogenous variable names must be unique",
                setting="exogenous_variables", value=names, issue="Duplicate name"
            )
        self.exogenous_variables = names

        numerical = get_numerical_config()
        if self.tolerance is None:
            self.tolerance = numerical.tolerance
        if not isinstance(self.tolerance, (numbers.Real, np.floating)) or not self.tolerance > 0:
            raise InvalidConfigurationError(
                "Tolerance must be a positive number",
                setting="tolerance", value=self.tolerance, issue="Must be positive"
            )
        self.tolerance = float(self.tolerance)

        if self.max_iterations is None:
            self.max_iterations = numerical.max_iterations
        if not _is_integer(self.max_iterations) or self.max_iterations <= 0:
            raise InvalidConfigurationError(
                "max_iterations must be a positive integer",
                setting="max_iterations", value=self.max_iterations, issue="Must be positive"
            )
        self.max_iterations = int(self.max_iterations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "order": list(self.order),
            "seasonal_orders": [s.to_dict() for s in self.seasonal_orders],
            "exogenous_variables": list(self.exogenous_variables),
            "tolerance": self.tolerance,
            "max_iterations": self.max_iterations,
        }

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> 'SARIMAXConfig':
        """Create configuration from a dictionary.

        Both snake_case keys and the camelCase keys ``seasonalOrders``,
        ``exogenousVariables`` and ``maxIterations`` are accepted.

        Raises:
            InvalidConfigurationError: For unknown keys or invalid values
        """
        known = {"order", "seasonal_orders", "exogenous_variables", "tolerance", "max_iterations"}
        kwargs: Dict[str, Any] = {}
        for key, value in config_dict.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise InvalidConfigurationError(
                    f"Unknown configuration option: {key}",
                    setting=key, value=value, issue="Unknown option"
                )
            kwargs[name] = value
        return cls(**kwargs)

    @property
    def model_name(self) -> str:
        p, d, q = self.order
        name = f"SARIMAX({p},{d},{q})"
        for s in self.seasonal_orders:
            name += f"x({s.P},{s.D},{s.Q},{s.period})"
        return name


@dataclass(frozen=True, eq=False)
class FittedState:
    """Immutable result of ``SARIMAXModel.fit``.

    Attributes:
        seasonal_differenced: Working series of each seasonal component
        regular_differenced: Series differenced ``d`` times
        seasonal_means: Mean of each seasonal working series
        seasonal_stds: Standard deviation of each seasonal working series
            (1.0 where the series is constant)
        parameters: Estimated coefficients by block
        exogenous_coefficients: Trailing exogenous part of the parameter vector
        residuals: In-sample residuals, zero over the warm-up
        fitted_values: In-sample one-step predictions
        warmup: Number of leading observations without a full lag history
        covariance: Parameter covariance (inverse of the negative Hessian)
        log_likelihood: Log-likelihood at the estimate
        residual_variance: Innovation variance of the post-warm-up residuals
        converged: Whether the estimation met the tolerance
        iterations: Number of estimation steps evaluated
        values: Observed series
        exog: Covariates of the observed series, shape (n, k)
        timestamps: Timestamps of the observed series
        structure: Coefficient-independent recursion description
    """
    seasonal_differenced: Tuple[np.ndarray, ...]
    regular_differenced: np.ndarray
    seasonal_means: np.ndarray
    seasonal_stds: np.ndarray
    parameters: SARIMAXParameters
    exogenous_coefficients: np.ndarray
    residuals: np.ndarray
    fitted_values: np.ndarray
    warmup: int
    covariance: np.ndarray
    log_likelihood: float
    residual_variance: float
    converged: bool
    iterations: int
    values: np.ndarray
    exog: np.ndarray
    timestamps: Tuple[Any, ...]
    structure: RecursionStructure

    @property
    def n_parameters(self) -> int:
        return self.parameters.size

    @property
    def effective_residuals(self) -> np.ndarray:
        """Residuals after the warm-up, the sample used by the likelihood."""
        return self.residuals[self.warmup:]


def _exogenous_row(row: Any, names: Sequence[str], index: int, operation: str) -> List[float]:
    if isinstance(row, Observation):
        supplied = row.exogenous or {}
        missing = row.missing_exogenous(names)
    elif row is None:
        missing = list(names)
    elif isinstance(row, Mapping):
        supplied = {str(k): v for k, v in row.items()}
        missing = [name for name in names
                   if name not in supplied or supplied[name] is None
                   or not np.isfinite(float(supplied[name]))]
    else:
        raise_invalid_input("Exogenous values must be given as a mapping of name to value",
                            data_name="exogenous", issue=f"{type(row).__name__} at {index}",
                            index=index)
    if missing:
        raise MissingExogenousDataError(
            f"Exogenous variables {missing} missing at {operation} step {index}",
            missing=missing, index=index, operation=operation
        )
    return [float(supplied[name]) for name in names]


def exogenous_matrix(rows: Sequence[Any], names: Sequence[str], operation: str) -> np.ndarray:
    """
    Covariate matrix of shape (len(rows), len(names)).

    Raises:
        MissingExogenousDataError: If any row lacks one of ``names`` or carries
            a non-finite value for it
    """
    if not names:
        return np.zeros((len(rows), 0))
    return np.array([_exogenous_row(row, names, i, operation) for i, row in enumerate(rows)],
                    dtype=np.float64).reshape(len(rows), len(names))


def _standardize(series: np.ndarray) -> Tuple[float, float]:
    if len(series) == 0:
        return 0.0, 1.0
    sd = standard_deviation(series)
    return mean(series), (sd if sd > 0 else 1.0)


class SARIMAXModel(ModelBase[SARIMAXConfig, FittedState, ForecastResult,
                             'diagnostics.DiagnosticResult']):
    """Seasonal ARIMA model with exogenous regressors.

    Args:
        config: Model configuration; a mapping is converted with
            ``SARIMAXConfig.from_dict``

    Example:
        >>> model = SARIMAXModel(SARIMAXConfig(order=(1, 0, 0)))
        >>> state = model.fit(observations)
        >>> forecast = model.predict(horizon=3)
    """

    def __init__(self, config: Union[SARIMAXConfig, Mapping[str, Any]]):
        if isinstance(config, Mapping):
            config = SARIMAXConfig.from_dict(config)
        if not isinstance(config, SARIMAXConfig):
            raise InvalidConfigurationError(
                "config must be a SARIMAXConfig or a mapping",
                setting="config", value=type(config).__name__, issue="Unsupported type"
            )
        super().__init__(config, name=config.model_name)

    @property
    def parameters(self) -> Dict[str, float]:
        """Estimated parameters by name.

        Raises:
            ModelNotFitError: If the model has not been fitted
        """
        return self._require_fit("parameters").parameters.to_dict()

    def _template(self) -> SARIMAXParameters:
        p, _, q = self.config.order
        return SARIMAXParameters.zeros(
            p, q,
            seasonal=[(s.period, s.P, s.Q) for s in self.config.seasonal_orders],
            exogenous_names=self.config.exogenous_variables
        )

    @staticmethod
    def _as_list(observations: Sequence[Observation]) -> List[Observation]:
        if isinstance(observations, (pd.Series, pd.DataFrame)):
            raise_invalid_input("Observations must be a sequence of Observation records; "
                                "use observations_from_pandas for pandas input",
                                data_name="observations", issue="pandas object given")
        return list(observations)

    def _series(self, observations: List[Observation], operation: str) -> Tuple[np.ndarray, np.ndarray]:
        exog = exogenous_matrix(observations, self.config.exogenous_variables, operation)
        values = as_series([obs.value for obs in observations], "observations")
        return values, exog

    def fit(self, observations: Sequence[Observation]) -> FittedState:
        """
        Estimate the model from an ordered observation sequence.

        Args:
            observations: Observations in time order

        Returns:
            FittedState: The new fitted state (also kept by the model)

        Raises:
            MissingExogenousDataError: If a configured covariate is absent
            InvalidInputError: If the series is empty, non-finite or too short
                for the configured lags and periods
        """
        config = self.config
        observations = self._as_list(observations)
        values, exog = self._series(observations, "fit")
        n = len(values)
        d = config.order[1]
        logger.debug(f"Fitting {self.name} on {n} observations")

        if n <= d:
            raise_invalid_input(
                f"Series of length {n} is too short for differencing order {d}",
                data_name="observations", issue="Series too short"
            )
        regular = difference(values, d)

        seasonal_series = []
        for s in config.seasonal_orders:
            if n <= s.D * s.period:
                raise_invalid_input(
                    f"Series of length {n} is too short for seasonal period {s.period} "
                    f"with differencing order {s.D}",
                    data_name="observations", issue="Series too short"
                )
            seasonal_series.append(seasonal_difference(values, s.period, s.D))

        moments = [_standardize(v) for v in seasonal_series]
        seasonal_means = np.array([m for m, _ in moments])
        seasonal_stds = np.array([sd for _, sd in moments])
        standardized_seasonal = [
            (v - m) / sd if np.ptp(v) > 0 else None
            for v, (m, sd) in zip(seasonal_series, moments)
        ]
        regular_mean, regular_sd = _standardize(regular)
        standardized_regular = (regular - regular_mean) / regular_sd if np.ptp(regular) > 0 else None

        template = self._template()
        structure = RecursionStructure.build(
            template, d, [s.D for s in config.seasonal_orders], seasonal_means, seasonal_stds
        )
        if n <= structure.warmup:
            raise_invalid_input(
                f"Series of length {n} is too short for the configured lags "
                f"(at least {structure.warmup + 1} observations required)",
                data_name="observations", issue="Series too short"
            )

        numerical = get_numerical_config()

        def objective(params: np.ndarray) -> float:
            return structure.log_likelihood(values, exog, params, numerical.variance_floor)

        start = method_of_moments(template, standardized_regular, standardized_seasonal,
                                  values, exog).to_array()
        if not np.isfinite(objective(start)):
            logger.debug("Method-of-moments start has a non-finite likelihood; starting from zero")
            start = np.zeros(template.size)

        estimator = DampedNewtonEstimator(config.tolerance, config.max_iterations, numerical)
        result = estimator.maximize(objective, start)
        covariance = inverse_information(result.hessian)

        estimated = template.from_array(result.params)
        fitted_values, residuals = structure.one_step(values, exog, result.params)
        effective = residuals[structure.warmup:]
        residual_variance = max(float(np.mean(effective ** 2)), numerical.variance_floor)

        self._state = FittedState(
            seasonal_differenced=tuple(seasonal_series),
            regular_differenced=regular,
            seasonal_means=seasonal_means,
            seasonal_stds=seasonal_stds,
            parameters=estimated,
            exogenous_coefficients=template.split(result.params)[1],
            residuals=residuals,
            fitted_values=fitted_values,
            warmup=structure.warmup,
            covariance=covariance,
            log_likelihood=result.log_likelihood,
            residual_variance=residual_variance,
            converged=result.converged,
            iterations=result.iterations,
            values=values,
            exog=exog,
            timestamps=tuple(obs.timestamp for obs in observations),
            structure=structure
        )
        logger.info(
            f"Fitted {self.name}: log-likelihood {result.log_likelihood:.4f}, "
            f"converged={result.converged}, iterations={result.iterations}"
        )
        return self._state

    def predict(self,
                horizon: int,
                exogenous: Optional[ExogenousInput] = None,
                confidence_level: Optional[float] = None) -> ForecastResult:
        """
        Forecast ``horizon`` steps past the end of the fitted series.

        Args:
            horizon: Number of steps (0 gives empty results)
            exogenous: Covariates for each future step, required when the
                configuration declares exogenous variables
            confidence_level: Two-sided interval level; defaults to the
                ``diagnostics.confidence_level`` setting

        Returns:
            ForecastResult: Exactly ``horizon`` predictions and intervals

        Raises:
            ModelNotFitError: If the model has not been fitted
            MissingExogenousDataError: If covariates are missing for any step
            InvalidInputError: If ``horizon`` is negative or not an integer
        """
        state = self._require_fit("predict")
        if not _is_integer(horizon) or horizon < 0:
            raise_invalid_input("horizon must be a non-negative integer",
                                data_name="horizon", issue=f"horizon={horizon!r}")
        horizon = int(horizon)
        if confidence_level is None:
            confidence_level = get_diagnostics_config().confidence_level

        names = self.config.exogenous_variables
        if isinstance(exogenous, pd.DataFrame):
            exogenous = exogenous.to_dict(orient="records")
        if names and horizon > 0:
            if exogenous is None or len(exogenous) < horizon:
                supplied = 0 if exogenous is None else len(exogenous)
                raise MissingExogenousDataError(
                    f"Exogenous values required for {horizon} forecast steps, {supplied} supplied",
                    missing=list(names), index=supplied, operation="predict"
                )
            exog_future = exogenous_matrix(list(exogenous)[:horizon], names, "predict")
        else:
            exog_future = np.zeros((horizon, len(names)))

        if horizon == 0:
            return empty_forecast(confidence_level)

        return compute_forecast(
            state.structure, state.values, state.residuals, state.exog, exog_future,
            state.parameters.to_array(), state.covariance, state.residual_variance,
            confidence_level=confidence_level,
            epsilon=get_numerical_config().finite_difference_step
        )

    def get_diagnostics(self, observations: Sequence[Observation]) -> 'diagnostics.DiagnosticResult':
        """
        Diagnostics of the fitted parameters on an observation series.

        The one-step recursion is replayed over ``observations`` with the
        fitted parameters; for the series used in ``fit`` this reproduces the
        stored residuals.

        Raises:
            ModelNotFitError: If the model has not been fitted
            MissingExogenousDataError: If a configured covariate is absent
        """
        state = self._require_fit("get_diagnostics")
        observations = self._as_list(observations)
        values, exog = self._series(observations, "get_diagnostics")
        return diagnostics.compute_diagnostics(
            state, values, exog, [obs.timestamp for obs in observations]
        )

    def summary(self) -> str:
        """Text table of the estimated parameters and fit statistics."""
        if not self.fitted:
            return f"{self.name} Model (not fitted)"
        state = self._state
        header = f"Model: {self.name}\n"
        header += "=" * (len(header) - 1) + "\n\n"
        header += f"Convergence: {'Yes' if state.converged else 'No'}\n"
        header += f"Iterations: {state.iterations}\n\n"

        table = diagnostics.parameter_statistics(state)
        body = "Parameter Estimates:\n"
        body += "-" * 80 + "\n"
        body += f"{'Parameter':<15} {'Estimate':>12} {'Std. Error':>12} "
        body += f"{'t-stat':>12} {'p-value':>12} {'Significance':>10}\n"
        body += "-" * 80 + "\n"
        for stat in table:
            if stat.p_value < 0.01:
                sig = "***"
            elif stat.p_value < 0.05:
                sig = "**"
            elif stat.p_value < 0.1:
                sig = "*"
            else:
                sig = ""
            body += f"{stat.name:<15} {stat.value:>12.6f} {stat.standard_error:>12.6f} "
            body += f"{stat.t_statistic:>12.6f} {stat.p_value:>12.6f} {sig:>10}\n"
        body += "-" * 80 + "\n"
        body += "Significance codes: *** 0.01, ** 0.05, * 0.1\n\n"

        body += "Model Statistics:\n"
        body += "-" * 40 + "\n"
        body += f"Log-Likelihood: {state.log_likelihood:.6f}\n"
        body += f"Residual variance: {state.residual_variance:.6f}\n"
        body += f"Observations: {len(state.values)} (warm-up {state.warmup})\n"
        return header + body
