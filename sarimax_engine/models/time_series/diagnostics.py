# sarimax_engine/models/time_series/diagnostics.py
"""
Diagnostic reporting for fitted SARIMAX models.

This module turns residuals and fitted parameters into model-selection
criteria, residual hypothesis tests, per-parameter statistics and plot-ready
series. ``compute_diagnostics`` assembles all of them into an immutable
``DiagnosticResult``.

Conventions:

- n is the number of residuals after the warm-up and k the number of
  estimated parameters.
- Ljung-Box is n(n+2) Σ_{h=1..L} r_h² / (n - h - 1) over L = min(20, n // 5) lags,
  Box-Pierce is n Σ r_h²; both use max(L - k, 1) degrees of freedom.
- Jarque-Bera uses excess kurtosis: n (S²/6 + K²/24) with 2 degrees of freedom.
- The white-noise test compares the normalized cumulative periodogram with
  the diagonal; D is the largest deviation over the m Fourier frequencies and
  the p-value is min(1, 2 exp(-2 m D²)).
- AICc is +inf when n <= k + 1, FPE is +inf when n <= k and Mallows' Cp is
  NaN when the residual variance is zero.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from sarimax_engine.core.config import get_diagnostics_config, get_numerical_config
from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.models.time_series.correlation import acf
from sarimax_engine.models.time_series.plots import DiagnosticPlots, diagnostic_plots
from sarimax_engine.utils.statistics import (
    as_series, chi_square_inverse_cdf, chi_square_survival, durbin_watson,
    kurtosis, mean, normal_cdf, periodogram, skewness, variance
)

logger = logging.getLogger("sarimax_engine.models.time_series.diagnostics")


@dataclass(frozen=True)
class InformationCriteria:
    """Model-selection criteria.

    Attributes:
        aic: Akaike Information Criterion
        bic: Bayesian Information Criterion
        hqic: Hannan-Quinn Information Criterion
        aicc: Small-sample corrected AIC
        mallows_cp: Mallows' Cp, RSS / variance - n + 2k
        fpe: Final Prediction Error, variance (n + k) / (n - k)
        log_likelihood: Log-likelihood value
        nobs: Number of residuals
        nparams: Number of estimated parameters
    """
    aic: float
    bic: float
    hqic: float
    aicc: float
    mallows_cp: float
    fpe: float
    log_likelihood: float
    nobs: int
    nparams: int

    def __str__(self) -> str:
        return (
            f"Information Criteria (nobs={self.nobs}, nparams={self.nparams}):\n"
            f"  AIC:   {self.aic:.6f}\n"
            f"  BIC:   {self.bic:.6f}\n"
            f"  HQIC:  {self.hqic:.6f}\n"
            f"  AICc:  {self.aicc:.6f}\n"
            f"  Cp:    {self.mallows_cp:.6f}\n"
            f"  FPE:   {self.fpe:.6f}\n"
            f"  Log-likelihood: {self.log_likelihood:.6f}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TestResult:
    """Result of a residual hypothesis test.

    Attributes:
        test_name: Name of the test
        test_statistic: Test statistic value
        p_value: P-value of the test
        degrees_of_freedom: Degrees of freedom of the reference distribution
        lags: Number of lags used (correlation tests)
        critical_values: Critical values at conventional levels
        null_hypothesis: Description of the null hypothesis
        significance_level: Level used for ``reject_null``
    """
    __test__ = False

    test_name: str
    test_statistic: float
    p_value: float
    degrees_of_freedom: Optional[float] = None
    lags: Optional[int] = None
    critical_values: Dict[str, float] = field(default_factory=dict)
    null_hypothesis: str = ""
    significance_level: float = 0.05

    @property
    def reject_null(self) -> bool:
        return self.p_value < self.significance_level

    @property
    def conclusion(self) -> str:
        verdict = "Reject" if self.reject_null else "Fail to reject"
        return f"{verdict} null hypothesis at {self.significance_level:.2f} significance level"

    def __str__(self) -> str:
        result = [
            f"{self.test_name} Test Results:",
            f"  Test statistic: {self.test_statistic:.6f}",
            f"  P-value: {self.p_value:.6f}",
        ]
        if self.critical_values:
            result.append("  Critical values:")
            for level, value in self.critical_values.items():
                result.append(f"    {level}: {value:.6f}")
        if self.null_hypothesis:
            result.append(f"  Null hypothesis: {self.null_hypothesis}")
        result.append(f"  Conclusion: {self.conclusion}")
        return "\n".join(result)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ParameterStatistic:
    """Estimate of one parameter with its Wald statistics."""
    name: str
    value: float
    standard_error: float
    t_statistic: float
    p_value: float


@dataclass(frozen=True)
class ResidualStatistics:
    """Moments and tests of the post-warm-up residuals."""
    mean: float
    variance: float
    skewness: float
    kurtosis: float
    ljung_box: TestResult
    box_pierce: TestResult
    jarque_bera: TestResult
    white_noise: TestResult
    durbin_watson: float


def _critical_values(degrees_of_freedom: float) -> Dict[str, float]:
    return {
        "1%": chi_square_inverse_cdf(0.99, degrees_of_freedom),
        "5%": chi_square_inverse_cdf(0.95, degrees_of_freedom),
        "10%": chi_square_inverse_cdf(0.90, degrees_of_freedom),
    }


def default_lags(nobs: int) -> int:
    """min(max_ljung_box_lags, n // ljung_box_lag_divisor), at least 1."""
    config = get_diagnostics_config()
    return max(1, min(config.max_ljung_box_lags, nobs // config.ljung_box_lag_divisor))


def information_criteria(log_likelihood: float,
                         residuals: Sequence[float],
                         nparams: int) -> InformationCriteria:
    """
    Calculate model-selection criteria.

    Args:
        log_likelihood: Log-likelihood of the model
        residuals: Residuals the likelihood was computed from
        nparams: Number of estimated parameters

    Returns:
        InformationCriteria: All six criteria

    Raises:
        InvalidInputError: If the residuals are empty or the likelihood is not finite
    """
    e = as_series(residuals, "residuals")
    if not np.isfinite(log_likelihood):
        raise_invalid_input("Log-likelihood must be finite",
                            data_name="log_likelihood", issue=f"value={log_likelihood}")
    n, k = len(e), int(nparams)

    aic = -2 * log_likelihood + 2 * k
    bic = -2 * log_likelihood + k * np.log(n)
    hqic = -2 * log_likelihood + 2 * k * np.log(np.log(n)) if n > 1 else np.nan
    aicc = aic + 2 * k * (k + 1) / (n - k - 1) if n - k - 1 > 0 else np.inf

    residual_variance = variance(e)
    rss = float(np.sum(e ** 2))
    mallows_cp = rss / residual_variance - n + 2 * k if residual_variance > 0 else np.nan
    fpe = residual_variance * (n + k) / (n - k) if n > k else np.inf

    return InformationCriteria(
        aic=float(aic), bic=float(bic), hqic=float(hqic), aicc=float(aicc),
        mallows_cp=float(mallows_cp), fpe=float(fpe),
        log_likelihood=float(log_likelihood), nobs=n, nparams=k
    )


def ljung_box(residuals: Sequence[float],
              lags: Optional[int] = None,
              nparams: int = 0,
              significance_level: float = 0.05) -> TestResult:
    """
    Ljung-Box test for autocorrelation in residuals.

        Q = n (n + 2) sum_{h=1..L} r_h^2 / (n - h - 1)

    Args:
        residuals: Residuals to test
        lags: Number of lags L (default: min(20, n // 5))
        nparams: Number of estimated parameters subtracted from the degrees of freedom
        significance_level: Significance level for the test

    Returns:
        TestResult: Statistic Q, chi-square survival p-value with max(L - k, 1)
        degrees of freedom

    Raises:
        InvalidInputError: If the series holds fewer than ``lags + 2`` points or is constant
    """
    e = as_series(residuals, "residuals")
    n = len(e)
    lags = default_lags(n) if lags is None else int(lags)
    if lags > n - 2:
        raise_invalid_input(f"Ljung-Box needs at least lags + 2 residuals, got {n} for {lags} lags",
                            data_name="residuals", issue=f"n={n}, lags={lags}")
    r = acf(e, lags)[1:]
    h = np.arange(1, lags + 1)
    statistic = float(n * (n + 2) * np.sum(r ** 2 / (n - h - 1)))
    df = max(lags - int(nparams), 1)
    return TestResult(
        test_name="Ljung-Box",
        test_statistic=statistic,
        p_value=chi_square_survival(statistic, df),
        degrees_of_freedom=df,
        lags=lags,
        critical_values=_critical_values(df),
        null_hypothesis="No autocorrelation in residuals",
        significance_level=significance_level
    )


def box_pierce(residuals: Sequence[float],
               lags: Optional[int] = None,
               nparams: int = 0,
               significance_level: float = 0.05) -> TestResult:
    """Box-Pierce test, n Σ r_h² with the Ljung-Box lag and degrees-of-freedom rules."""
    e = as_series(residuals, "residuals")
    n = len(e)
    lags = default_lags(n) if lags is None else int(lags)
    r = acf(e, lags)[1:]
    statistic = float(n * np.sum(r ** 2))
    df = max(lags - int(nparams), 1)
    return TestResult(
        test_name="Box-Pierce",
        test_statistic=statistic,
        p_value=chi_square_survival(statistic, df),
        degrees_of_freedom=df,
        lags=lags,
        critical_values=_critical_values(df),
        null_hypothesis="No autocorrelation in residuals",
        significance_level=significance_level
    )


def jarque_bera(residuals: Sequence[float], significance_level: float = 0.05) -> TestResult:
    """Jarque-Bera normality test n (S²/6 + K²/24), K the excess kurtosis."""
    e = as_series(residuals, "residuals")
    statistic = float(len(e) * (skewness(e) ** 2 / 6 + kurtosis(e) ** 2 / 24))
    return TestResult(
        test_name="Jarque-Bera",
        test_statistic=statistic,
        p_value=chi_square_survival(statistic, 2),
        degrees_of_freedom=2,
        critical_values=_critical_values(2),
        null_hypothesis="Residuals are normally distributed",
        significance_level=significance_level
    )


def white_noise_test(residuals: Sequence[float], significance_level: float = 0.05) -> TestResult:
    """
    Cumulative periodogram test for white noise.

    Raises:
        InvalidInputError: If the residuals have fewer than 2 points or no
            spectral power (constant series)
    """
    _, power = periodogram(residuals)
    total = power.sum()
    if total <= 0:
        raise_invalid_input("Periodogram of a constant series has no power",
                            data_name="residuals", issue="Zero variance")
    m = len(power)
    cumulative = np.cumsum(power) / total
    statistic = float(np.max(np.abs(cumulative - np.arange(1, m + 1) / m)))
    p_value = float(min(1.0, 2.0 * np.exp(-2.0 * m * statistic ** 2)))
    return TestResult(
        test_name="Cumulative periodogram",
        test_statistic=statistic,
        p_value=p_value,
        null_hypothesis="Residuals are white noise",
        significance_level=significance_level
    )


def residual_statistics(residuals: Sequence[float], nparams: int = 0) -> ResidualStatistics:
    e = as_series(residuals, "residuals", min_length=2)
    return ResidualStatistics(
        mean=mean(e),
        variance=variance(e),
        skewness=skewness(e),
        kurtosis=kurtosis(e),
        ljung_box=ljung_box(e, nparams=nparams),
        box_pierce=box_pierce(e, nparams=nparams),
        jarque_bera=jarque_bera(e),
        white_noise=white_noise_test(e),
        durbin_watson=durbin_watson(e)
    )


def parameter_statistics(state) -> List[ParameterStatistic]:
    """
    Wald statistics of the estimated parameters.

    Standard errors are the square roots of the absolute diagonal of the
    parameter covariance; p-values are two-sided from the normal CDF.
    """
    values = state.parameters.to_array()
    names = state.parameters.names()
    standard_errors = np.sqrt(np.abs(np.diag(state.covariance))) if len(values) else np.zeros(0)
    with np.errstate(divide="ignore", invalid="ignore"):
        t_statistics = values / standard_errors
    p_values = 2.0 * np.asarray(normal_cdf(-np.abs(t_statistics)), dtype=np.float64)
    return [
        ParameterStatistic(name, float(v), float(se), float(t), float(p))
        for name, v, se, t, p in zip(names, values, standard_errors, t_statistics, p_values)
    ]


@dataclass(frozen=True, eq=False)
class DiagnosticResult:
    """Immutable snapshot of diagnostics for a fitted model.

    Attributes:
        model_selection: Information criteria
        residual_statistics: Moments and residual tests
        parameter_statistics: One entry per estimated parameter
        plots: Plot-ready series
        residuals: Post-warm-up residuals the statistics were computed from
        timestamps: Timestamps of those residuals
    """
    model_selection: InformationCriteria
    residual_statistics: ResidualStatistics
    parameter_statistics: Tuple[ParameterStatistic, ...]
    plots: DiagnosticPlots
    residuals: np.ndarray
    timestamps: Tuple[Any, ...]

    def parameter_table(self) -> pd.DataFrame:
        """Parameter statistics as a DataFrame indexed by parameter name."""
        columns = ["value", "std_error", "t_stat", "p_value"]
        rows = [[s.value, s.standard_error, s.t_statistic, s.p_value]
                for s in self.parameter_statistics]
        index = pd.Index([s.name for s in self.parameter_statistics], name="parameter")
        return pd.DataFrame(rows, index=index, columns=columns, dtype=float)

    def summary(self) -> str:
        stats = self.residual_statistics
        lines = [str(self.model_selection), "", "Residual Statistics:", "-" * 40,
                 f"  Mean: {stats.mean:.6f}",
                 f"  Variance: {stats.variance:.6f}",
                 f"  Skewness: {stats.skewness:.6f}",
                 f"  Excess kurtosis: {stats.kurtosis:.6f}",
                 f"  Durbin-Watson: {stats.durbin_watson:.6f}", ""]
        for test in (stats.ljung_box, stats.box_pierce, stats.jarque_bera, stats.white_noise):
            lines.append(str(test))
        lines.extend(["", "Parameter Estimates:", self.parameter_table().to_string()])
        return "\n".join(lines)


def compute_diagnostics(state,
                        values: np.ndarray,
                        exog: np.ndarray,
                        timestamps: Sequence[Any]) -> DiagnosticResult:
    """
    Diagnostics of fitted parameters on an observation series.

    The one-step recursion is replayed over ``values`` with the estimated
    parameters; statistics use the residuals after the warm-up.

    Args:
        state: ``FittedState`` of a SARIMAX model
        values: Observed series
        exog: Covariates, shape (len(values), k)
        timestamps: Timestamps of ``values``

    Returns:
        DiagnosticResult: Criteria, residual statistics, parameter statistics
        and plot-ready series

    Raises:
        InvalidInputError: If fewer than 2 residuals remain after the warm-up or
            the residuals are constant
    """
    params = state.parameters.to_array()
    structure = state.structure
    _, residuals = structure.one_step(values, exog, params)
    effective = residuals[structure.warmup:]
    log_likelihood = structure.log_likelihood(values, exog, params,
                                              get_numerical_config().variance_floor)
    k = state.parameters.size

    result = DiagnosticResult(
        model_selection=information_criteria(log_likelihood, effective, k),
        residual_statistics=residual_statistics(effective, k),
        parameter_statistics=tuple(parameter_statistics(state)),
        plots=diagnostic_plots(effective, list(timestamps)[structure.warmup:]),
        residuals=effective,
        timestamps=tuple(timestamps)[structure.warmup:]
    )
    logger.debug(f"Diagnostics computed on {len(effective)} residuals")
    return result
