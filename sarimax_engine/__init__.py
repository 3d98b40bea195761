# sarimax_engine/__init__.py
"""
SARIMAX Engine - Seasonal ARIMA forecasting with exogenous regressors

The engine fits Seasonal ARIMA models with exogenous covariates by maximum
likelihood, produces multi-step forecasts with prediction intervals and
derives diagnostics for model selection and out-of-sample evaluation:

- SARIMAX estimation with damped Newton iterations
- Forecasts with innovation and parameter uncertainty
- Information criteria, residual tests and plot-ready series
- Rolling-window, k-fold and expanding-window backtesting
- Seasonal decomposition utilities

This module serves as the main entry point of the package.
"""

import importlib
import logging
import warnings

from .version import __version__, __title__, __description__, __license__

# Set up package-wide logger
logger = logging.getLogger("sarimax_engine")

from .core.config import get_config_manager

get_config_manager().initialize()

from .core.exceptions import (
    SarimaxError, InvalidConfigurationError, MissingExogenousDataError,
    ModelNotFitError, InvalidInputError, NumericError,
    SarimaxWarning, NumericWarning
)
from .core.types import Observation, observations_from_pandas, observations_to_frame
from .models.time_series import (
    SeasonalOrder, SARIMAXConfig, SARIMAXModel, FittedState,
    ForecastResult, ConfidenceInterval, DiagnosticResult,
    seasonal_decompose, seasonal_strength, find_seasonal_peaks,
    rolling_window_analysis, cross_validate, expanding_window_validation,
    parameter_stability, summarize_folds
)


def set_log_level(level: str) -> None:
    """
    Set the logging level of the package logger.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    logger.setLevel(numeric_level)
    logger.debug(f"Log level set to {level.upper()}")


def _check_dependencies() -> None:
    """
    Check for required dependencies and their versions.

    Warns if dependencies are outdated.
    """
    required_packages = {
        "numpy": "1.26.0",
        "scipy": "1.11.3",
        "pandas": "2.1.1",
        "numba": "0.58.0",
    }

    for package, min_version in required_packages.items():
        imported = importlib.import_module(package)
        pkg_version = getattr(imported, "__version__", None)
        if pkg_version is None:
            logger.warning(f"Cannot determine version for {package}")
            continue
        current = tuple(int(p) for p in pkg_version.split(".")[:2] if p.isdigit())
        required = tuple(int(p) for p in min_version.split(".")[:2])
        if current < required:
            warnings.warn(
                f"{package} version {pkg_version} is older than the recommended "
                f"version {min_version}. This may cause compatibility issues.",
                UserWarning
            )


_check_dependencies()

__all__ = [
    "__version__",
    "set_log_level",
    # Exceptions
    "SarimaxError", "InvalidConfigurationError", "MissingExogenousDataError",
    "ModelNotFitError", "InvalidInputError", "NumericError",
    "SarimaxWarning", "NumericWarning",
    # Records
    "Observation", "observations_from_pandas", "observations_to_frame",
    # Model
    "SeasonalOrder", "SARIMAXConfig", "SARIMAXModel", "FittedState",
    "ForecastResult", "ConfidenceInterval", "DiagnosticResult",
    # Utilities
    "seasonal_decompose", "seasonal_strength", "find_seasonal_peaks",
    "rolling_window_analysis", "cross_validate", "expanding_window_validation",
    "parameter_stability", "summarize_folds",
]
