"""
SARIMAX engine core module.

Base model class, parameter layout, record types, configuration management
and the exception hierarchy shared by every other module.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("sarimax_engine.core")

from .base import ModelBase
from .config import (
    ConfigManager, EngineConfig, NumericalConfig, DiagnosticsConfig, LoggingConfig,
    get_config, set_config, reset_config, get_config_manager,
    get_numerical_config, get_diagnostics_config, get_logging_config
)
from .exceptions import (
    SarimaxError, InvalidConfigurationError, MissingExogenousDataError,
    ModelNotFitError, InvalidInputError, NumericError, SarimaxWarning, NumericWarning
)
from .parameters import ExogenousBlock, NonSeasonalBlock, SARIMAXParameters, SeasonalBlock
from .types import Observation, observations_from_pandas, observations_to_frame

__all__ = [
    "ModelBase",
    "ConfigManager", "EngineConfig", "NumericalConfig", "DiagnosticsConfig", "LoggingConfig",
    "get_config", "set_config", "reset_config", "get_config_manager",
    "get_numerical_config", "get_diagnostics_config", "get_logging_config",
    "SarimaxError", "InvalidConfigurationError", "MissingExogenousDataError",
    "ModelNotFitError", "InvalidInputError", "NumericError", "SarimaxWarning", "NumericWarning",
    "ExogenousBlock", "NonSeasonalBlock", "SARIMAXParameters", "SeasonalBlock",
    "Observation", "observations_from_pandas", "observations_to_frame",
]
