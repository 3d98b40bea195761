'''
Configuration management for the SARIMAX engine.

Settings are grouped into dataclass sections and resolved in layers:

1. Defaults built into the package
2. A user configuration file (JSON)
3. Environment variables named ``SARIMAX_<SECTION>_<OPTION>``
4. Runtime modifications through :func:`set_config`

Model configurations read their default tolerance and iteration budget from the
numerical section, and the diagnostic reporting reads its lag limits and
confidence level from the diagnostics section.
'''

import os
import json
import logging
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import InvalidConfigurationError

logger = logging.getLogger("sarimax_engine.core.config")

CONFIG_ENV_PREFIX = "SARIMAX_"
USER_CONFIG_DIR_ENV = "SARIMAX_CONFIG_DIR"
DEFAULT_CONFIG_FILENAME = "config.json"


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    NUMERICAL = "numerical"
    DIAGNOSTICS = "diagnostics"
    LOGGING = "logging"


@dataclass
class NumericalConfig:
    """
    Numerical settings used by estimation and forecasting.

    Attributes:
        tolerance: Log-likelihood improvement below which estimation stops
        max_iterations: Iteration budget of the damped Newton loop
        initial_step_size: Newton step scale at the first iteration
        step_growth: Factor applied to the step scale after an accepted step
        max_step_size: Upper bound of the step scale
        step_shrink: Factor applied to the step scale after a rejected step
        min_step_size: Step scale below which the search direction is abandoned
        finite_difference_step: Forward-difference step of the delta method
        hessian_step: Central-difference step of the likelihood gradient/Hessian
        variance_floor: Lower bound applied to the innovation variance
    """
    tolerance: float = 1e-6
    max_iterations: int = 1000
    initial_step_size: float = 0.01
    step_growth: float = 1.2
    max_step_size: float = 1.0
    step_shrink: float = 0.5
    min_step_size: float = 1e-12
    finite_difference_step: float = 1e-8
    hessian_step: float = 1e-4
    variance_floor: float = 1e-12


@dataclass
class DiagnosticsConfig:
    """
    Settings of the diagnostic reporting.

    Attributes:
        max_ljung_box_lags: Cap on the number of Ljung-Box lags
        ljung_box_lag_divisor: Ljung-Box lags are at most n // divisor
        max_plot_lags: Cap on the number of ACF/PACF plot lags
        plot_lag_divisor: Plot lags are at most n // divisor
        confidence_level: Two-sided level of plot bounds and forecast intervals
    """
    max_ljung_box_lags: int = 20
    ljung_box_lag_divisor: int = 5
    max_plot_lags: int = 40
    plot_lag_divisor: int = 4
    confidence_level: float = 0.95


@dataclass
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        log_level: Level of the package logger
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to the console
    """
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True


@dataclass
class EngineConfig:
    """Complete engine configuration combining every section."""
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _coerce(current_value: Any, value: Any) -> Any:
    """Convert ``value`` to the type of ``current_value``."""
    value_type = type(current_value)
    if value_type is bool and isinstance(value, str):
        return value.lower() in ('true', 'yes', '1', 'y')
    if value_type is int and isinstance(value, str):
        return int(float(value))
    if value_type is not type(value):
        return value_type(value)
    return value


class ConfigManager:
    """
    Configuration manager for the SARIMAX engine.

    Attributes:
        _config: The current configuration object
        _initialized: Whether user file and environment overrides have been applied
        _config_file: Path to the user configuration file
    """

    def __init__(self):
        self._config = EngineConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Load the user configuration file, apply environment overrides and
        configure the package logger. Subsequent calls are no-ops.
        """
        if self._initialized:
            return

        self._locate_user_config()
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _locate_user_config(self) -> None:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            user_config_dir = Path(env_config_dir)
        else:
            user_config_dir = Path.home() / ".sarimax_engine"
        self._config_file = user_config_dir / DEFAULT_CONFIG_FILENAME

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        """Apply ``SARIMAX_<SECTION>_<OPTION>`` environment variables."""
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX):
                continue

            parts = env_var[len(CONFIG_ENV_PREFIX):].lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts
            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                continue

            try:
                setattr(section_obj, option, _coerce(getattr(section_obj, option), value))
                logger.debug(f"Applied environment override: {env_var}={value}")
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to apply environment override {env_var}: {e}")

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section, options in config_dict.items():
            if not hasattr(self._config, section) or not isinstance(options, dict):
                logger.warning(f"Ignoring unknown configuration section: {section}")
                continue
            section_obj = getattr(self._config, section)
            for option, value in options.items():
                if not hasattr(section_obj, option):
                    logger.warning(f"Ignoring unknown configuration option: {section}.{option}")
                    continue
                setattr(section_obj, option, _coerce(getattr(section_obj, option), value))

    def _validate_config(self) -> None:
        numerical = self._config.numerical
        for name in ("tolerance", "initial_step_size", "max_step_size",
                     "min_step_size", "finite_difference_step", "hessian_step",
                     "variance_floor"):
            if getattr(numerical, name) <= 0:
                raise InvalidConfigurationError(
                    f"numerical.{name} must be positive",
                    setting=f"numerical.{name}",
                    value=getattr(numerical, name),
                    issue="Must be positive"
                )
        if numerical.max_iterations < 1:
            raise InvalidConfigurationError(
                "numerical.max_iterations must be at least 1",
                setting="numerical.max_iterations",
                value=numerical.max_iterations,
                issue="Must be >= 1"
            )
        if not 0 < numerical.step_shrink < 1 or numerical.step_growth < 1:
            raise InvalidConfigurationError(
                "Step shrink must lie in (0, 1) and step growth must be >= 1",
                setting="numerical.step_shrink/step_growth",
                value=(numerical.step_shrink, numerical.step_growth)
            )

        diagnostics = self._config.diagnostics
        if not 0 < diagnostics.confidence_level < 1:
            raise InvalidConfigurationError(
                "diagnostics.confidence_level must lie strictly between 0 and 1",
                setting="diagnostics.confidence_level",
                value=diagnostics.confidence_level
            )
        for name in ("max_ljung_box_lags", "ljung_box_lag_divisor",
                     "max_plot_lags", "plot_lag_divisor"):
            if getattr(diagnostics, name) < 1:
                raise InvalidConfigurationError(
                    f"diagnostics.{name} must be at least 1",
                    setting=f"diagnostics.{name}",
                    value=getattr(diagnostics, name)
                )

        if self._config.logging.log_level.upper() not in (
                "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise InvalidConfigurationError(
                "Unknown log level",
                setting="logging.log_level",
                value=self._config.logging.log_level
            )

    def _setup_logging(self) -> None:
        """Configure the package logger from the logging section."""
        package_logger = logging.getLogger("sarimax_engine")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level.upper()))

        if self._config.logging.console_logging:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(
                fmt=self._config.logging.log_format,
                datefmt=self._config.logging.log_date_format
            ))
            package_logger.addHandler(console_handler)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self._config)

    def get(self, section: str, option: str, default: Any = None) -> Any:
        if not hasattr(self._config, section):
            return default
        return getattr(getattr(self._config, section), option, default)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Raises:
            InvalidConfigurationError: If the section or option is unknown, the
                value cannot be converted, or the result violates a constraint
        """
        if not hasattr(self._config, section):
            raise InvalidConfigurationError(
                f"Unknown configuration section: {section}",
                setting=f"{section}.{option}",
                value=value,
                issue="Section not found"
            )

        section_obj = getattr(self._config, section)
        if not hasattr(section_obj, option):
            raise InvalidConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue="Option not found"
            )

        previous = getattr(section_obj, option)
        try:
            typed_value = _coerce(previous, value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(
                f"Failed to set configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=str(e)
            ) from e

        setattr(section_obj, option, typed_value)
        try:
            self._validate_config()
        except InvalidConfigurationError:
            setattr(section_obj, option, previous)
            raise

        self._modified_keys.add(f"{section}.{option}")
        if section == ConfigSection.LOGGING.value:
            self._setup_logging()
        logger.debug(f"Set configuration option: {section}.{option}={value}")

    def reset(self, section: Optional[str] = None) -> None:
        """Reset the whole configuration, or a single section, to defaults."""
        if section is None:
            self._config = EngineConfig()
            self._modified_keys.clear()
            logger.debug("Reset all configuration to defaults")
            return

        if not hasattr(self._config, section):
            raise InvalidConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )
        setattr(self._config, section, getattr(EngineConfig(), section))
        self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
        logger.debug(f"Reset configuration section: {section}")

    def get_modified_options(self) -> List[str]:
        return sorted(self._modified_keys)

    def get_section(self, section: str) -> Any:
        if not hasattr(self._config, section):
            raise InvalidConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )
        return getattr(self._config, section)

    def get_options(self, section: str) -> List[str]:
        return [f.name for f in fields(self.get_section(section))]


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    """Return the initialized module-level configuration manager."""
    if not _config_manager._initialized:
        _config_manager.initialize()
    return _config_manager


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found
    """
    return get_config_manager().get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        InvalidConfigurationError: If the section or option is not found
    """
    get_config_manager().set(section, option, value)


def reset_config(section: Optional[str] = None) -> None:
    """Reset configuration to default values."""
    get_config_manager().reset(section)


def get_numerical_config() -> NumericalConfig:
    return get_config_manager().get_section("numerical")


def get_diagnostics_config() -> DiagnosticsConfig:
    return get_config_manager().get_section("diagnostics")


def get_logging_config() -> LoggingConfig:
    return get_config_manager().get_section("logging")
