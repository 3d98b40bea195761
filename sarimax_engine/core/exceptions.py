'''
Custom exception classes for the SARIMAX engine.

This module defines the exception hierarchy used throughout the engine. Every
error carries a primary message, optional details and a context dictionary so
that callers can see which setting, series or operation triggered the failure.

The four conditions callers are expected to handle are InvalidConfigurationError
(raised while constructing a model configuration), MissingExogenousDataError
(raised by fit/predict before any computation), ModelNotFitError (raised when a
fitted state is required but absent) and InvalidInputError (raised by the
statistics primitives for empty or too-short series). Non-convergence of the
estimation loop is not part of this hierarchy; it is reported
through the fitted state.
'''

from typing import Any, Dict, Optional, Sequence
import inspect
import warnings
from pathlib import Path

import numpy as np


class SarimaxError(Exception):
    """Base exception class for all SARIMAX engine errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"

        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            full_message += f"\n\nContext:\n{context_str}"

        # Add caller information for better debugging
        frame = inspect.currentframe()
        if frame:
            try:
                frame = frame.f_back
                if frame:
                    caller_info = inspect.getframeinfo(frame)
                    full_message += f"\n\nLocation: {Path(caller_info.filename).name}:{caller_info.lineno}"
            finally:
                del frame  # Avoid reference cycles

        super().__init__(full_message)


class InvalidConfigurationError(SarimaxError):
    """Exception raised for an invalid model configuration.

    Raised synchronously while a configuration is constructed, for example for a
    negative order component or a non-positive seasonal period.

    Attributes:
        setting: The configuration setting that is invalid
        value: The invalid value
        issue: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 setting: Optional[str] = None,
                 value: Optional[Any] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.setting = setting
        self.value = value
        self.issue = issue

        context_dict = context or {}
        if setting:
            context_dict["Setting"] = setting
        if value is not None:
            context_dict["Value"] = value
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class MissingExogenousDataError(SarimaxError):
    """Exception raised when declared exogenous covariates are not supplied.

    Attributes:
        missing: Names of the exogenous variables that are absent
        index: Observation index (fit) or forecast step (predict) where the gap was found
        operation: The operation that required the covariates
    """

    def __init__(self,
                 message: str,
                 missing: Optional[Sequence[str]] = None,
                 index: Optional[int] = None,
                 operation: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.missing = list(missing) if missing is not None else []
        self.index = index
        self.operation = operation

        context_dict = context or {}
        if self.missing:
            context_dict["Missing"] = ", ".join(self.missing)
        if index is not None:
            context_dict["Index"] = index
        if operation:
            context_dict["Operation"] = operation

        super().__init__(message, details, context_dict)


class ModelNotFitError(SarimaxError):
    """Exception raised when an operation requires a fitted model.

    Attributes:
        model_type: The type of model
        operation: The operation that requires a fitted model
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.operation = operation

        context_dict = context or {}
        if model_type:
            context_dict["Model Type"] = model_type
        if operation:
            context_dict["Operation"] = operation

        super().__init__(message, details, context_dict)


class InvalidInputError(SarimaxError):
    """Exception raised for empty, degenerate or too-short input series.

    Attributes:
        data_name: The name of the input that caused the error
        issue: Description of the issue with the input
        index: The index or location where the issue was detected
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 index: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue
        self.index = index

        context_dict = context or {}
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue
        if index is not None:
            context_dict["Index"] = index

        super().__init__(message, details, context_dict)


class NumericError(SarimaxError):
    """Exception raised for unrecoverable numerical failures.

    Attributes:
        operation: The operation that caused the error
        values: The values that caused the error
        error_type: The type of numerical error (e.g., "singular", "overflow")
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 values: Optional[Any] = None,
                 error_type: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.values = values
        self.error_type = error_type

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if values is not None:
            if isinstance(values, np.ndarray) and values.size > 10:
                context_dict["Values"] = f"Array with shape {values.shape}"
            else:
                context_dict["Values"] = values
        if error_type:
            context_dict["Error Type"] = error_type

        super().__init__(message, details, context_dict)


class SarimaxWarning(Warning):
    """Base warning class for all SARIMAX engine warnings."""

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"

        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            full_message += f"\n\nContext:\n{context_str}"

        super().__init__(full_message)


class NumericWarning(SarimaxWarning):
    """Warning for recoverable numerical issues such as a singular information matrix.

    Attributes:
        operation: The operation where the issue was detected
        issue: Description of the numerical issue
        value: The value that may cause numerical issues
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            if isinstance(value, np.ndarray) and value.size > 10:
                context_dict["Value"] = f"Array with shape {value.shape}"
            else:
                context_dict["Value"] = value

        super().__init__(message, details, context_dict)


def raise_invalid_input(message: str,
                        data_name: Optional[str] = None,
                        issue: Optional[str] = None,
                        index: Optional[Any] = None,
                        details: Optional[str] = None,
                        context: Optional[Dict[str, Any]] = None) -> None:
    """Raise an InvalidInputError with consistent formatting.

    Raises:
        InvalidInputError: The formatted input error
    """
    raise InvalidInputError(message, data_name, issue, index, details, context)


def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context),
        stacklevel=2
    )
