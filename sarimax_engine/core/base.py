# sarimax_engine/core/base.py

"""
Abstract base class for forecasting models.

A model starts Unfit, holding only its configuration. ``fit`` produces a state
object and moves the model to Fit; a later ``fit`` replaces that state. Every
operation that needs the state goes through ``_require_fit`` so that calling it
early fails with ``ModelNotFitError``.
"""

import abc
from typing import Any, Generic, Optional, Sequence, TypeVar

from .exceptions import ModelNotFitError

C = TypeVar('C')  # Configuration type
S = TypeVar('S')  # Fitted state type
F = TypeVar('F')  # Forecast type
D = TypeVar('D')  # Diagnostics type


class ModelBase(abc.ABC, Generic[C, S, F, D]):
    """Abstract base class for all models of the engine.

    Type Parameters:
        C: The configuration type of this model
        S: The fitted state produced by ``fit``
        F: The forecast type produced by ``predict``
        D: The diagnostics type produced by ``get_diagnostics``
    """

    def __init__(self, config: C, name: str = "Model"):
        self._config = config
        self._name = name
        self._state: Optional[S] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> C:
        return self._config

    @property
    def fitted(self) -> bool:
        """True once ``fit`` has completed successfully."""
        return self._state is not None

    @property
    def state(self) -> S:
        """The fitted state.

        Raises:
            ModelNotFitError: If the model has not been fitted
        """
        return self._require_fit("state")

    def _require_fit(self, operation: str) -> S:
        if self._state is None:
            raise ModelNotFitError(
                f"{self._name} must be fitted before calling {operation}()",
                model_type=self._name,
                operation=operation
            )
        return self._state

    @abc.abstractmethod
    def fit(self, observations: Sequence[Any]) -> S:
        """Estimate the model from an ordered observation sequence."""

    @abc.abstractmethod
    def predict(self, horizon: int, exogenous: Optional[Sequence[Any]] = None) -> F:
        """Forecast ``horizon`` steps past the end of the fitted series."""

    @abc.abstractmethod
    def get_diagnostics(self, observations: Sequence[Any]) -> D:
        """Derive diagnostics from the fitted state and the observation series."""

    def __repr__(self) -> str:
        status = "fitted" if self.fitted else "unfit"
        return f"{type(self).__name__}(name={self._name!r}, {status})"
