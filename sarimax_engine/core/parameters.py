# sarimax_engine/core/parameters.py

"""
Parameter containers for SARIMAX models.

The estimated coefficients are held in named blocks rather than in one flat
array addressed by offsets: one ``SeasonalBlock`` per seasonal component, one
``NonSeasonalBlock`` and one ``ExogenousBlock``. The flat vector needed by the
optimizer and the delta method is produced by ``to_array`` and read back by
``from_array``; those two methods are the only places that know the order of
the blocks (seasonal components first, then the non-seasonal block, then the
exogenous coefficients as the trailing entries).
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import InvalidInputError


def _as_float_array(values: Optional[Sequence[float]]) -> np.ndarray:
    if values is None:
        return np.zeros(0)
    return np.asarray(values, dtype=np.float64).reshape(-1)


def _is_stationary_polynomial(coefficients: np.ndarray) -> bool:
    """Check that all roots of 1 - c_1 z - ... - c_p z^p lie outside the unit circle."""
    if len(coefficients) == 0 or not np.any(np.abs(coefficients) > 0):
        return True
    companion = np.zeros((len(coefficients), len(coefficients)))
    companion[0, :] = coefficients
    companion[1:, :-1] = np.eye(len(coefficients) - 1)
    return bool(np.all(np.abs(np.linalg.eigvals(companion)) < 1))


@dataclass
class NonSeasonalBlock:
    """AR and MA coefficients of the non-seasonal component.

    Attributes:
        ar: Coefficients of lags 1..p
        ma: Coefficients of lagged innovations 1..q
    """
    ar: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ma: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.ar = _as_float_array(self.ar)
        self.ma = _as_float_array(self.ma)

    @property
    def size(self) -> int:
        return len(self.ar) + len(self.ma)


@dataclass
class SeasonalBlock:
    """AR and MA coefficients of one seasonal component.

    Attributes:
        period: Seasonal period s
        ar: Coefficients of lags s, 2s, ..., Ps
        ma: Coefficients of lagged innovations s, 2s, ..., Qs
    """
    period: int
    ar: np.ndarray = field(default_factory=lambda: np.zeros(0))
    ma: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.period = int(self.period)
        self.ar = _as_float_array(self.ar)
        self.ma = _as_float_array(self.ma)

    @property
    def size(self) -> int:
        return len(self.ar) + len(self.ma)


@dataclass
class ExogenousBlock:
    """Regression coefficients of the exogenous covariates, keyed by name."""
    names: Tuple[str, ...] = ()
    coefficients: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.names = tuple(self.names)
        self.coefficients = _as_float_array(self.coefficients)
        if len(self.coefficients) == 0 and self.names:
            self.coefficients = np.zeros(len(self.names))
        if len(self.coefficients) != len(self.names):
            raise InvalidInputError(
                "Number of exogenous coefficients does not match the number of names",
                data_name="coefficients",
                issue=f"{len(self.coefficients)} coefficients for {len(self.names)} names"
            )

    @property
    def size(self) -> int:
        return len(self.names)


@dataclass
class SARIMAXParameters:
    """Complete coefficient set of a SARIMAX model.

    Attributes:
        non_seasonal: Non-seasonal AR/MA block
        seasonal: One block per seasonal component, in configuration order
        exogenous: Exogenous regression block
    """
    non_seasonal: NonSeasonalBlock = field(default_factory=NonSeasonalBlock)
    seasonal: List[SeasonalBlock] = field(default_factory=list)
    exogenous: ExogenousBlock = field(default_factory=ExogenousBlock)

    @classmethod
    def zeros(cls,
              ar_order: int,
              ma_order: int,
              seasonal: Sequence[Tuple[int, int, int]] = (),
              exogenous_names: Sequence[str] = ()) -> 'SARIMAXParameters':
        """Create an all-zero parameter set.

        Args:
            ar_order: Non-seasonal AR order p
            ma_order: Non-seasonal MA order q
            seasonal: (period, P, Q) for each seasonal component
            exogenous_names: Names of the exogenous covariates
        """
        return cls(
            non_seasonal=NonSeasonalBlock(np.zeros(ar_order), np.zeros(ma_order)),
            seasonal=[SeasonalBlock(period, np.zeros(P), np.zeros(Q))
                      for period, P, Q in seasonal],
            exogenous=ExogenousBlock(tuple(exogenous_names), np.zeros(len(exogenous_names)))
        )

    @property
    def sarima_size(self) -> int:
        """Number of seasonal and non-seasonal ARMA coefficients."""
        return sum(block.size for block in self.seasonal) + self.non_seasonal.size

    @property
    def size(self) -> int:
        return self.sarima_size + self.exogenous.size

    def to_array(self) -> np.ndarray:
        """Flatten to the optimizer vector; exogenous coefficients are trailing."""
        parts = []
        for block in self.seasonal:
            parts.extend([block.ar, block.ma])
        parts.extend([self.non_seasonal.ar, self.non_seasonal.ma, self.exogenous.coefficients])
        return np.concatenate(parts) if parts else np.zeros(0)

    def from_array(self, array: np.ndarray) -> 'SARIMAXParameters':
        """Return a copy of this layout filled with the values of ``array``.

        Raises:
            InvalidInputError: If the array length doesn't match the layout
        """
        array = np.asarray(array, dtype=np.float64).reshape(-1)
        if len(array) != self.size:
            raise InvalidInputError(
                f"Array length ({len(array)}) doesn't match expected length ({self.size})",
                data_name="array",
                issue="Length mismatch"
            )

        position = 0

        def take(count: int) -> np.ndarray:
            nonlocal position
            chunk = array[position:position + count].copy()
            position += count
            return chunk

        seasonal = []
        for block in self.seasonal:
            ar = take(len(block.ar))
            ma = take(len(block.ma))
            seasonal.append(SeasonalBlock(block.period, ar, ma))
        ar = take(len(self.non_seasonal.ar))
        ma = take(len(self.non_seasonal.ma))
        coefficients = take(self.exogenous.size)

        return SARIMAXParameters(
            non_seasonal=NonSeasonalBlock(ar, ma),
            seasonal=seasonal,
            exogenous=replace(self.exogenous, coefficients=coefficients)
        )

    def split(self, array: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Split a flat vector into its SARIMA part and its trailing exogenous part."""
        array = np.asarray(array, dtype=np.float64)
        return array[:self.sarima_size], array[self.sarima_size:]

    def names(self) -> List[str]:
        """Parameter names in ``to_array`` order."""
        periods = [block.period for block in self.seasonal]
        names: List[str] = []
        for index, block in enumerate(self.seasonal):
            label = f"S{block.period}"
            if periods.count(block.period) > 1:
                label += f"[{index}]"
            names.extend(f"ar.{label}.L{lag}" for lag in range(1, len(block.ar) + 1))
            names.extend(f"ma.{label}.L{lag}" for lag in range(1, len(block.ma) + 1))
        names.extend(f"ar.L{lag}" for lag in range(1, len(self.non_seasonal.ar) + 1))
        names.extend(f"ma.L{lag}" for lag in range(1, len(self.non_seasonal.ma) + 1))
        names.extend(f"exog.{name}" for name in self.exogenous.names)
        return names

    def to_dict(self) -> Dict[str, float]:
        return dict(zip(self.names(), self.to_array().tolist()))

    def kernel_arrays(self) -> Tuple[np.ndarray, ...]:
        """Arrays consumed by the jit recursion.

        Returns:
            (ar, ma, periods, seasonal_ar, seasonal_ar_orders, seasonal_ma,
            seasonal_ma_orders, beta) where the seasonal coefficient matrices
            have one zero-padded row per component
        """
        n_components = len(self.seasonal)
        max_p = max((len(b.ar) for b in self.seasonal), default=0)
        max_q = max((len(b.ma) for b in self.seasonal), default=0)
        periods = np.array([b.period for b in self.seasonal], dtype=np.int64)
        ar_orders = np.array([len(b.ar) for b in self.seasonal], dtype=np.int64)
        ma_orders = np.array([len(b.ma) for b in self.seasonal], dtype=np.int64)
        seasonal_ar = np.zeros((n_components, max_p))
        seasonal_ma = np.zeros((n_components, max_q))
        for i, block in enumerate(self.seasonal):
            seasonal_ar[i, :len(block.ar)] = block.ar
            seasonal_ma[i, :len(block.ma)] = block.ma
        return (self.non_seasonal.ar.copy(), self.non_seasonal.ma.copy(), periods,
                seasonal_ar, ar_orders, seasonal_ma, ma_orders,
                self.exogenous.coefficients.copy())

    def is_stationary(self) -> bool:
        """Whether every AR polynomial (seasonal ones in the seasonal lag) is stationary."""
        return (_is_stationary_polynomial(self.non_seasonal.ar)
                and all(_is_stationary_polynomial(b.ar) for b in self.seasonal))

    def is_invertible(self) -> bool:
        """Whether every MA polynomial is invertible."""
        return (_is_stationary_polynomial(-self.non_seasonal.ma)
                and all(_is_stationary_polynomial(-b.ma) for b in self.seasonal))
