# sarimax_engine/core/types.py

"""
Core type annotations and record types for the SARIMAX engine.

Besides the array aliases used in signatures, this module defines the
``Observation`` record that is the unit of input to fitting, diagnostics and
backtesting, and a helper building observation sequences from pandas objects.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

# NumPy array aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array
CovarianceMatrix = np.ndarray  # Symmetric covariance matrix

# Objective of the estimation loop: flat parameter vector -> log-likelihood
ObjectiveFunction = Callable[[Vector], float]


@dataclass(frozen=True)
class Observation:
    """
    A single point of a metric series.

    Attributes:
        timestamp: Position of the observation in time (any orderable label)
        value: Observed value
        exogenous: Optional mapping of covariate name to value at this time
    """
    timestamp: Any
    value: float
    exogenous: Optional[Dict[str, float]] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))
        if self.exogenous is not None:
            # None marks a covariate as not supplied
            object.__setattr__(
                self, "exogenous",
                {str(k): float(v) for k, v in self.exogenous.items() if v is not None}
            )

    def missing_exogenous(self, names: Sequence[str]) -> List[str]:
        """Return the names from ``names`` this observation lacks or holds as non-finite."""
        if not names:
            return []
        supplied = self.exogenous or {}
        return [name for name in names
                if name not in supplied or not math.isfinite(supplied[name])]


def observations_from_pandas(series: pd.Series,
                             exog: Optional[pd.DataFrame] = None) -> List[Observation]:
    """
    Build an observation sequence from a pandas Series.

    Args:
        series: Metric values indexed by timestamp
        exog: Optional covariates sharing the index of ``series``; each column
            becomes an exogenous variable

    Returns:
        Observations in index order
    """
    if exog is not None:
        exog = exog.reindex(series.index)
        rows = exog.to_dict(orient="records")
    else:
        rows = [None] * len(series)

    return [
        Observation(timestamp=ts, value=value, exogenous=row)
        for ts, value, row in zip(series.index, series.to_numpy(dtype=float), rows)
    ]


def observations_to_frame(observations: Sequence[Observation]) -> pd.DataFrame:
    """Flatten observations into a DataFrame indexed by timestamp."""
    records = []
    for obs in observations:
        record = {"value": obs.value}
        if obs.exogenous:
            record.update(obs.exogenous)
        records.append(record)
    return pd.DataFrame(records, index=[obs.timestamp for obs in observations])
