'''
Pytest configuration and fixtures for the SARIMAX engine test suite.

This module provides seeded random generators, simulated ARMA series and
helpers converting arrays into observation sequences, so that test modules
can build fitted models with a couple of lines.
'''

from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import pytest

from sarimax_engine.core.config import reset_config
from sarimax_engine.core.types import Observation


def make_observations(values: Sequence[float],
                      exog: Optional[Dict[str, Sequence[float]]] = None,
                      start: int = 0) -> List[Observation]:
    """Wrap values (and optional named covariate columns) into observations."""
    observations = []
    for i, value in enumerate(values):
        row = None
        if exog is not None:
            row = {name: float(column[i]) for name, column in exog.items()}
        observations.append(Observation(timestamp=start + i, value=float(value), exogenous=row))
    return observations


def simulate_arma(rng: np.random.Generator,
                  n: int,
                  ar: Sequence[float] = (),
                  ma: Sequence[float] = (),
                  sigma: float = 1.0,
                  burn: int = 200) -> np.ndarray:
    """Simulate a zero-mean ARMA process, dropping a burn-in period."""
    total = n + burn
    e = rng.normal(0.0, sigma, total)
    y = np.zeros(total)
    for t in range(total):
        value = e[t]
        for j, phi in enumerate(ar, start=1):
            if t - j >= 0:
                value += phi * y[t - j]
        for j, theta in enumerate(ma, start=1):
            if t - j >= 0:
                value += theta * e[t - j]
        y[t] = value
    return y[burn:]


@pytest.fixture
def default_config():
    """Reset the global engine configuration before and after a test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def observations() -> Callable[..., List[Observation]]:
    """Factory turning arrays into observation sequences."""
    return make_observations


@pytest.fixture
def ar1_series(rng: np.random.Generator) -> np.ndarray:
    """AR(1) series with phi = 0.6 and unit innovations."""
    return simulate_arma(rng, 500, ar=[0.6])


@pytest.fixture
def white_noise(rng: np.random.Generator) -> np.ndarray:
    return rng.standard_normal(400)


@pytest.fixture
def seasonal_series(rng: np.random.Generator) -> pd.Series:
    """Monthly series with a linear trend and a sinusoidal yearly pattern."""
    n = 120
    t = np.arange(n)
    values = 50 + 0.3 * t + 10 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 1.0, n)
    index = pd.date_range("2010-01-01", periods=n, freq="MS")
    return pd.Series(values, index=index)


@pytest.fixture
def simulate() -> Callable[..., np.ndarray]:
    """The ARMA simulator, for tests that need several series."""
    return simulate_arma
