# sarimax_engine/models/time_series/backtesting.py
"""
Out-of-sample evaluation harnesses.

The harnesses are decoupled from any particular model: callers pass a fit
function ``fit_fn(observations) -> model`` and a predict function
``predict_fn(model, horizon) -> predictions``. The predictions may be a
sequence of numbers or any object with a ``predictions`` attribute (such as
``ForecastResult``). When the model exposes a ``parameters`` mapping, it is
recorded with each window or fold.

- ``rolling_window_analysis`` fits on each window minus its last point and
  scores the one-step forecast of that point. It is causal.
- ``cross_validate`` partitions the series into k contiguous folds and trains
  on all the other folds, including those that come after the test fold. This
  is not causal; ``expanding_window_validation`` is the causal alternative.
- ``parameter_stability`` reports the coefficient of variation of each
  parameter across rolling windows.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from sarimax_engine.core.exceptions import raise_invalid_input
from sarimax_engine.core.types import Observation

logger = logging.getLogger("sarimax_engine.models.time_series.backtesting")

FitFunction = Callable[[List[Observation]], Any]
PredictFunction = Callable[[Any, int], Any]


@dataclass(frozen=True)
class AccuracyMetrics:
    """Forecast accuracy.

    Attributes:
        mape: Mean absolute percentage error (percent); NaN if any actual is zero
        rmse: Root mean squared error
        mae: Mean absolute error
        r2: Coefficient of determination; NaN when the actuals have no variance
    """
    mape: float
    rmse: float
    mae: float
    r2: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class RollingWindowResult:
    """One rolling window: its span, the scored forecast and the fitted parameters."""
    window_start: Any
    window_end: Any
    actual: float
    predicted: float
    metrics: AccuracyMetrics
    parameters: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class FoldResult:
    """One validation fold.

    Attributes:
        fold: 1-based fold number
        train_size: Number of training observations
        test_size: Number of held-out observations
        train_metrics: Accuracy of a forecast as long as the training set,
            scored against the training values
        test_metrics: Accuracy of the forecast over the held-out fold
        parameters: Fitted parameters, if the model exposes them
    """
    fold: int
    train_size: int
    test_size: int
    train_metrics: AccuracyMetrics
    test_metrics: AccuracyMetrics
    parameters: Optional[Dict[str, float]] = None


def accuracy_metrics(actual: Sequence[float], predicted: Sequence[float]) -> AccuracyMetrics:
    """
    MAPE, RMSE, MAE and R² of predictions against actual values.

    Raises:
        InvalidInputError: If the sequences are empty or differ in length
    """
    a = np.asarray(actual, dtype=np.float64).reshape(-1)
    p = np.asarray(predicted, dtype=np.float64).reshape(-1)
    if a.size == 0 or a.size != p.size:
        raise_invalid_input("Actual and predicted values must be non-empty and of equal length",
                            data_name="predicted", issue=f"{a.size} actual, {p.size} predicted")
    errors = a - p
    mape = float(np.mean(np.abs(errors / a)) * 100) if np.all(a != 0) else np.nan
    total = float(np.sum((a - a.mean()) ** 2))
    r2 = 1.0 - float(np.sum(errors ** 2)) / total if total > 0 else np.nan
    return AccuracyMetrics(
        mape=mape,
        rmse=float(np.sqrt(np.mean(errors ** 2))),
        mae=float(np.mean(np.abs(errors))),
        r2=r2
    )


def _model_parameters(model: Any) -> Optional[Dict[str, float]]:
    parameters = getattr(model, "parameters", None)
    if isinstance(parameters, Mapping):
        return {str(k): float(v) for k, v in parameters.items()}
    return None


def _predictions(predict_fn: PredictFunction, model: Any, horizon: int) -> np.ndarray:
    result = predict_fn(model, horizon)
    values = getattr(result, "predictions", result)
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    if len(values) < horizon:
        raise_invalid_input(
            f"predict_fn returned {len(values)} predictions for a horizon of {horizon}",
            data_name="predictions", issue="Too few predictions"
        )
    return values[:horizon]


def _values(observations: Sequence[Observation]) -> np.ndarray:
    return np.array([obs.value for obs in observations], dtype=np.float64)


def rolling_window_analysis(observations: Sequence[Observation],
                            window_size: int,
                            step: int,
                            fit_fn: FitFunction,
                            predict_fn: PredictFunction) -> List[RollingWindowResult]:
    """
    Rolling one-step-ahead evaluation.

    Windows start at 0, step, 2*step, ... while a full window fits in the series.

    Args:
        observations: Ordered observations
        window_size: Observations per window (the last one is held out)
        step: Offset between consecutive windows
        fit_fn: Fits a model on a list of observations
        predict_fn: Forecasts ``horizon`` steps from a fitted model

    Returns:
        One result per window

    Raises:
        InvalidInputError: If the window is shorter than 2, the step is not
            positive or the series is shorter than one window
    """
    observations = list(observations)
    if window_size < 2 or step < 1:
        raise_invalid_input("window_size must be at least 2 and step at least 1",
                            data_name="window_size", issue=f"window_size={window_size}, step={step}")
    if len(observations) < window_size:
        raise_invalid_input(
            f"Series of length {len(observations)} is shorter than the window ({window_size})",
            data_name="observations", issue="Series too short"
        )

    results = []
    for start in range(0, len(observations) - window_size + 1, step):
        window = observations[start:start + window_size]
        model = fit_fn(window[:-1])
        predicted = float(_predictions(predict_fn, model, 1)[0])
        actual = window[-1].value
        results.append(RollingWindowResult(
            window_start=window[0].timestamp,
            window_end=window[-1].timestamp,
            actual=actual,
            predicted=predicted,
            metrics=accuracy_metrics([actual], [predicted]),
            parameters=_model_parameters(model)
        ))
        logger.debug(f"Window {start}: actual {actual:.4f}, predicted {predicted:.4f}")
    return results


def _evaluate_fold(fold: int,
                   train: List[Observation],
                   test: List[Observation],
                   fit_fn: FitFunction,
                   predict_fn: PredictFunction) -> FoldResult:
    model = fit_fn(train)
    train_predictions = _predictions(predict_fn, model, len(train))
    test_predictions = _predictions(predict_fn, model, len(test))
    return FoldResult(
        fold=fold,
        train_size=len(train),
        test_size=len(test),
        train_metrics=accuracy_metrics(_values(train), train_predictions),
        test_metrics=accuracy_metrics(_values(test), test_predictions),
        parameters=_model_parameters(model)
    )


def cross_validate(observations: Sequence[Observation],
                   n_folds: int,
                   fit_fn: FitFunction,
                   predict_fn: PredictFunction) -> List[FoldResult]:
    """
    k-fold cross-validation over contiguous folds.

    Fold i holds observations [i*f, (i+1)*f) with f = n // k; the remainder
    n - k*f stays in every training set and is never tested. Each fold trains
    on all observations outside it, so later data informs forecasts of
    earlier folds.

    Raises:
        InvalidInputError: If fewer than 2 folds are requested or a fold would be empty
    """
    observations = list(observations)
    n = len(observations)
    if n_folds < 2 or n // n_folds < 1:
        raise_invalid_input(f"Cannot split {n} observations into {n_folds} folds",
                            data_name="n_folds", issue=f"n_folds={n_folds}")
    fold_size = n // n_folds

    results = []
    for i in range(n_folds):
        start, end = i * fold_size, (i + 1) * fold_size
        train = observations[:start] + observations[end:]
        results.append(_evaluate_fold(i + 1, train, observations[start:end], fit_fn, predict_fn))
    logger.info(f"Cross-validation completed: {n_folds} folds of {fold_size} observations")
    return results


def expanding_window_validation(observations: Sequence[Observation],
                                n_folds: int,
                                fit_fn: FitFunction,
                                predict_fn: PredictFunction) -> List[FoldResult]:
    """
    Causal validation with a growing training set.

    The series is cut into k + 1 blocks of f = n // (k + 1) observations. Fold
    i trains on blocks 0..i-1 and forecasts block i, for i = 1..k.

    Raises:
        InvalidInputError: If fewer than 1 fold is requested or a block would be empty
    """
    observations = list(observations)
    n = len(observations)
    if n_folds < 1 or n // (n_folds + 1) < 1:
        raise_invalid_input(f"Cannot split {n} observations into {n_folds} expanding folds",
                            data_name="n_folds", issue=f"n_folds={n_folds}")
    block = n // (n_folds + 1)

    results = []
    for i in range(1, n_folds + 1):
        train = observations[:i * block]
        test = observations[i * block:(i + 1) * block]
        results.append(_evaluate_fold(i, train, test, fit_fn, predict_fn))
    return results


def parameter_stability(results: Sequence[RollingWindowResult]) -> Dict[str, float]:
    """
    Coefficient of variation (std / mean) of each parameter across windows.

    Parameter names come from the first window; a window missing a name
    contributes 0. A zero mean gives NaN.
    """
    if not results or not results[0].parameters:
        return {}
    stability = {}
    for name in results[0].parameters:
        values = np.array([(r.parameters or {}).get(name, 0.0) for r in results])
        average = values.mean()
        stability[name] = float(values.std() / average) if average != 0 else np.nan
    return stability


def summarize_folds(results: Sequence[FoldResult]) -> pd.DataFrame:
    """
    Average train and test metrics across folds with their standard errors.

    Returns:
        pd.DataFrame: One row per metric; columns ``train_mean``,
        ``train_std_error``, ``test_mean`` and ``test_std_error``
    """
    if not results:
        raise_invalid_input("No fold results to summarize", data_name="results", issue="Empty")
    frame = {}
    for part in ("train", "test"):
        table = pd.DataFrame([getattr(r, f"{part}_metrics").to_dict() for r in results])
        frame[f"{part}_mean"] = table.mean()
        frame[f"{part}_std_error"] = table.std(ddof=1) / np.sqrt(table.count())
    return pd.DataFrame(frame)


def to_frame(results: Sequence[Any]) -> pd.DataFrame:
    """Rolling-window or fold results as a DataFrame, one row per record."""
    rows = []
    for result in results:
        row = {}
        for key, value in asdict(result).items():
            if key in ("metrics", "train_metrics", "test_metrics"):
                prefix = "" if key == "metrics" else key.split("_")[0] + "_"
                row.update({f"{prefix}{name}": metric for name, metric in value.items()})
            elif key == "parameters":
                row.update({f"param.{name}": v for name, v in (value or {}).items()})
            else:
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows)
