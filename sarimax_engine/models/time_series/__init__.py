# sarimax_engine/models/time_series/__init__.py
"""
Time series models of the SARIMAX engine.

Key components:
- SARIMAX model estimation and forecasting
- ACF/PACF and seasonal decomposition utilities
- Diagnostic reporting and plot-ready series
- Rolling-window and cross-validation backtesting
"""

import logging

# Set up module-level logger
logger = logging.getLogger("sarimax_engine.models.time_series")

from .correlation import acf, pacf
from .forecast import ConfidenceInterval, ForecastResult
from .sarimax import FittedState, SARIMAXConfig, SARIMAXModel, SeasonalOrder
from .diagnostics import (
    DiagnosticResult, InformationCriteria, ParameterStatistic, ResidualStatistics, TestResult,
    box_pierce, compute_diagnostics, information_criteria, jarque_bera, ljung_box,
    white_noise_test
)
from .decomposition import (
    DecompositionResult, SeasonalPeak, find_seasonal_peaks, seasonal_decompose,
    seasonal_strength
)
from .backtesting import (
    AccuracyMetrics, FoldResult, RollingWindowResult, accuracy_metrics, cross_validate,
    expanding_window_validation, parameter_stability, rolling_window_analysis,
    summarize_folds, to_frame
)

__all__ = [
    "acf", "pacf",
    "ConfidenceInterval", "ForecastResult",
    "FittedState", "SARIMAXConfig", "SARIMAXModel", "SeasonalOrder",
    "DiagnosticResult", "InformationCriteria", "ParameterStatistic", "ResidualStatistics",
    "TestResult", "box_pierce", "compute_diagnostics", "information_criteria",
    "jarque_bera", "ljung_box", "white_noise_test",
    "DecompositionResult", "SeasonalPeak", "find_seasonal_peaks", "seasonal_decompose",
    "seasonal_strength",
    "AccuracyMetrics", "FoldResult", "RollingWindowResult", "accuracy_metrics",
    "cross_validate", "expanding_window_validation", "parameter_stability",
    "rolling_window_analysis", "summarize_folds", "to_frame",
]
