"""
Numerical utilities: statistics primitives, finite-difference derivatives
and covariance helpers.
"""

import logging

logger = logging.getLogger("sarimax_engine.utils")

from . import differentiation, matrix_ops, statistics

__all__ = ["differentiation", "matrix_ops", "statistics"]
