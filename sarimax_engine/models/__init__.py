"""
SARIMAX engine models.
"""

import logging

logger = logging.getLogger("sarimax_engine.models")

from . import time_series

__all__ = ["time_series"]
