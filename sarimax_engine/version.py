# sarimax_engine/version.py
"""
SARIMAX engine version information.

The engine follows semantic versioning (MAJOR.MINOR.PATCH):
- MAJOR: Incompatible API changes
- MINOR: Backwards-compatible functionality additions
- PATCH: Backwards-compatible bug fixes
"""

from typing import Dict, Tuple

# Version components
VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0

# Full version string
__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

# Package metadata
__title__ = "SARIMAX Engine"
__description__ = "Seasonal ARIMA forecasting with exogenous regressors"
__license__ = "MIT"

# Python version requirements
__python_requires__ = ">=3.10"

# Package dependencies
__dependencies__ = {
    "numpy": ">=1.26.0",
    "scipy": ">=1.11.3",
    "pandas": ">=2.1.1",
    "numba": ">=0.58.0",
}


def get_version_info() -> Tuple[int, int, int]:
    """Return the version as a (major, minor, patch) tuple."""
    return (VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)


def get_dependencies() -> Dict[str, str]:
    return dict(__dependencies__)
