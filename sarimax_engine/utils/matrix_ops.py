# sarimax_engine/utils/matrix_ops.py
"""
Matrix Operations Module

Helpers for the parameter covariance matrix: symmetrization, positive
definiteness checks, and inversion of the observed information matrix with a
pseudo-inverse fallback.

Functions:
    ensure_symmetric: Ensure a matrix is symmetric
    is_positive_definite: Check if a matrix is positive definite
    inverse_information: Covariance matrix from the log-likelihood Hessian
"""

import logging

import numpy as np
from scipy import linalg

from sarimax_engine.core.exceptions import raise_invalid_input, warn_numeric
from sarimax_engine.core.types import CovarianceMatrix, Matrix

logger = logging.getLogger("sarimax_engine.utils.matrix_ops")


def _check_square(matrix: Matrix, name: str) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise_invalid_input("Input must be a square matrix",
                            data_name=name, issue=f"shape {matrix.shape}")
    return matrix


def ensure_symmetric(matrix: Matrix, tol: float = 1e-8) -> Matrix:
    """
    Ensure a matrix is symmetric by averaging with its transpose.

    Args:
        matrix: Matrix to make symmetric
        tol: Tolerance for checking symmetry

    Returns:
        Symmetric matrix

    Examples:
        >>> import numpy as np
        >>> from sarimax_engine.utils.matrix_ops import ensure_symmetric
        >>> ensure_symmetric(np.array([[1, 2.000001], [2, 3]]))
        array([[1.       , 2.0000005],
               [2.0000005, 3.       ]])
    """
    matrix = _check_square(matrix, "matrix")
    if np.allclose(matrix, matrix.T, rtol=tol, atol=tol):
        return matrix
    return (matrix + matrix.T) / 2


def is_positive_definite(matrix: Matrix) -> bool:
    """Check positive definiteness via a Cholesky factorization."""
    matrix = _check_square(matrix, "matrix")
    if matrix.size == 0:
        return True
    try:
        linalg.cholesky(matrix, lower=True)
        return True
    except linalg.LinAlgError:
        return False


def inverse_information(hessian: Matrix) -> CovarianceMatrix:
    """
    Parameter covariance as the inverse of the negative log-likelihood Hessian.

    A singular or indefinite information matrix is inverted with the
    Moore-Penrose pseudo-inverse and a NumericWarning is issued.

    Args:
        hessian: Hessian of the log-likelihood at the estimate

    Returns:
        Symmetric covariance matrix
    """
    information = ensure_symmetric(-_check_square(hessian, "hessian"))
    if information.size == 0:
        return information

    if is_positive_definite(information):
        covariance = linalg.inv(information)
    else:
        warn_numeric(
            "Information matrix is not positive definite; using pseudo-inverse",
            operation="inverse_information",
            issue="singular_or_indefinite",
            value=np.linalg.eigvalsh(information)
        )
        logger.debug("Falling back to pseudo-inverse of the information matrix")
        covariance = np.linalg.pinv(information)

    return ensure_symmetric(covariance)
