"""
Numerical Differentiation Module

Finite-difference gradients, Hessians and Jacobians used by the damped Newton
estimator (log-likelihood gradient and Hessian) and by the delta method
(sensitivity of forecasts to the parameter vector).

Functions:
    gradient_2sided: Two-sided numerical gradient of a scalar function
    hessian_2sided: Two-sided numerical Hessian of a scalar function
    forward_jacobian: One-sided Jacobian of a vector-valued function
"""

import logging
from typing import Callable, Optional

import numpy as np

from sarimax_engine.core.exceptions import NumericError, raise_invalid_input
from sarimax_engine.core.types import Matrix, ObjectiveFunction, Vector

logger = logging.getLogger("sarimax_engine.utils.differentiation")


def _check_vector(x: Vector) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise_invalid_input("Input must be a 1D vector", data_name="x",
                            issue=f"shape {x.shape}")
    return x


def _default_step(x: np.ndarray, power: float) -> float:
    # Scale the step with the magnitude of x, never below eps**power
    eps = np.finfo(float).eps
    scale = float(np.max(np.abs(x))) if x.size else 0.0
    return max(scale, 1.0) * np.power(eps, power)


def _evaluate(func: ObjectiveFunction, x: np.ndarray, operation: str) -> float:
    value = float(func(x))
    if not np.isfinite(value):
        raise NumericError(
            f"Non-finite function value in {operation}",
            operation=operation,
            values=x,
            error_type="non_finite_value"
        )
    return value


def gradient_2sided(func: ObjectiveFunction,
                    x: Vector,
                    epsilon: Optional[float] = None) -> Vector:
    """
    Compute two-sided numerical gradient of a function.

    ∂f/∂x_i ≈ [f(x + ε*e_i) - f(x - ε*e_i)] / (2*ε)

    Args:
        func: Function to differentiate, takes a vector and returns a scalar
        x: Point at which to compute the gradient
        epsilon: Step size. If None, chosen from machine precision and the scale of x

    Returns:
        Gradient vector of the same shape as x

    Raises:
        InvalidInputError: If x is not a 1D array
        NumericError: If a function evaluation is not finite

    Examples:
        >>> import numpy as np
        >>> from sarimax_engine.utils.differentiation import gradient_2sided
        >>> gradient_2sided(lambda x: x[0]**2 + x[1]**2, np.array([1.0, 2.0]))
        array([2., 4.])
    """
    x = _check_vector(x)
    if epsilon is None:
        epsilon = _default_step(x, 1 / 3)

    n = x.shape[0]
    grad = np.zeros(n, dtype=float)
    x_plus = x.copy()
    x_minus = x.copy()

    for i in range(n):
        x_plus[i] = x[i] + epsilon
        x_minus[i] = x[i] - epsilon
        f_plus = _evaluate(func, x_plus, "gradient_2sided")
        f_minus = _evaluate(func, x_minus, "gradient_2sided")
        grad[i] = (f_plus - f_minus) / (2.0 * epsilon)
        x_plus[i] = x[i]
        x_minus[i] = x[i]

    return grad


def hessian_2sided(func: ObjectiveFunction,
                   x: Vector,
                   epsilon: Optional[float] = None) -> Matrix:
    """
    Compute two-sided numerical Hessian of a function.

    ∂²f/∂x_i² ≈ [f(x + 2ε*e_i) - 2f(x) + f(x - 2ε*e_i)] / (4*ε²)
    ∂²f/∂x_i∂x_j ≈ [f(x + ε*e_i + ε*e_j) - f(x + ε*e_i - ε*e_j)
                    - f(x - ε*e_i + ε*e_j) + f(x - ε*e_i - ε*e_j)] / (4*ε²)

    Args:
        func: Function to differentiate, takes a vector and returns a scalar
        x: Point at which to compute the Hessian
        epsilon: Step size. If None, chosen from machine precision and the scale of x

    Returns:
        Symmetric Hessian matrix of shape (n, n)

    Raises:
        InvalidInputError: If x is not a 1D array
        NumericError: If a function evaluation is not finite
    """
    x = _check_vector(x)
    if epsilon is None:
        epsilon = _default_step(x, 1 / 4)

    n = x.shape[0]
    hess = np.zeros((n, n), dtype=float)
    f_center = _evaluate(func, x, "hessian_2sided")
    denominator = 4.0 * epsilon * epsilon

    for i in range(n):
        step = np.zeros(n)
        step[i] = 2.0 * epsilon
        f_plus = _evaluate(func, x + step, "hessian_2sided")
        f_minus = _evaluate(func, x - step, "hessian_2sided")
        hess[i, i] = (f_plus - 2.0 * f_center + f_minus) / denominator

    for i in range(n):
        for j in range(i + 1, n):
            e_i = np.zeros(n)
            e_j = np.zeros(n)
            e_i[i] = epsilon
            e_j[j] = epsilon
            f_pp = _evaluate(func, x + e_i + e_j, "hessian_2sided")
            f_pm = _evaluate(func, x + e_i - e_j, "hessian_2sided")
            f_mp = _evaluate(func, x - e_i + e_j, "hessian_2sided")
            f_mm = _evaluate(func, x - e_i - e_j, "hessian_2sided")
            hess[i, j] = (f_pp - f_pm - f_mp + f_mm) / denominator
            hess[j, i] = hess[i, j]

    return hess


def forward_jacobian(func: Callable[[Vector], Vector],
                     x: Vector,
                     epsilon: float = 1e-8) -> Matrix:
    """
    One-sided (forward difference) Jacobian of a vector-valued function.

    J[k, i] ≈ [f_k(x + ε*e_i) - f_k(x)] / ε

    Args:
        func: Function taking a vector and returning a vector of length m
        x: Point at which to differentiate
        epsilon: Fixed step size

    Returns:
        Jacobian of shape (m, n)
    """
    x = _check_vector(x)
    base = np.asarray(func(x), dtype=float).reshape(-1)
    jac = np.zeros((base.shape[0], x.shape[0]), dtype=float)
    shifted = x.copy()

    for i in range(x.shape[0]):
        shifted[i] = x[i] + epsilon
        jac[:, i] = (np.asarray(func(shifted), dtype=float).reshape(-1) - base) / epsilon
        shifted[i] = x[i]

    return jac
