"""
Scalar inequality constraints on one or two variables.

A bound is active while it is *not* satisfied, equality included, so a
variable sitting exactly on the threshold keeps being pushed back instead
of zigzagging across it.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

import casadi as ca
import numpy as np

from .lie import SO3


@dataclass(frozen=True)
class ScalarEvaluation:
    """value of a scalar function, with derivatives only when requested"""

    value: float
    derivatives: Optional[Tuple[np.ndarray, ...]] = None


@dataclass(frozen=True)
class ErrorEvaluation:
    error: np.ndarray
    jacobians: Optional[Tuple[np.ndarray, ...]] = None


@dataclass(frozen=True)
class UnaryBound:
    """
    function(x, with_derivatives) -> ScalarEvaluation, derivative 1 x dim(x).
    mu weights the penalty residual, see penalty_error.
    """

    key: int
    threshold: float
    is_greater_than: bool
    function: Callable
    mu: float = 1000.0

    @property
    def keys(self):
        return (self.key,)


@dataclass(frozen=True)
class BinaryBound:
    """
    function(x1, x2, with_derivatives) -> ScalarEvaluation with one
    derivative per argument
    """

    key1: int
    key2: int
    threshold: float
    is_greater_than: bool
    function: Callable
    mu: float = 1000.0

    @property
    def keys(self):
        return (self.key1, self.key2)


BoundingConstraint = Union[UnaryBound, BinaryBound]


def evaluate(constraint, values, with_derivatives=False) -> ScalarEvaluation:
    args = [values[k] for k in constraint.keys]
    return constraint.function(*args, with_derivatives)


def active(constraint, values) -> bool:
    """true when the bound is violated or exactly met"""
    x = evaluate(constraint, values).value
    if constraint.is_greater_than:
        return x <= constraint.threshold
    return x >= constraint.threshold


def evaluate_error(constraint, values, with_derivatives=False) -> ErrorEvaluation:
    """
    one dimensional error, value - threshold for greater than bounds and
    threshold - value otherwise
    """
    e = evaluate(constraint, values, with_derivatives)
    sign = 1.0 if constraint.is_greater_than else -1.0
    error = np.array([sign * (e.value - constraint.threshold)])
    if not with_derivatives:
        return ErrorEvaluation(error)
    return ErrorEvaluation(error, tuple(sign * np.asarray(D) for D in e.derivatives))


def penalty_error(constraint, values, with_derivatives=False) -> ErrorEvaluation:
    """
    Whitened residual sqrt(mu) * error for a least squares solver, zero with
    zero jacobians while the bound is inactive.
    """
    e = evaluate_error(constraint, values, with_derivatives)
    scale = np.sqrt(constraint.mu) if active(constraint, values) else 0.0
    if not with_derivatives:
        return ErrorEvaluation(scale * e.error)
    return ErrorEvaluation(scale * e.error, tuple(scale * H for H in e.jacobians))


def casadi_scalar(expression, shapes):
    """
    Scalar function capability from a casadi expression builder.

    @param expression: callable taking one ca.SX symbol per argument and
        returning a scalar ca.SX
    @param shapes: shape of each argument
    @return: function(*args, with_derivatives) -> ScalarEvaluation, the
        derivative w.r.t. an argument is 1 x its size, column major
    """
    symbols = [ca.SX.sym("x{:d}".format(i), *shape) for i, shape in enumerate(shapes)]
    y = expression(*symbols)
    assert y.shape == (1, 1)
    value = ca.Function("bound_value", symbols, [y])
    derivative = ca.Function(
        "bound_derivative", symbols, [ca.jacobian(y, ca.vec(s)) for s in symbols]
    )

    def function(*args):
        *args, with_derivatives = args
        y = float(value(*args))
        if not with_derivatives:
            return ScalarEvaluation(y)
        D = derivative(*args)
        if len(symbols) == 1:
            D = [D]
        return ScalarEvaluation(y, tuple(np.array(Di.full()) for Di in D))

    return function


# rotation angle of an SO(3) element, in radians
rotation_angle = casadi_scalar(SO3.angle, [(3, 3)])

# angle between two SO(3) elements, in radians
relative_angle = casadi_scalar(
    lambda R1, R2: SO3.angle(ca.mtimes(ca.transpose(R1), R2)), [(3, 3), (3, 3)]
)
