import numpy as np
import pytest

from pyshonan.bounding import (
    BinaryBound,
    ScalarEvaluation,
    UnaryBound,
    active,
    evaluate,
    evaluate_error,
    penalty_error,
    relative_angle,
    rotation_angle,
)
from pyshonan.lie import SO3

eps = 1e-9


def identity_function(x, with_derivatives=False):
    if with_derivatives:
        return ScalarEvaluation(float(x), (np.array([[1.0]]),))
    return ScalarEvaluation(float(x))


def test_active_includes_boundary():
    upper = UnaryBound(0, 2.0, False, identity_function)
    lower = UnaryBound(0, 2.0, True, identity_function)
    assert active(upper, {0: 2.0})
    assert active(lower, {0: 2.0})
    assert active(upper, {0: 2.1})
    assert not active(upper, {0: 1.9})
    assert active(lower, {0: 1.9})
    assert not active(lower, {0: 2.1})
    assert upper.keys == (0,)
    assert upper.mu == 1000.0


def test_error_sign():
    upper = UnaryBound(0, 2.0, False, identity_function)
    lower = UnaryBound(0, 2.0, True, identity_function)
    e = evaluate_error(lower, {0: 3.0}, with_derivatives=True)
    assert np.allclose(e.error, [1.0])
    assert np.allclose(e.jacobians[0], [[1.0]])
    e = evaluate_error(upper, {0: 3.0}, with_derivatives=True)
    assert np.allclose(e.error, [-1.0])
    assert np.allclose(e.jacobians[0], [[-1.0]])
    assert evaluate_error(upper, {0: 3.0}).jacobians is None


def test_rotation_angle():
    v = np.array([0.3, 0.2, 0.1])
    R = SO3.exp(v).full()
    theta = np.linalg.norm(v)
    bound = UnaryBound(7, 0.5, False, rotation_angle)
    e = evaluate(bound, {7: R}, with_derivatives=True)
    assert abs(e.value - theta) < eps
    D = e.derivatives[0]
    assert D.shape == (1, 9)
    # d theta / d R = -1 / (2 sin theta) on the diagonal of R
    expected = -0.5 / np.sin(theta) * np.eye(3).reshape(1, 9, order="F")
    assert np.allclose(D, expected, atol=1e-9)
    assert not active(bound, {7: R})
    assert active(UnaryBound(7, 0.2, False, rotation_angle), {7: R})
    assert evaluate(bound, {7: R}).derivatives is None


def test_relative_angle():
    R1 = SO3.exp(np.array([0.1, 0.0, 0.0])).full()
    R2 = SO3.exp(np.array([0.4, 0.0, 0.0])).full()
    bound = BinaryBound(0, 1, 0.25, True, relative_angle)
    assert bound.keys == (0, 1)
    e = evaluate(bound, {0: R1, 1: R2}, with_derivatives=True)
    assert e.value == pytest.approx(0.3, abs=eps)
    assert len(e.derivatives) == 2
    assert all(D.shape == (1, 9) for D in e.derivatives)
    assert not active(bound, {0: R1, 1: R2})
    assert active(bound, {0: R1, 1: R1})
    err = evaluate_error(bound, {0: R1, 1: R2})
    assert np.allclose(err.error, [0.05])


def test_penalty_error():
    bound = UnaryBound(0, 2.0, True, identity_function, mu=4.0)
    e = penalty_error(bound, {0: 1.5}, with_derivatives=True)
    assert np.allclose(e.error, [-1.0])
    assert np.allclose(e.jacobians[0], [[2.0]])
    e = penalty_error(bound, {0: 3.0}, with_derivatives=True)
    assert np.allclose(e.error, [0.0])
    assert np.allclose(e.jacobians[0], [[0.0]])
    assert np.allclose(penalty_error(bound, {0: 2.0}).error, [0.0])
    upper = UnaryBound(0, 2.0, False, identity_function, mu=9.0)
    assert np.allclose(penalty_error(upper, {0: 2.5}).error, [-1.5])
