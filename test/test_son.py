import casadi as ca
import numpy as np
import pytest
import scipy.linalg

from pyshonan.lie import SO3, SOn

eps = 1e-10


def test_so3_wedge_matches_hat():
    v = np.array([0.1, 0.2, 0.3])
    X = SO3.wedge(v).full()
    expected = np.array([[0, -0.3, 0.2], [0.3, 0, -0.1], [-0.2, 0.1, 0]])
    assert np.linalg.norm(X - expected) < eps
    assert np.linalg.norm(SO3.vee(X).full().ravel() - v) < eps


@pytest.mark.parametrize("n", [3, 4, 5, 7])
def test_son_wedge_vee(n, rng):
    G = SOn(n)
    v = rng.standard_normal(G.dimension)
    X = G.wedge(v).full()
    assert G.dimension == n * (n - 1) // 2
    assert np.linalg.norm(X + X.T) < eps
    assert np.linalg.norm(G.vee(X).full().ravel() - v) < eps


@pytest.mark.parametrize("n", [3, 5])
def test_retract_local_coordinates(n, rng):
    G = SOn(n)
    Q = G.random(rng)
    v = 0.3 * rng.standard_normal(G.dimension)
    Q2 = G.retract(Q, v).full()
    assert G.is_element(Q2)
    assert np.linalg.norm(G.local_coordinates(Q, Q2).full().ravel() - v) < 1e-9


def test_retract_symbolic_matches_numeric(rng):
    G = SOn(4)
    Q = G.random(rng)
    v = rng.standard_normal(G.dimension)
    xi = ca.SX.sym("xi", G.dimension)
    f = ca.Function("f", [xi], [G.retract(Q, xi)])
    assert np.linalg.norm(f(v).full() - G.retract(Q, v).full()) < eps


def test_random(rng):
    G = SOn(6)
    for _ in range(20):
        assert G.is_element(G.random(rng))
    a = G.random(np.random.default_rng(3))
    b = G.random(np.random.default_rng(3))
    assert np.array_equal(a, b)


def test_closest_to_gives_proper_rotation(rng):
    G = SOn(3)
    M = np.diag([1.0, 1.0, -1.0]) @ SO3.random(rng)
    R = G.closest_to(M + 0.01 * rng.standard_normal((3, 3)))
    assert G.is_element(R)
    R = G.closest_to(np.zeros((3, 3)))
    assert G.is_element(R)


def test_lift():
    R = SO3.exp(np.array([0.1, 0.2, 0.3])).full()
    Q = SOn(5).lift(R)
    assert np.array_equal(Q[:3, :3], R)
    assert np.array_equal(Q[3:, 3:], np.eye(2))
    assert SOn(5).is_element(Q)


def test_so3_exp_log():
    v = np.array([0.1, 0.2, 0.3])
    R = SO3.exp(v)
    assert np.linalg.norm(SO3.log(R).full().ravel() - v) < eps
    assert np.linalg.norm(R.full() - scipy.linalg.expm(SO3.wedge(v).full())) < eps
    assert abs(float(SO3.angle(R)) - np.linalg.norm(v)) < eps


def test_son_exp_log(rng):
    G = SOn(4)
    v = 0.2 * rng.standard_normal(G.dimension)
    assert np.linalg.norm(G.log(G.exp(v)).full().ravel() - v) < 1e-8



def test_group_operations(rng):
    G = SOn(4)
    a = G.random(rng)
    b = G.random(rng)
    assert np.linalg.norm(G.product(a, G.inv(a)).full() - G.identity().full()) < eps
    assert G.is_element(G.product(a, b).full())
    assert G.dimension == 6


def test_so3_log_small_angle():
    v = np.array([1e-9, -2e-9, 3e-9])
    assert np.linalg.norm(SO3.log(SO3.exp(v)).full().ravel() - v) < 1e-15
