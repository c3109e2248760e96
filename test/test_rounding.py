import numpy as np

from pyshonan.lie import SOn
from pyshonan.rounding import project_from, round_solution, stiefel_matrix

from conftest import assert_rotation, assert_same_gauge


def test_stiefel_matrix(cycle4):
    truth, ms = cycle4
    S = stiefel_matrix(truth, ms.keys)
    assert S.shape == (3, 12)
    assert np.array_equal(S[:, 3:6], truth[ms.keys[1]])


def test_round_random_values(rng):
    G = SOn(5)
    keys = list(range(6))
    values = {k: G.random(rng) for k in keys}
    rounded = round_solution(stiefel_matrix(values, keys), keys)
    assert list(rounded) == keys
    for R in rounded.values():
        assert_rotation(R)


def test_round_recovers_gauge(cycle4, rng):
    truth, ms = cycle4
    G = SOn(6).random(rng)
    lifted = {k: G @ SOn(6).lift(R) for k, R in truth.items()}
    rounded = round_solution(stiefel_matrix(lifted, ms.keys), ms.keys)
    assert_same_gauge(rounded, truth)
    for R in rounded.values():
        assert_rotation(R)


def test_round_fixes_reflection(cycle4):
    truth, ms = cycle4
    F = np.diag([1.0, 1.0, -1.0])
    S = F @ stiefel_matrix(truth, ms.keys)
    rounded = round_solution(S, ms.keys)
    for R in rounded.values():
        assert_rotation(R)
    assert_same_gauge(rounded, truth)


def test_project_from(rng):
    R = SOn(3).random(rng)
    values = {0: SOn(5).lift(R), 1: SOn(5).random(rng)}
    projected = project_from(values)
    assert np.linalg.norm(projected[0] - R) < 1e-12
    assert_rotation(projected[1])
