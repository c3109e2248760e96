import numpy as np

from pyshonan import Measurement, MeasurementSet
from pyshonan.laplacian import build_d, build_l, build_q
from pyshonan.lie import SO3
from pyshonan.rounding import stiefel_matrix

eps = 1e-10


def test_block_layout():
    R = SO3.exp(np.array([0.1, -0.2, 0.3])).full()
    ms = MeasurementSet([Measurement(0, 1, R, 2.0), Measurement(1, 2, np.eye(3), 3.0)])
    Q = build_q(ms, use_noise_model=True).toarray()
    assert Q.shape == (9, 9)
    assert np.linalg.norm(Q[0:3, 3:6] - 2 * R) < eps
    assert np.linalg.norm(Q[3:6, 0:3] - 2 * R.T) < eps
    assert np.linalg.norm(Q[3:6, 6:9] - 3 * np.eye(3)) < eps
    assert np.linalg.norm(Q[0:3, 6:9]) < eps
    D = build_d(ms, use_noise_model=True).toarray()
    assert np.allclose(np.diag(D), [2, 2, 2, 5, 5, 5, 3, 3, 3])
    D = build_d(ms).toarray()
    assert np.allclose(np.diag(D), [1, 1, 1, 2, 2, 2, 1, 1, 1])


def test_laplacian(noisy_graph):
    _, ms = noisy_graph
    D = build_d(ms)
    Q = build_q(ms)
    L = build_l(ms)
    assert np.linalg.norm((L - (D - Q)).toarray()) < eps
    L = L.toarray()
    assert np.linalg.norm(L - L.T) < eps
    assert np.min(np.linalg.eigvalsh(L)) > -1e-9


def test_ground_truth_in_null_space(cycle4):
    truth, ms = cycle4
    S = stiefel_matrix(truth, ms.keys)
    L = build_l(ms)
    assert np.linalg.norm(L @ S.T) < 1e-9
    assert abs(np.trace(S @ (L @ S.T))) < 1e-9
