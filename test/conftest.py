import numpy as np
import pytest

from pyshonan import synthetic


@pytest.fixture
def rng():
    """fixed seed generator for reproducible tests"""
    return np.random.default_rng(42)


@pytest.fixture
def cycle4():
    """4 pose cycle with exact measurements: (ground truth, measurements)"""
    return synthetic.cycle_graph(4, sigma=0.0, rng=np.random.default_rng(7))


@pytest.fixture
def noisy_graph():
    """8 poses, cycle plus random chords, 0.1 rad noise"""
    return synthetic.random_graph(8, 0.5, sigma=0.1, rng=np.random.default_rng(11))


def gauge(estimate, truth):
    """R_est R_true^T for every key"""
    return {k: estimate[k] @ truth[k].T for k in truth}


def assert_same_gauge(estimate, truth, tol=1e-6):
    G = gauge(estimate, truth)
    G0 = next(iter(G.values()))
    for Gk in G.values():
        assert np.linalg.norm(Gk - G0) < tol


def assert_rotation(R, tol=1e-9):
    assert R.shape == (3, 3)
    assert np.linalg.norm(R.T @ R - np.eye(3)) < tol
    assert abs(np.linalg.det(R) - 1) < tol


@pytest.fixture
def heavy_noise_graph():
    """20 poses, sparse chords, 0.6 rad noise: local minima at p=3 are common"""
    return synthetic.random_graph(20, 0.15, sigma=0.6, rng=np.random.default_rng(4))
