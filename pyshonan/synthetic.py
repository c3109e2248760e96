"""
Synthetic rotation averaging problems with known ground truth.
"""
import itertools

import numpy as np

from .lie import SO3
from .measurements import Measurement, MeasurementSet


def random_rotations(n, rng):
    """n uniformly random SO(3) rotations keyed 0..n-1"""
    return {k: SO3.random(rng) for k in range(n)}


def perturb(R, sigma, rng):
    """R exp(w), w isotropic gaussian with standard deviation sigma"""
    if sigma == 0:
        return np.array(R)
    w = sigma * rng.standard_normal(3)
    return SO3.closest_to(np.asarray(R) @ SO3.exp(w).full())


def measurements_from(ground_truth, edges, sigma=0.0, rng=None, information=1.0):
    """
    MeasurementSet R_ij = R_i^T R_j for each (i, j) in edges, perturbed by
    noise of standard deviation sigma
    """
    if rng is None:
        rng = np.random.default_rng()
    measurements = []
    for i, j in edges:
        R_ij = ground_truth[i].T @ ground_truth[j]
        measurements.append(Measurement(i, j, perturb(R_ij, sigma, rng), information))
    return MeasurementSet(measurements)


def cycle_edges(n):
    return [(i, (i + 1) % n) for i in range(n)]


def complete_edges(n):
    return list(itertools.combinations(range(n), 2))


def random_edges(n, probability, rng):
    """a spanning cycle plus every other pair with the given probability"""
    edges = set(tuple(sorted(e)) for e in cycle_edges(n))
    for e in complete_edges(n):
        if e not in edges and rng.random() < probability:
            edges.add(e)
    return sorted(edges)


def cycle_graph(n, sigma=0.0, rng=None):
    """
    @return: (ground truth rotations, measurements around an n cycle)
    """
    if rng is None:
        rng = np.random.default_rng()
    truth = random_rotations(n, rng)
    return truth, measurements_from(truth, cycle_edges(n), sigma, rng)


def complete_graph(n, sigma=0.0, rng=None):
    if rng is None:
        rng = np.random.default_rng()
    truth = random_rotations(n, rng)
    return truth, measurements_from(truth, complete_edges(n), sigma, rng)


def random_graph(n, probability, sigma=0.0, rng=None):
    if rng is None:
        rng = np.random.default_rng()
    truth = random_rotations(n, rng)
    return truth, measurements_from(truth, random_edges(n, probability, rng), sigma, rng)
