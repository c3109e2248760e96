"""
Rounding of lifted solutions back to SO(d).
"""
import numpy as np

from .laplacian import D_DIM
from .lie import SOn


def stiefel_matrix(values, keys, d=D_DIM):
    """
    p x dN matrix of the first d columns of each SO(p) value, in key order
    """
    return np.hstack([np.asarray(values[k], dtype=float)[:, :d] for k in keys])


def round_solution(S, keys, d=D_DIM):
    """
    Project a p x dN Stiefel matrix onto SO(d)^N.

    The rank d truncated SVD Sigma_d V_d^T of S is the closest rank d
    factor. Its blocks share one orientation up to a reflection, so if fewer
    than half of them have a positive determinant the last row is flipped.
    Every block is then replaced by its closest rotation.
    """
    S = np.asarray(S, dtype=float)
    N = len(keys)
    assert S.shape[1] == d * N and S.shape[0] >= d
    _, sigmas, Vt = np.linalg.svd(S, full_matrices=False)
    R = sigmas[:d, None] * Vt[:d, :]

    determinants = [np.linalg.det(R[:, d * i:d * (i + 1)]) for i in range(N)]
    n_positive = sum(1 for det in determinants if det > 0)
    if n_positive < N / 2:
        R[d - 1, :] = -R[d - 1, :]

    G = SOn(d)
    return {k: G.closest_to(R[:, d * i:d * (i + 1)]) for i, k in enumerate(keys)}


def project_from(values, d=D_DIM):
    """
    closest SO(d) element to the top left block of each SO(p) value
    """
    G = SOn(d)
    return {k: G.closest_to(np.asarray(Q, dtype=float)[:d, :d]) for k, Q in values.items()}
