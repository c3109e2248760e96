"""
Sparse block matrices of the rotation averaging problem.

With S = [Y_1 ... Y_N] the p x dN matrix of stacked Stiefel blocks, the
weighted sum of squared chordal errors is tr(S L S^T) where L = D - Q is the
connection Laplacian.
"""
import numpy as np
import scipy.sparse

D_DIM = 3  # dimension of the rotations being averaged


def _block_triplets(rows, cols, blocks, d):
    """
    COO triplets placing blocks[k] at block position (rows[k], cols[k])
    """
    r = np.arange(d)
    rr = rows[:, None, None] * d + r[None, :, None]
    cc = cols[:, None, None] * d + r[None, None, :]
    shape = blocks.shape
    return (
        np.broadcast_to(rr, shape).ravel(),
        np.broadcast_to(cc, shape).ravel(),
        blocks.ravel(),
    )


def build_q(measurements, use_noise_model=False, noise_sigma=0.0, d=D_DIM):
    """
    dN x dN measurement matrix with w R_ij at block (i, j) and w R_ij^T at
    block (j, i)
    """
    n = measurements.nr_poses() * d
    i, j = measurements.edge_indices()
    w = measurements.weights(use_noise_model, noise_sigma)
    R = np.stack([m.rotation for m in measurements]) * w[:, None, None]
    r1, c1, v1 = _block_triplets(i, j, R, d)
    r2, c2, v2 = _block_triplets(j, i, np.transpose(R, (0, 2, 1)), d)
    Q = scipy.sparse.coo_matrix(
        (np.concatenate([v1, v2]), (np.concatenate([r1, r2]), np.concatenate([c1, c2]))),
        shape=(n, n),
    )
    # duplicates between the same pair of poses are summed
    return Q.tocsr()


def build_d(measurements, use_noise_model=False, noise_sigma=0.0, d=D_DIM):
    """
    dN x dN block diagonal degree matrix, block i is the summed weight of
    the measurements incident on pose i times the identity
    """
    N = measurements.nr_poses()
    i, j = measurements.edge_indices()
    w = measurements.weights(use_noise_model, noise_sigma)
    degree = np.bincount(i, weights=w, minlength=N) + np.bincount(
        j, weights=w, minlength=N
    )
    return scipy.sparse.diags(np.repeat(degree, d)).tocsr()


def build_l(measurements, use_noise_model=False, noise_sigma=0.0, d=D_DIM):
    """
    connection Laplacian L = D - Q
    """
    D = build_d(measurements, use_noise_model, noise_sigma, d)
    Q = build_q(measurements, use_noise_model, noise_sigma, d)
    return (D - Q).tocsr()
