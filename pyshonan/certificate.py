"""
Global optimality certificate for the Shonan relaxation.

For a critical point S (p x dN, Stiefel blocks S_j) of tr(S L S^T) the
Lagrange multipliers of the block orthonormality constraints are

    Lambda_jj = sym((Q S^T)_j S_j)

and S is a global minimizer of the semidefinite relaxation if the
certificate matrix A = Lambda - Q is positive semidefinite. Since
S_j^T S_j = I, A equals L - Lambda_L with Lambda_L computed from L.
See Eriksson et al., "Rotation averaging and strong duality", CVPR 2018.
"""
import logging

import numpy as np
import scipy.sparse
import scipy.sparse.linalg

from .errors import EigenSolverNotConvergedError

logger = logging.getLogger(__name__)


def _sym(B):
    return 0.5 * (B + np.swapaxes(B, -1, -2))


def _blocks(S, d):
    """
    p x dN -> N x p x d
    """
    p, n = S.shape
    assert n % d == 0
    return S.reshape(p, n // d, d).transpose(1, 0, 2)


def block_diagonal(blocks):
    """
    sparse matrix from an N x d x d stack of diagonal blocks
    """
    N, d, _ = blocks.shape
    r = np.arange(d)
    rows = np.arange(N)[:, None, None] * d + r[None, :, None]
    cols = np.arange(N)[:, None, None] * d + r[None, None, :]
    shape = blocks.shape
    return scipy.sparse.coo_matrix(
        (
            blocks.ravel(),
            (np.broadcast_to(rows, shape).ravel(), np.broadcast_to(cols, shape).ravel()),
        ),
        shape=(N * d, N * d),
    ).tocsr()


def compute_lambda(Q, S, d):
    """
    block diagonal Lagrange multiplier matrix for Stiefel matrix S
    """
    S = np.asarray(S, dtype=float)
    QSt = np.asarray(Q @ S.T)  # dN x p
    N = S.shape[1] // d
    left = QSt.reshape(N, d, -1)  # (Q S^T)_j, d x p
    B = np.matmul(left, _blocks(S, d))
    return block_diagonal(_sym(B))


def compute_a(Q, S, d):
    """
    certificate matrix A = Lambda - Q
    """
    return (compute_lambda(Q, S, d) - Q).tocsr()


def min_eigenpair(A, v0=None, tol=1e-10, max_iterations=None, dense_limit=200):
    """
    Algebraically smallest eigenvalue of a symmetric matrix and its
    eigenvector.

    Small matrices are decomposed densely. Otherwise the eigenvalue of
    largest magnitude lambda is found with Lanczos; if it is negative it is
    the minimum, else the minimum is lambda minus the largest eigenvalue of
    the positive semidefinite shift lambda I - A.
    """
    n = A.shape[0]
    if n <= dense_limit:
        A = A.toarray() if scipy.sparse.issparse(A) else np.asarray(A)
        w, V = np.linalg.eigh(A)
        return float(w[0]), V[:, 0]

    try:
        w, V = scipy.sparse.linalg.eigsh(
            A, k=1, which="LM", v0=v0, tol=tol, maxiter=max_iterations
        )
        lm_value = float(w[0])
        if lm_value < 0:
            return lm_value, V[:, 0]
        C = lm_value * scipy.sparse.identity(n, format="csr") - A
        w, V = scipy.sparse.linalg.eigsh(
            C, k=1, which="LA", v0=v0, tol=tol, maxiter=max_iterations
        )
    except scipy.sparse.linalg.ArpackNoConvergence as e:
        raise EigenSolverNotConvergedError(
            "minimum eigenvalue iteration did not converge for {:d} x {:d} matrix".format(
                n, n
            ),
            eigenvalues=e.eigenvalues,
        ) from e
    return lm_value - float(w[0]), V[:, 0]


def check_optimality(min_eigenvalue, threshold):
    """
    certified if the minimum eigenvalue is not below the (negative)
    threshold, which absorbs round off around zero
    """
    return bool(min_eigenvalue >= threshold)


def riemannian_gradient(L, S, d):
    """
    Gradient of tr(S L S^T) on the product of Stiefel manifolds: the
    Euclidean gradient 2 S L minus, per block, S_i sym(S_i^T G_i).
    """
    S = np.asarray(S, dtype=float)
    G = 2 * np.asarray(L @ S.T).T  # p x dN
    S_b = _blocks(S, d)
    G_b = _blocks(G, d)
    P = _sym(np.matmul(np.swapaxes(S_b, 1, 2), G_b))
    correction = np.matmul(S_b, P)  # N x p x d
    return G - correction.transpose(1, 0, 2).reshape(S.shape)
