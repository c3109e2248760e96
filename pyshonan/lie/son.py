import casadi as ca
import numpy as np
import scipy.linalg

from .matrix_lie_group import MatrixLieGroup
from .util import to_casadi


class SOn(MatrixLieGroup):
    """
    Special orthogonal group SO(n) for an n chosen at runtime.

    Group elements are n x n matrices, tangent vectors have n(n-1)/2
    components. The retraction is the Cayley map, which is rational in the
    tangent vector, so the same code evaluates numerically (ca.DM) and
    symbolically (ca.SX) for automatic differentiation.
    """

    def __init__(self, n, positions=None):
        """
        @param n: size of the rotation matrices
        @param positions: (row, col) of the +v[k] entry of the k-th generator,
            defaults to the strictly lower triangle in row-major order
        """
        assert n >= 2
        if positions is None:
            positions = [(i, j) for i in range(1, n) for j in range(i)]
        assert len(positions) == n * (n - 1) // 2
        self.n = n
        self.positions = tuple(positions)
        super().__init__(
            group_params=n * n, algebra_params=len(positions), group_shape=(n, n)
        )

    def __repr__(self):
        return "SOn({:d})".format(self.n)

    def identity(self):
        return ca.DM.eye(self.n)

    def product(self, a, b):
        a = to_casadi(a)
        b = to_casadi(b)
        self.check_group_shape(a)
        self.check_group_shape(b)
        return ca.mtimes(a, b)

    def inv(self, a):
        a = to_casadi(a)
        self.check_group_shape(a)
        return ca.transpose(a)

    def wedge(self, v):
        v = to_casadi(v)
        self.check_algebra_shape(v)
        X = type(v).zeros(self.n, self.n)
        for k, (i, j) in enumerate(self.positions):
            X[i, j] = v[k]
            X[j, i] = -v[k]
        return X

    def vee(self, X):
        X = to_casadi(X)
        v = type(X).zeros(self.algebra_params, 1)
        for k, (i, j) in enumerate(self.positions):
            v[k] = 0.5 * (X[i, j] - X[j, i])
        return v

    def cayley(self, X):
        """
        Cayley transform (I - X/2)^-1 (I + X/2) of a skew symmetric matrix
        """
        I = ca.DM.eye(self.n)
        return ca.solve(I - X / 2, I + X / 2)

    def cayley_inv(self, R):
        """
        Inverse Cayley transform 2 (R - I)(R + I)^-1, undefined if R has
        an eigenvalue of -1
        """
        I = ca.DM.eye(self.n)
        return 2 * ca.transpose(ca.solve(ca.transpose(R + I), ca.transpose(R - I)))

    def exp(self, v):
        # numeric only, no closed form for general n
        X = np.array(ca.DM(self.wedge(v)))
        return ca.DM(scipy.linalg.expm(X))

    def log(self, a):
        X = np.real(scipy.linalg.logm(np.array(ca.DM(a))))
        return self.vee(ca.DM(0.5 * (X - X.T)))

    def retract(self, a, v):
        a = to_casadi(a)
        return ca.mtimes(a, self.cayley(self.wedge(v)))

    def local_coordinates(self, a, b):
        a = to_casadi(a)
        b = to_casadi(b)
        return self.vee(self.cayley_inv(ca.mtimes(ca.transpose(a), b)))

    # numeric helpers, numpy in and out

    def random(self, rng):
        """
        Haar distributed element from QR of a gaussian matrix.
        @param rng: numpy Generator
        """
        A = rng.standard_normal((self.n, self.n))
        Q, R = np.linalg.qr(A)
        Q = Q * np.sign(np.diag(R))
        if np.linalg.det(Q) < 0:
            Q[:, 0] = -Q[:, 0]
        return Q

    def lift(self, R):
        """
        Embed a smaller rotation in the top left block of an identity.
        """
        R = np.asarray(R, dtype=float)
        m = R.shape[0]
        assert R.shape == (m, m) and m <= self.n
        Q = np.eye(self.n)
        Q[:m, :m] = R
        return Q

    def closest_to(self, M):
        """
        Closest element in the Frobenius norm, from the SVD of M with the
        last left singular vector negated if the determinant would be -1.
        """
        M = np.asarray(M, dtype=float)
        assert M.shape == (self.n, self.n)
        U, _, Vt = np.linalg.svd(M)
        if np.linalg.det(U @ Vt) < 0:
            U[:, -1] = -U[:, -1]
        return U @ Vt

    def is_element(self, M, tol=1e-6):
        M = np.asarray(M, dtype=float)
        if M.shape != (self.n, self.n) or not np.all(np.isfinite(M)):
            return False
        orthogonal = np.linalg.norm(M.T @ M - np.eye(self.n)) < tol
        return bool(orthogonal and abs(np.linalg.det(M) - 1) < tol)
