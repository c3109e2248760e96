"""
Lifted cost of the Shonan relaxation at level p.

Every pose carries a rotation Q_i in SO(p), of which only the first d
columns Y_i = Q_i P, P = [I_d; 0], enter the measurement terms

    r_ij = sqrt(w_ij) vec(Y_j - Y_i R_ij)

The cost is half the squared norm of all residuals. Residuals are written as
functions of tangent vectors xi_i at a base point, Q_i <- Q_i cay(xi_i), so
the solver works on an unconstrained vector while casadi provides exact
Jacobians.

The measurement cost is invariant under Q_i <- G Q_i. The anchor prior fixes
this gauge, and the Karcher term penalizes the summed step in the common
frame, vee(Q_i wedge(xi_i) Q_i^T), which is exactly the gauge component of a
step, so neither prior biases the measurement optimum.
"""
import functools
from collections import namedtuple

import casadi as ca
import numpy as np
import scipy.sparse

from .laplacian import D_DIM
from .lie import SOn
from .parameters import ShonanAveragingParameters

LiftedFunctions = namedtuple(
    "LiftedFunctions",
    [
        "residual",
        "jacobian",
        "anchor_residual",
        "anchor_jacobian",
        "karcher_term",
        "karcher_jacobian",
    ],
)


@functools.lru_cache(maxsize=None)
def lifted_functions(p, d=D_DIM):
    """
    casadi functions for a single measurement and for the anchor prior,
    built once per (p, d)
    """
    G = SOn(p)
    dim = G.dimension
    xi_i = ca.SX.sym("xi_i", dim)
    xi_j = ca.SX.sym("xi_j", dim)
    Q_i = ca.SX.sym("Q_i", p, p)
    Q_j = ca.SX.sym("Q_j", p, p)
    R_ij = ca.SX.sym("R_ij", d, d)
    sqrt_w = ca.SX.sym("sqrt_w")

    Y_i = ca.mtimes(Q_i, G.cayley(G.wedge(xi_i))[:, :d])
    Y_j = ca.mtimes(Q_j, G.cayley(G.wedge(xi_j))[:, :d])
    r = sqrt_w * ca.vec(Y_j - ca.mtimes(Y_i, R_ij))
    args = [xi_i, xi_j, Q_i, Q_j, R_ij, sqrt_w]
    residual = ca.Function("shonan_residual", args, [r])
    jacobian = ca.Function(
        "shonan_jacobian", args, [ca.jacobian(r, xi_i), ca.jacobian(r, xi_j)]
    )

    xi_a = ca.SX.sym("xi_a", dim)
    Q_a = ca.SX.sym("Q_a", p, p)
    sqrt_wa = ca.SX.sym("sqrt_wa")
    r_a = sqrt_wa * ca.vec(G.retract(Q_a, xi_a) - ca.DM.eye(p))
    anchor_residual = ca.Function("anchor_residual", [xi_a, Q_a, sqrt_wa], [r_a])
    anchor_jacobian = ca.Function(
        "anchor_jacobian", [xi_a, Q_a, sqrt_wa], [ca.jacobian(r_a, xi_a)]
    )

    # tangent step of one pose expressed in the common frame, Q cay(xi) = cay(Q xi Q^T) Q
    xi_k = ca.SX.sym("xi_k", dim)
    Q_k = ca.SX.sym("Q_k", p, p)
    k = G.vee(ca.mtimes([Q_k, G.wedge(xi_k), ca.transpose(Q_k)]))
    karcher_term = ca.Function("karcher_term", [xi_k, Q_k], [k])
    karcher_jacobian = ca.Function("karcher_jacobian", [xi_k, Q_k], [ca.jacobian(k, xi_k)])
    return LiftedFunctions(
        residual, jacobian, anchor_residual, anchor_jacobian, karcher_term, karcher_jacobian
    )


class LiftedGraph:
    """
    Nonlinear least squares problem over SO(p)^N.

    Residual layout: p*d rows per measurement in measurement order, then
    p*p rows for the anchor prior on the first key, then one row per
    tangent coordinate for the Karcher term sqrt(w_k) sum_i Ad(Q_i) xi_i.
    """

    def __init__(self, p, measurements, parameters=None, with_priors=True, d=D_DIM):
        if parameters is None:
            parameters = ShonanAveragingParameters()
        assert p >= d
        self.p = p
        self.d = d
        self.group = SOn(p)
        self.keys = measurements.keys
        self.N = measurements.nr_poses()
        self.E = len(measurements)
        self.i, self.j = measurements.edge_indices()
        w = measurements.weights(parameters.use_noise_model, parameters.noise_sigma)
        self.sqrt_w = np.sqrt(w)[None, :]
        self.rotations = np.hstack([m.rotation for m in measurements])
        self.prior = with_priors and parameters.prior
        self.karcher = with_priors and parameters.karcher
        self.sqrt_anchor = np.sqrt(parameters.anchor_weight)
        self.sqrt_karcher = np.sqrt(parameters.karcher_weight)

        functions = lifted_functions(p, d)
        self._residual = functions.residual.map(self.E)
        self._jacobian = functions.jacobian.map(self.E)
        self._anchor_residual = functions.anchor_residual
        self._anchor_jacobian = functions.anchor_jacobian
        self._karcher_term = functions.karcher_term.map(self.N)
        self._karcher_jacobian = functions.karcher_jacobian.map(self.N)

    def __repr__(self):
        return "LiftedGraph(p={:d}, poses={:d}, measurements={:d})".format(
            self.p, self.N, self.E
        )

    @property
    def dimension(self):
        """number of tangent coordinates"""
        return self.N * self.group.dimension

    @property
    def nr_residuals(self):
        n = self.E * self.p * self.d
        if self.prior:
            n += self.p * self.p
        if self.karcher:
            n += self.group.dimension
        return n

    def stack(self, values):
        """
        N x p x p array in key order from a dict of SO(p) values
        """
        Qs = np.stack([np.asarray(values[k], dtype=float) for k in self.keys])
        assert Qs.shape == (self.N, self.p, self.p)
        return Qs

    def unstack(self, Qs):
        return {k: np.array(Qs[n]) for n, k in enumerate(self.keys)}

    def _tangents(self, x):
        return np.asarray(x, dtype=float).reshape(self.N, self.group.dimension).T

    def _edge_args(self, Qs, X):
        return (
            X[:, self.i],
            X[:, self.j],
            np.hstack(Qs[self.i]),
            np.hstack(Qs[self.j]),
            self.rotations,
            self.sqrt_w,
        )

    def residuals(self, Qs, x):
        X = self._tangents(x)
        r = self._residual(*self._edge_args(Qs, X)).full()
        parts = [r.T.ravel()]
        if self.prior:
            r_a = self._anchor_residual(X[:, 0], Qs[0], self.sqrt_anchor).full()
            parts.append(r_a.ravel())
        if self.karcher:
            k = self._karcher_term(X, np.hstack(Qs)).full()
            parts.append(self.sqrt_karcher * k.sum(axis=1))
        return np.concatenate(parts)

    def jacobian(self, Qs, x):
        X = self._tangents(x)
        dim = self.group.dimension
        pd = self.p * self.d
        J_i, J_j = self._jacobian(*self._edge_args(Qs, X))
        J_i = J_i.full().reshape(pd, self.E, dim).transpose(1, 0, 2)
        J_j = J_j.full().reshape(pd, self.E, dim).transpose(1, 0, 2)

        rows = np.arange(self.E)[:, None, None] * pd + np.arange(pd)[None, :, None]
        shape = (self.E, pd, dim)
        rows = np.broadcast_to(rows, shape).ravel()
        cols_i = self.i[:, None, None] * dim + np.arange(dim)[None, None, :]
        cols_j = self.j[:, None, None] * dim + np.arange(dim)[None, None, :]
        J = scipy.sparse.coo_matrix(
            (
                np.concatenate([J_i.ravel(), J_j.ravel()]),
                (
                    np.concatenate([rows, rows]),
                    np.concatenate(
                        [
                            np.broadcast_to(cols_i, shape).ravel(),
                            np.broadcast_to(cols_j, shape).ravel(),
                        ]
                    ),
                ),
            ),
            shape=(self.E * pd, self.dimension),
        )
        blocks = [[J]]
        if self.prior:
            J_a = self._anchor_jacobian(X[:, 0], Qs[0], self.sqrt_anchor).full()
            J_a = scipy.sparse.hstack(
                [
                    scipy.sparse.coo_matrix(J_a),
                    scipy.sparse.coo_matrix((J_a.shape[0], self.dimension - dim)),
                ]
            )
            blocks.append([J_a])
        if self.karcher:
            J_k = self._karcher_jacobian(X, np.hstack(Qs)).full()
            blocks.append([scipy.sparse.coo_matrix(self.sqrt_karcher * J_k)])
        return scipy.sparse.bmat(blocks).tocsr()

    def retract(self, Qs, x):
        X = self._tangents(x)
        return np.stack(
            [self.group.retract(Qs[n], X[:, n]).full() for n in range(self.N)]
        )

    def recentre(self, Qs):
        """
        move the gauge so the anchored pose sits at the identity, the
        measurement cost is unchanged
        """
        if not self.prior:
            return Qs
        return np.matmul(Qs[0].T, Qs)

    def measurement_cost(self, Qs):
        """half the squared norm of the measurement residuals at Qs"""
        X = np.zeros((self.group.dimension, self.N))
        r = self._residual(*self._edge_args(Qs, X)).full()
        return 0.5 * float(np.sum(r**2))

    def error(self, values):
        """
        half the squared residual norm at the given SO(p) values
        """
        r = self.residuals(self.stack(values), np.zeros(self.dimension))
        return 0.5 * float(r @ r)
