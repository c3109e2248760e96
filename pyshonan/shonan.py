"""
Shonan rotation averaging.

Dellaert et al., "Shonan Rotation Averaging: Global Optimality by Surfing
SO(p)^n", ECCV 2020.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from . import certificate, rounding
from .errors import EigenSolverNotConvergedError, ParameterError
from .graph import LiftedGraph
from .laplacian import D_DIM, build_d, build_q
from .lie import SO3, SOn
from .measurements import MeasurementSet
from .optimizer import ManifoldOptimizer, OptimizationResult
from .parameters import ShonanAveragingParameters

logger = logging.getLogger(__name__)

ALPHA_MIN = 1e-2  # smallest step of the descent line search


@dataclass(frozen=True)
class LevelReport:
    """what happened at one level of the staircase"""

    p: int
    cost: float
    rounded_cost: float
    min_eigenvalue: float
    certified: bool
    converged: bool
    eigensolver_converged: bool


@dataclass(frozen=True)
class StaircaseResult:
    """
    SO(3) estimates and the minimum eigenvalue of the certificate matrix at
    the level they came from. Unpacks as (values, min_eigenvalue).
    """

    values: Dict[int, np.ndarray]
    min_eigenvalue: float
    p: int
    certified: bool
    levels: Tuple[LevelReport, ...]

    def __iter__(self):
        return iter((self.values, self.min_eigenvalue))


class ShonanAveraging:
    """
    Certifiable rotation averaging of a measurement set.

    D, Q and L are built once at construction; every optimization produces
    new value dicts and leaves its inputs untouched.
    """

    def __init__(self, measurements, parameters=None):
        """
        @param measurements: MeasurementSet, or an iterable of Measurement
        @param parameters: ShonanAveragingParameters
        """
        if not isinstance(measurements, MeasurementSet):
            measurements = MeasurementSet(measurements)
        if parameters is None:
            parameters = ShonanAveragingParameters()
        self.measurements = measurements
        self.parameters = parameters
        self.d = D_DIM
        weighting = (parameters.use_noise_model, parameters.noise_sigma, self.d)
        self._D = build_d(measurements, *weighting)
        self._Q = build_q(measurements, *weighting)
        self._L = (self._D - self._Q).tocsr()
        self._optimizer = ManifoldOptimizer(parameters.solver)
        self._cost_graphs = {}

    def __repr__(self):
        return "ShonanAveraging({:d} poses, {:d} measurements)".format(
            self.nr_poses(), len(self.measurements)
        )

    def nr_poses(self):
        return self.measurements.nr_poses()

    def measured(self, i):
        """relative rotation of the i-th measurement"""
        return self.measurements.measured(i)

    def keys(self, i):
        """keys of the i-th measurement"""
        return self.measurements.keys_of(i)

    @property
    def pose_keys(self):
        return self.measurements.keys

    def poses(self):
        return self.measurements.poses

    @property
    def D(self):
        return self._D

    @property
    def Q(self):
        return self._Q

    @property
    def L(self):
        return self._L

    def dense_d(self):
        return self._D.toarray()

    def dense_q(self):
        return self._Q.toarray()

    def dense_l(self):
        return self._L.toarray()

    # lifted problem

    def build_graph_at(self, p):
        """
        lifted cost at SO(p) including the configured priors
        """
        return LiftedGraph(p, self.measurements, self.parameters, with_priors=True, d=self.d)

    def _cost_graph(self, p):
        if p not in self._cost_graphs:
            self._cost_graphs[p] = LiftedGraph(
                p, self.measurements, self.parameters, with_priors=False, d=self.d
            )
        return self._cost_graphs[p]

    def initialize_randomly_at(self, p, rng=None):
        """
        independent uniformly random SO(p) values for every pose
        @param rng: numpy Generator or seed, defaults to parameters.seed
        """
        rng = np.random.default_rng(self.parameters.seed if rng is None else rng)
        G = SOn(p)
        return {k: G.random(rng) for k in self.pose_keys}

    def initialize_randomly(self, rng=None):
        """random SO(3) values"""
        return self.initialize_randomly_at(self.d, rng)

    def lift_to(self, p, values):
        G = SOn(p)
        return {k: G.lift(v) for k, v in values.items()}

    def cost_at(self, p, values):
        """
        measurement cost of SO(p) values, priors excluded
        """
        return self._cost_graph(p).error(values)

    def cost(self, values):
        """
        measurement cost of SO(3) values, sum of w/2 |R_j - R_i R_ij|^2
        """
        w = self.measurements.weights(
            self.parameters.use_noise_model, self.parameters.noise_sigma
        )
        total = 0.0
        for m, w_k in zip(self.measurements, w):
            R_i = np.asarray(values[m.key_a])
            R_j = np.asarray(values[m.key_b])
            total += 0.5 * w_k * np.sum((R_j - R_i @ m.rotation) ** 2)
        return float(total)

    # certification

    def stiefel_matrix(self, values):
        return rounding.stiefel_matrix(values, self.pose_keys, self.d)

    def _as_stiefel(self, values):
        if isinstance(values, dict):
            return self.stiefel_matrix(values)
        return np.asarray(values, dtype=float)

    def compute_lambda(self, values):
        """
        block diagonal Lagrange multipliers, from SO(p) values or a
        p x dN Stiefel matrix
        """
        return certificate.compute_lambda(self._Q, self._as_stiefel(values), self.d)

    def compute_lambda_dense(self, values):
        return self.compute_lambda(values).toarray()

    def compute_a(self, values):
        """certificate matrix Lambda - Q"""
        return certificate.compute_a(self._Q, self._as_stiefel(values), self.d)

    def compute_a_dense(self, values):
        return self.compute_a(values).toarray()

    def compute_min_eigenvalue(self, values, v0=None):
        """
        @return: (minimum eigenvalue, eigenvector) of the certificate matrix
        @raise EigenSolverNotConvergedError: if Lanczos does not converge
        """
        A = self.compute_a(values)
        if v0 is None:
            v0 = np.random.default_rng(0).standard_normal(A.shape[0])
        return certificate.min_eigenpair(
            A,
            v0=v0,
            tol=self.parameters.eigen_tolerance,
            max_iterations=self.parameters.eigen_max_iterations,
            dense_limit=self.parameters.dense_eigen_limit,
        )

    def check_optimality(self, values):
        min_eigenvalue, _ = self.compute_min_eigenvalue(values)
        return certificate.check_optimality(
            min_eigenvalue, self.parameters.optimality_threshold
        )

    def riemannian_gradient(self, p, values):
        S = self._as_stiefel(values)
        assert S.shape[0] == p
        return certificate.riemannian_gradient(self._L, S, self.d)

    # optimization

    def optimize_at(self, p, initial=None, rng=None) -> OptimizationResult:
        if initial is None:
            initial = self.initialize_randomly_at(p, rng)
        return self._optimizer.optimize(self.build_graph_at(p), initial)

    def try_optimizing_at(self, p, initial=None):
        """
        optimize at SO(p) from initial values, random when not given
        @return: SO(p) values
        """
        return self.optimize_at(p, initial).values

    # rounding

    def project_from(self, p, values):
        for Q in values.values():
            assert np.shape(Q) == (p, p)
        return rounding.project_from(values, self.d)

    def round_solution(self, values):
        """
        SO(3) values from SO(p) values or a p x dN Stiefel matrix
        """
        return rounding.round_solution(self._as_stiefel(values), self.pose_keys, self.d)

    # staircase

    @staticmethod
    def make_tangent_vector(p, v, i, d=D_DIM):
        """
        Tangent vector of SO(p) whose Stiefel part at a lifted rotation is
        e_p v_i^T, with v_i the i-th d-segment of v.
        """
        v_i = np.asarray(v, dtype=float)[d * i:d * (i + 1)]
        Omega = np.zeros((p, p))
        Omega[p - 1, :d] = v_i
        Omega[:d, p - 1] = -v_i
        return SOn(p).vee(Omega).full().ravel()

    def dimension_lifting(self, p, values, min_eigenvector):
        """
        Lift SO(p-1) values to SO(p) and move each pose along the new
        dimension by its segment of min_eigenvector.
        """
        G = SOn(p)
        lifted = {}
        for i, k in enumerate(self.pose_keys):
            xi = self.make_tangent_vector(p, min_eigenvector, i, self.d)
            lifted[k] = G.retract(G.lift(values[k]), xi).full()
        return lifted

    def initialize_with_descent(
        self,
        p,
        values,
        min_eigenvector,
        min_eigenvalue,
        gradient_tolerance=None,
        preconditioned_gradient_tolerance=None,
    ):
        """
        SO(p) values from SO(p-1) values by a backtracking line search along
        the minimum eigenvector of the certificate matrix at p-1.

        A step is accepted once it lowers the cost and leaves the saddle,
        measured by gradient norms above the tolerances. Falls back on the
        best cost decrease seen, then on the plain lift.
        """
        if gradient_tolerance is None:
            gradient_tolerance = self.parameters.gradient_tolerance
        if preconditioned_gradient_tolerance is None:
            preconditioned_gradient_tolerance = self.parameters.preconditioned_gradient_tolerance

        f0 = self.cost_at(p - 1, values)
        degree = self._D.diagonal()
        inv_degree = np.divide(1.0, degree, out=np.zeros_like(degree), where=degree > 0)
        alpha = 1024 * ALPHA_MIN
        if min_eigenvalue != 0:
            alpha = max(alpha, 10 * gradient_tolerance / abs(min_eigenvalue))

        trials = []
        while alpha >= ALPHA_MIN:
            lifted = self.dimension_lifting(p, values, alpha * np.asarray(min_eigenvector))
            f = self.cost_at(p, lifted)
            gradient = self.riemannian_gradient(p, lifted)
            gradient_norm = np.linalg.norm(gradient)
            preconditioned_norm = np.linalg.norm(gradient * inv_degree[None, :])
            trials.append((f, alpha, lifted))
            if (
                f < f0
                and gradient_norm > gradient_tolerance
                and preconditioned_norm > preconditioned_gradient_tolerance
            ):
                logger.debug("descent step alpha=%.3e: cost %.6e -> %.6e", alpha, f0, f)
                return lifted
            alpha /= 2

        f_min, alpha, lifted = min(trials, key=lambda t: t[0])
        if f_min < f0:
            logger.debug("best descent step alpha=%.3e: cost %.6e -> %.6e", alpha, f0, f_min)
            return lifted
        logger.debug("no descent found at p=%d, lifting without perturbation", p)
        return self.lift_to(p, values)

    def run(self, p_min=5, p_max=20, with_descent=False, initial=None) -> StaircaseResult:
        """
        Riemannian staircase: optimize at p = p_min, p_min + 1, ... until the
        certificate holds or p_max is done.

        @param with_descent: initialize each next level along the minimum
            eigenvector instead of randomly
        @param initial: optional SO(3) (or SO(p_min)) values for the first level
        @return: StaircaseResult, unpacks as (SO(3) values, min eigenvalue)
        """
        if p_min < self.d:
            raise ParameterError("p_min must be at least {:d}".format(self.d))
        if p_max < p_min:
            raise ParameterError("p_max must not be smaller than p_min")

        rng = np.random.default_rng(self.parameters.seed)
        if initial is None:
            current = self.initialize_randomly_at(p_min, rng)
        else:
            missing = set(self.pose_keys) - set(initial)
            if missing:
                raise ParameterError(
                    "initial values miss keys {}".format(sorted(missing))
                )
            current = self.lift_to(p_min, {k: initial[k] for k in self.pose_keys})

        levels = []
        best = None
        for p in range(p_min, p_max + 1):
            result = self.optimize_at(p, current)
            try:
                min_eigenvalue, min_eigenvector = self.compute_min_eigenvalue(result.values)
            except EigenSolverNotConvergedError as e:
                logger.error("p=%d: %s", p, e)
                min_eigenvalue, min_eigenvector = float("nan"), None
            certified = min_eigenvector is not None and certificate.check_optimality(
                min_eigenvalue, self.parameters.optimality_threshold
            )
            rounded = self.round_solution(result.values)
            rounded_cost = self.cost(rounded)
            levels.append(
                LevelReport(
                    p=p,
                    cost=result.cost,
                    rounded_cost=rounded_cost,
                    min_eigenvalue=min_eigenvalue,
                    certified=certified,
                    converged=result.converged,
                    eigensolver_converged=min_eigenvector is not None,
                )
            )
            logger.info(
                "p=%d: cost %.6e, rounded cost %.6e, min eigenvalue %.3e%s",
                p,
                result.cost,
                rounded_cost,
                min_eigenvalue,
                ", certified" if certified else "",
            )
            if certified:
                return StaircaseResult(rounded, min_eigenvalue, p, True, tuple(levels))
            if min_eigenvector is not None and (best is None or rounded_cost < best[0]):
                best = (rounded_cost, rounded, min_eigenvalue, p)

            if p < p_max:
                if with_descent and min_eigenvector is not None:
                    current = self.initialize_with_descent(
                        p + 1, result.values, min_eigenvector, min_eigenvalue
                    )
                else:
                    current = self.initialize_randomly_at(p + 1, rng)

        if best is None:
            raise EigenSolverNotConvergedError(
                "no level between p={:d} and p={:d} produced a minimum eigenvalue".format(
                    p_min, p_max
                )
            )
        _, values, min_eigenvalue, p = best
        logger.warning(
            "staircase reached p_max=%d without certificate, returning p=%d with min eigenvalue %.3e",
            p_max,
            p,
            min_eigenvalue,
        )
        return StaircaseResult(values, min_eigenvalue, p, False, tuple(levels))

    def run_with_random(self, p_min=5, p_max=20):
        return self.run(p_min, p_max, with_descent=False)

    def run_with_descent(self, p_min=5, p_max=20):
        return self.run(p_min, p_max, with_descent=True)
