import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np
import scipy.optimize

from .parameters import SolverParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizationResult:
    """
    Outcome of one optimization at a fixed level p.

    converged is False when least_squares ran out of evaluations or the
    rounds did not settle within max_rounds; values then hold the last
    iterate, with the anchored pose at the identity when the prior is used.
    """

    values: Dict[int, np.ndarray]
    cost: float
    converged: bool
    rounds: int
    evaluations: int
    message: str


class ManifoldOptimizer:
    """
    Minimizes a LiftedGraph with scipy.optimize.least_squares.

    Each round moves the gauge onto the anchor, parameterizes the rotations
    by tangent vectors at the latest estimate, solves, and retracts. A round
    that least_squares reports as converged settles the optimization when
    its step is below step_tolerance or the measurement cost changed by no
    more than ftol relative to the previous round.
    """

    def __init__(self, parameters=None):
        if parameters is None:
            parameters = SolverParameters()
        self.parameters = parameters

    def optimize(self, graph, initial) -> OptimizationResult:
        params = self.parameters
        Qs = graph.stack(initial)
        dense = graph.dimension <= params.dense_jacobian_limit

        def fun(x):
            return graph.residuals(Qs, x)

        def jac(x):
            J = graph.jacobian(Qs, x)
            return J.toarray() if dense else J

        x0 = np.zeros(graph.dimension)
        evaluations = 0
        converged = False
        result = None
        f_prev = graph.measurement_cost(Qs)
        for rounds in range(1, params.max_rounds + 1):
            Qs = graph.recentre(Qs)
            result = scipy.optimize.least_squares(
                fun,
                x0,
                jac=jac,
                method=params.method,
                ftol=params.ftol,
                xtol=params.xtol,
                gtol=params.gtol,
                max_nfev=params.max_nfev,
                verbose=params.least_squares_verbosity,
            )
            evaluations += result.nfev
            Qs = graph.retract(Qs, result.x)
            step = np.max(np.abs(result.x)) if result.x.size else 0.0
            f = graph.measurement_cost(Qs)
            logger.debug(
                "p=%d round %d: measurement cost %.6e, step %.3e, %s",
                graph.p,
                rounds,
                f,
                step,
                result.message,
            )
            settled = step < params.step_tolerance or abs(f_prev - f) <= params.ftol * f_prev
            if result.status > 0 and settled:
                converged = True
                break
            f_prev = f

        Qs = graph.recentre(Qs)
        cost = 0.5 * float(np.sum(graph.residuals(Qs, x0) ** 2))
        if not converged:
            logger.warning(
                "optimization at p=%d did not converge after %d rounds: %s",
                graph.p,
                rounds,
                result.message,
            )
        return OptimizationResult(
            values=graph.unstack(Qs),
            cost=cost,
            converged=converged,
            rounds=rounds,
            evaluations=evaluations,
            message=result.message,
        )
