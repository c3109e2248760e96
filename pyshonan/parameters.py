from dataclasses import dataclass, field, fields
from typing import Optional

from .errors import ParameterError

# least_squares verbosity for each named verbosity level
VERBOSITY = {
    "SILENT": 0,
    "SUMMARY": 1,
    "TERMINATION": 1,
    "ERROR": 1,
    "VALUES": 2,
    "DELTA": 2,
    "LINEAR": 2,
    "TRYLAMBDA": 2,
}

METHODS = ("trf", "dogbox")


@dataclass
class SolverParameters:
    """
    Options handed to the nonlinear least squares solver.

    max_rounds caps how often the tangent space parameterization is
    re-centred on the latest estimate. Re-centring stops once a round's step
    is below step_tolerance or the measurement cost changed by at most ftol
    relative. The remaining options are passed to scipy.optimize.least_squares.
    """

    verbosity: str = "SILENT"
    method: str = "trf"
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10
    max_nfev: Optional[int] = None
    max_rounds: int = 20
    step_tolerance: float = 1e-8
    dense_jacobian_limit: int = 1000

    def __post_init__(self):
        if self.verbosity not in VERBOSITY:
            raise ParameterError(
                "unknown verbosity {:s}, expected one of {:s}".format(
                    str(self.verbosity), ", ".join(VERBOSITY)
                )
            )
        if self.method not in METHODS:
            raise ParameterError(
                "unknown method {:s}, expected one of {:s}".format(
                    str(self.method), ", ".join(METHODS)
                )
            )
        for name in ["ftol", "xtol", "gtol", "step_tolerance"]:
            if not getattr(self, name) > 0:
                raise ParameterError("{:s} must be positive".format(name))
        if self.max_nfev is not None and self.max_nfev < 1:
            raise ParameterError("max_nfev must be at least 1")
        if self.max_rounds < 1:
            raise ParameterError("max_rounds must be at least 1")

    @property
    def least_squares_verbosity(self) -> int:
        return VERBOSITY[self.verbosity]


@dataclass
class ShonanAveragingParameters:
    """
    Parameters governing the Shonan averaging.

    prior: anchor the first pose at the identity
    karcher: penalize the mean tangent step, which keeps the estimates
        from drifting along the global rotation ambiguity
    noise_sigma: if positive, every measurement gets weight 1/noise_sigma^2,
        otherwise the measurement information is used as is
    optimality_threshold: a solution is certified optimal when the minimum
        eigenvalue of the certificate matrix is at least this value
    use_noise_model: weight D, Q and the cost by the measurement weights
    seed: seed of the random initializations, None draws fresh entropy
    """

    prior: bool = True
    karcher: bool = True
    noise_sigma: float = 0.0
    optimality_threshold: float = -1e-4
    use_noise_model: bool = True
    anchor_weight: float = 1.0
    karcher_weight: float = 0.1
    seed: Optional[int] = None
    eigen_tolerance: float = 1e-10
    eigen_max_iterations: Optional[int] = None
    dense_eigen_limit: int = 200
    gradient_tolerance: float = 1e-2
    preconditioned_gradient_tolerance: float = 1e-4
    solver: SolverParameters = field(default_factory=SolverParameters)

    def __post_init__(self):
        if isinstance(self.solver, dict):
            self.solver = SolverParameters(**self.solver)
        if self.noise_sigma < 0:
            raise ParameterError("noise_sigma must not be negative")
        if self.optimality_threshold > 0:
            raise ParameterError("optimality_threshold must not be positive")
        for name in ["anchor_weight", "karcher_weight", "eigen_tolerance"]:
            if not getattr(self, name) > 0:
                raise ParameterError("{:s} must be positive".format(name))
        if self.gradient_tolerance < 0 or self.preconditioned_gradient_tolerance < 0:
            raise ParameterError("gradient tolerances must not be negative")

    def set_prior(self, value):
        self.prior = bool(value)

    def set_karcher(self, value):
        self.karcher = bool(value)

    def set_noise_sigma(self, value):
        if value < 0:
            raise ParameterError("noise_sigma must not be negative")
        self.noise_sigma = float(value)

    @classmethod
    def from_dict(cls, params):
        """
        Build from a flat table, solver options are namespaced, e.g.
        {"prior": False, "solver/ftol": 1e-8}
        """
        solver_names = {f.name for f in fields(SolverParameters)}
        names = {f.name for f in fields(cls)} - {"solver"}
        kwargs = {}
        solver = {}
        for k, v in params.items():
            if k.startswith("solver/"):
                name = k[len("solver/"):]
                if name not in solver_names:
                    raise ParameterError("unknown parameter {:s}".format(k))
                solver[name] = v
            elif k in names:
                kwargs[k] = v
            else:
                raise ParameterError("unknown parameter {:s}".format(k))
        return cls(solver=SolverParameters(**solver), **kwargs)

    def to_dict(self):
        d = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "solver"}
        for f in fields(self.solver):
            d["solver/" + f.name] = getattr(self.solver, f.name)
        return d
