"""
Certifiable rotation averaging with the Shonan algorithm.

lie: SO(n) and SO(3) manifolds
measurements: relative rotation measurements and initial poses
laplacian: degree, measurement and connection Laplacian matrices
graph: lifted cost at SO(p)
optimizer: nonlinear least squares on SO(p)^N
certificate: Lagrange multipliers and the minimum eigenvalue test
rounding: projection of lifted solutions to SO(3)
shonan: the Riemannian staircase
bounding: scalar inequality constraints
serialization: versioned encode/decode
synthetic: test problems with known ground truth
"""
from .errors import (
    EigenSolverNotConvergedError,
    InvalidMeasurementError,
    ParameterError,
    SerializationError,
    ShonanError,
)
from .measurements import Measurement, MeasurementSet
from .parameters import ShonanAveragingParameters, SolverParameters
from .shonan import LevelReport, ShonanAveraging, StaircaseResult

__version__ = "0.1.0"
