"""
Exceptions raised by pyshonan.

Structural problems with the input are raised at construction time.
Numerical trouble in the nonlinear solver is reported in results instead,
see optimizer.OptimizationResult, and an exhausted staircase is reported by
StaircaseResult.certified.
"""


class ShonanError(Exception):
    """base class of all pyshonan errors"""


class InvalidMeasurementError(ShonanError, ValueError):
    """malformed measurement set or pose map"""


class ParameterError(ShonanError, ValueError):
    """invalid configuration value"""


class EigenSolverNotConvergedError(ShonanError, RuntimeError):
    """the minimum eigenvalue iteration did not converge"""

    def __init__(self, message, eigenvalues=None):
        super().__init__(message)
        self.eigenvalues = eigenvalues


class SerializationError(ShonanError, ValueError):
    """unknown type or version in an encoded record"""
