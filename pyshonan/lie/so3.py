import casadi as ca

from .son import SOn
from .util import series_dict, to_casadi


# see: https://ethaneade.com/lie.pdf


class _SO3(SOn):
    """
    SO(3) as direction cosine matrices, with the usual so(3) hat ordering
    and closed form exponential and logarithm.
    """

    def __init__(self):
        super().__init__(3, positions=[(2, 1), (0, 2), (1, 0)])

    def __repr__(self):
        return "SO3"

    def exp(self, v):
        v = to_casadi(v)
        theta = ca.norm_2(v)
        X = self.wedge(v)
        A = series_dict["sin(x)/x"]
        B = series_dict["(1 - cos(x))/x^2"]
        return ca.DM.eye(3) + A(theta) * X + B(theta) * ca.mtimes(X, X)

    def log(self, R):
        R = to_casadi(R)
        c = ca.fmin(ca.fmax((ca.trace(R) - 1) / 2, -1), 1)
        theta = ca.arccos(c)
        A = series_dict["sin(x)/x"]
        return self.vee((R - R.T) / (A(theta) * 2))

    def angle(self, R):
        """
        rotation angle in radians
        """
        R = to_casadi(R)
        c = ca.fmin(ca.fmax((ca.trace(R) - 1) / 2, -1), 1)
        return ca.arccos(c)


SO3 = _SO3()
