import casadi as ca
import abc


class MatrixLieGroup(abc.ABC):
    """
    Matrix Lie group acting as a manifold capability for the optimizer:
    besides the group operations it provides a retraction, its local inverse
    and the manifold dimension, so callers can dispatch on a group instance
    whose size is only known at runtime.
    """

    def __init__(self, group_params, algebra_params, group_shape):
        """
        @param group_params: number of parameters of a group element (n*n for SO(n))
        @param algebra_params: number of parameters of the Lie algebra (n(n-1)/2 for SO(n))
        @param group_shape: shape of the matrix group element
        """
        self.group_params = group_params
        self.algebra_params = algebra_params
        self.group_shape = group_shape

    def check_group_shape(self, a):
        assert a.shape == self.group_shape

    def check_algebra_shape(self, v):
        assert v.shape == (self.algebra_params, 1) or v.shape == (self.algebra_params,)

    @property
    def dimension(self) -> int:
        """manifold dimension, the size of a tangent vector"""
        return self.algebra_params

    @abc.abstractmethod
    def identity(self) -> ca.SX:
        ...

    @abc.abstractmethod
    def product(self, a, b):
        ...

    @abc.abstractmethod
    def inv(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def exp(self, v) -> ca.SX:
        ...

    @abc.abstractmethod
    def log(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def vee(self, X) -> ca.SX:
        ...

    @abc.abstractmethod
    def wedge(self, v) -> ca.SX:
        ...

    @abc.abstractmethod
    def retract(self, a, v) -> ca.SX:
        ...

    @abc.abstractmethod
    def local_coordinates(self, a, b) -> ca.SX:
        ...
