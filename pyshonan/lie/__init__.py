"""
Rotation groups used as optimization manifolds.

son: SO(n) for runtime n, Cayley retraction
so3: SO(3) with closed form exponential and logarithm
"""
from .son import SOn
from .so3 import SO3
