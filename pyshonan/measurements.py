import logging
import numbers
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union

import numpy as np
import scipy.sparse
import scipy.sparse.csgraph

from .errors import InvalidMeasurementError
from .lie import SO3

logger = logging.getLogger(__name__)

ROTATION_TOL = 1e-6  # orthogonality and determinant tolerance for inputs


def _check_key(key):
    if isinstance(key, (bool, np.bool_)) or not isinstance(key, numbers.Integral):
        raise InvalidMeasurementError("key {!r} is not an integer".format(key))
    if key < 0:
        raise InvalidMeasurementError("key {!r} is negative".format(key))
    return int(key)


def _check_rotation(R, what):
    try:
        R = np.array(R, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidMeasurementError("{:s} is not numeric: {}".format(what, e)) from e
    if not SO3.is_element(R, tol=ROTATION_TOL):
        raise InvalidMeasurementError(
            "{:s} is not a proper 3x3 rotation matrix".format(what)
        )
    R.setflags(write=False)
    return R


@dataclass(frozen=True)
class Measurement:
    """
    Relative rotation R_ab = R_a^T R_b between poses key_a and key_b.

    information is a non-negative scalar, a 3x3 rotation information matrix
    or a 6x6 pose information matrix ordered translation then rotation.
    """

    key_a: int
    key_b: int
    rotation: np.ndarray
    information: Union[float, np.ndarray] = 1.0

    def __post_init__(self):
        a = _check_key(self.key_a)
        b = _check_key(self.key_b)
        if a == b:
            raise InvalidMeasurementError("self loop on key {:d}".format(a))
        object.__setattr__(self, "key_a", a)
        object.__setattr__(self, "key_b", b)
        object.__setattr__(
            self,
            "rotation",
            _check_rotation(self.rotation, "measurement {:d}-{:d}".format(a, b)),
        )
        info = self.information
        if np.ndim(info) == 0:
            info = float(info)
            if not np.isfinite(info) or info < 0:
                raise InvalidMeasurementError(
                    "information of {:d}-{:d} must be finite and non-negative".format(a, b)
                )
        else:
            info = np.array(info, dtype=float)
            if info.shape not in [(3, 3), (6, 6)]:
                raise InvalidMeasurementError(
                    "information of {:d}-{:d} must be 3x3 or 6x6, got {}".format(
                        a, b, info.shape
                    )
                )
            if not np.all(np.isfinite(info)) or np.any(np.diag(info) < 0):
                raise InvalidMeasurementError(
                    "information of {:d}-{:d} must be finite with non-negative diagonal".format(
                        a, b
                    )
                )
            info.setflags(write=False)
        object.__setattr__(self, "information", info)

    @property
    def keys(self) -> Tuple[int, int]:
        return (self.key_a, self.key_b)

    @property
    def weight(self) -> float:
        """
        scalar precision, mean of the rotation information diagonal
        """
        info = self.information
        if isinstance(info, float):
            return info
        return float(np.mean(np.diag(info)[-3:]))

    def __eq__(self, other):
        if not isinstance(other, Measurement):
            return NotImplemented
        return (
            self.keys == other.keys
            and np.array_equal(self.rotation, other.rotation)
            and np.array_equal(np.asarray(self.information), np.asarray(other.information))
        )

    def __hash__(self):
        return hash((self.key_a, self.key_b, self.rotation.tobytes()))


class MeasurementSet:
    """
    Immutable ordered collection of relative rotation measurements with an
    optional map of initial absolute rotations.

    Keys are indexed in order of first appearance, this index fixes the
    block layout of all sparse matrices and Stiefel matrices.
    """

    def __init__(
        self,
        measurements: Iterable[Measurement],
        poses: Optional[Dict[int, np.ndarray]] = None,
    ):
        measurements = tuple(measurements)
        if len(measurements) == 0:
            raise InvalidMeasurementError("measurement set is empty")
        for m in measurements:
            if not isinstance(m, Measurement):
                raise InvalidMeasurementError(
                    "expected Measurement, got {:s}".format(type(m).__name__)
                )
        self._measurements = measurements

        index = {}
        for m in measurements:
            for k in m.keys:
                if k not in index:
                    index[k] = len(index)
        self._index = index
        self._keys = tuple(index)

        checked = {}
        for k, R in (poses or {}).items():
            k = _check_key(k)
            if k not in index:
                raise InvalidMeasurementError(
                    "pose {:d} is not referenced by any measurement".format(k)
                )
            checked[k] = _check_rotation(R, "pose {:d}".format(k))
        self._poses = checked

        n_components = self.nr_components()
        if n_components > 1:
            logger.warning(
                "measurement graph has %d connected components, each keeps its own gauge",
                n_components,
            )

    def __len__(self):
        return len(self._measurements)

    def __iter__(self):
        return iter(self._measurements)

    def __getitem__(self, i) -> Measurement:
        return self._measurements[i]

    def __repr__(self):
        return "MeasurementSet({:d} measurements, {:d} poses)".format(
            len(self), self.nr_poses()
        )

    @property
    def measurements(self) -> Tuple[Measurement, ...]:
        return self._measurements

    @property
    def keys(self) -> Tuple[int, ...]:
        """distinct keys in order of first appearance"""
        return self._keys

    @property
    def poses(self) -> Dict[int, np.ndarray]:
        """initial absolute rotations, a copy"""
        return dict(self._poses)

    def index(self, key) -> int:
        return self._index[key]

    def nr_poses(self) -> int:
        return len(self._keys)

    def measured(self, i) -> np.ndarray:
        return self._measurements[i].rotation

    def keys_of(self, i) -> Tuple[int, int]:
        return self._measurements[i].keys

    def edge_indices(self):
        """block indices (i, j) of every measurement as two int arrays"""
        i = np.array([self._index[m.key_a] for m in self._measurements], dtype=int)
        j = np.array([self._index[m.key_b] for m in self._measurements], dtype=int)
        return i, j

    def weights(self, use_noise_model=True, noise_sigma=0.0) -> np.ndarray:
        """
        per measurement weight, all ones unless the noise model is used,
        a positive noise_sigma overrides the measurement information
        """
        if not use_noise_model:
            return np.ones(len(self))
        if noise_sigma > 0:
            return np.full(len(self), 1.0 / noise_sigma**2)
        return np.array([m.weight for m in self._measurements])

    def nr_components(self) -> int:
        i, j = self.edge_indices()
        n = self.nr_poses()
        adjacency = scipy.sparse.coo_matrix((np.ones(len(i)), (i, j)), shape=(n, n))
        n_components, _ = scipy.sparse.csgraph.connected_components(
            adjacency, directed=False
        )
        return int(n_components)
