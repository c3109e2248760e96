import logging

import numpy as np
import pytest

from pyshonan import Measurement, MeasurementSet
from pyshonan.errors import InvalidMeasurementError, ShonanError
from pyshonan.lie import SO3


def rot(x, y, z):
    return SO3.exp(np.array([x, y, z])).full()


def test_measurement_accessors():
    R = rot(0.1, 0.2, 0.3)
    m = Measurement(0, 1, R)
    assert m.keys == (0, 1)
    assert m.weight == 1.0
    assert np.array_equal(m.rotation, R)
    assert not m.rotation.flags.writeable


def test_weight_from_information():
    info = np.diag([1.0, 1.0, 1.0, 2.0, 4.0, 6.0])
    assert Measurement(0, 1, np.eye(3), info).weight == pytest.approx(4.0)
    assert Measurement(0, 1, np.eye(3), np.diag([3.0, 3.0, 3.0])).weight == pytest.approx(3.0)
    assert Measurement(0, 1, np.eye(3), 2.5).weight == 2.5


@pytest.mark.parametrize(
    "args",
    [
        (0, 0, np.eye(3)),
        (-1, 2, np.eye(3)),
        (0.5, 2, np.eye(3)),
        (True, 2, np.eye(3)),
        (0, 1, np.diag([1.0, 1.0, -1.0])),
        (0, 1, 2 * np.eye(3)),
        (0, 1, np.eye(4)),
        (0, 1, np.full((3, 3), np.nan)),
        (0, 1, np.eye(3), -1.0),
        (0, 1, np.eye(3), np.eye(2)),
        (0, 1, np.eye(3), np.inf),
    ],
)
def test_invalid_measurement(args):
    with pytest.raises(InvalidMeasurementError):
        Measurement(*args)


def test_errors_share_a_base():
    with pytest.raises(ShonanError):
        Measurement(0, 0, np.eye(3))
    with pytest.raises(ValueError):
        Measurement(0, 0, np.eye(3))


def test_measurement_set_order_and_index():
    ms = MeasurementSet(
        [
            Measurement(5, 2, rot(0.1, 0, 0)),
            Measurement(2, 9, rot(0, 0.1, 0)),
            Measurement(9, 5, rot(0, 0, 0.1)),
        ]
    )
    assert ms.keys == (5, 2, 9)
    assert ms.nr_poses() == 3
    assert len(ms) == 3
    assert ms.index(9) == 2
    assert ms.keys_of(1) == (2, 9)
    assert np.array_equal(ms.measured(0), rot(0.1, 0, 0))
    i, j = ms.edge_indices()
    assert list(i) == [0, 1, 2]
    assert list(j) == [1, 2, 0]
    assert ms.nr_components() == 1


def test_measurement_set_rejects():
    with pytest.raises(InvalidMeasurementError):
        MeasurementSet([])
    with pytest.raises(InvalidMeasurementError):
        MeasurementSet([(0, 1, np.eye(3))])
    with pytest.raises(InvalidMeasurementError):
        MeasurementSet([Measurement(0, 1, np.eye(3))], poses={2: np.eye(3)})
    with pytest.raises(InvalidMeasurementError):
        MeasurementSet([Measurement(0, 1, np.eye(3))], poses={0: -np.eye(3)})


def test_poses_are_copied():
    ms = MeasurementSet([Measurement(0, 1, np.eye(3))], poses={0: np.eye(3)})
    poses = ms.poses
    poses[1] = np.eye(3)
    assert list(ms.poses) == [0]


def test_weights():
    ms = MeasurementSet(
        [Measurement(0, 1, np.eye(3), 4.0), Measurement(1, 2, np.eye(3), 9.0)]
    )
    assert np.array_equal(ms.weights(use_noise_model=False), [1.0, 1.0])
    assert np.array_equal(ms.weights(), [4.0, 9.0])
    assert np.allclose(ms.weights(noise_sigma=0.5), [4.0, 4.0])


def test_disconnected_graph_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="pyshonan.measurements"):
        ms = MeasurementSet([Measurement(0, 1, np.eye(3)), Measurement(2, 3, np.eye(3))])
    assert ms.nr_components() == 2
    assert "connected components" in caplog.text
