"""
Versioned encode/decode of measurements, pose maps and parameters into
json compatible dicts.
"""
import json

import numpy as np

from .errors import SerializationError
from .measurements import Measurement, MeasurementSet
from .parameters import ShonanAveragingParameters

VERSION = 1


def _header(kind):
    return {"type": kind, "version": VERSION}


def _check(data, kind):
    if not isinstance(data, dict):
        raise SerializationError("expected a dict, got {:s}".format(type(data).__name__))
    if data.get("type") != kind:
        raise SerializationError(
            "expected type {:s}, got {!r}".format(kind, data.get("type"))
        )
    if data.get("version") != VERSION:
        raise SerializationError(
            "unsupported {:s} version {!r}".format(kind, data.get("version"))
        )


def encode_measurement(m):
    d = _header("measurement")
    d["keys"] = [m.key_a, m.key_b]
    d["rotation"] = m.rotation.tolist()
    info = m.information
    d["information"] = info if isinstance(info, float) else info.tolist()
    return d


def decode_measurement(data):
    _check(data, "measurement")
    key_a, key_b = data["keys"]
    info = data["information"]
    if isinstance(info, list):
        info = np.array(info)
    return Measurement(key_a, key_b, np.array(data["rotation"]), info)


def encode_poses(poses):
    d = _header("poses")
    d["poses"] = {str(k): np.asarray(R).tolist() for k, R in poses.items()}
    return d


def decode_poses(data):
    _check(data, "poses")
    return {int(k): np.array(R) for k, R in data["poses"].items()}


def encode_measurement_set(measurements):
    d = _header("measurement_set")
    d["measurements"] = [encode_measurement(m) for m in measurements]
    d["poses"] = encode_poses(measurements.poses)
    return d


def decode_measurement_set(data):
    _check(data, "measurement_set")
    return MeasurementSet(
        [decode_measurement(m) for m in data["measurements"]],
        decode_poses(data["poses"]),
    )


def encode_parameters(parameters):
    d = _header("parameters")
    d["parameters"] = parameters.to_dict()
    return d


def decode_parameters(data):
    _check(data, "parameters")
    return ShonanAveragingParameters.from_dict(data["parameters"])


_ENCODERS = {
    Measurement: encode_measurement,
    MeasurementSet: encode_measurement_set,
    ShonanAveragingParameters: encode_parameters,
}

_DECODERS = {
    "measurement": decode_measurement,
    "poses": decode_poses,
    "measurement_set": decode_measurement_set,
    "parameters": decode_parameters,
}


def encode(obj):
    """encode a Measurement, MeasurementSet, parameters or a pose dict"""
    if isinstance(obj, dict):
        return encode_poses(obj)
    try:
        return _ENCODERS[type(obj)](obj)
    except KeyError:
        raise SerializationError("cannot encode {:s}".format(type(obj).__name__)) from None


def decode(data):
    kind = data.get("type") if isinstance(data, dict) else None
    if kind not in _DECODERS:
        raise SerializationError("unknown type {!r}".format(kind))
    return _DECODERS[kind](data)


def dumps(obj, **kwargs):
    return json.dumps(encode(obj), **kwargs)


def loads(s):
    return decode(json.loads(s))
