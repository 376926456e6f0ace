"""
joint.py
--------
Single degree-of-freedom actuators attached to a link.

A link carries an ordered list of joints.  Each joint moves the link's
frame about (or along) one of its local axes, around a pivot point that
stays fixed under that joint's own motion:

    T(pivot) · motion · T(-pivot)

Rotational joints are expressed in degrees, linear joints in millimetres.
"""
from __future__ import annotations

import math
from typing import Any, Optional

import numpy as np

from axis_math import axis_vector, rotation, translation
from kinematics.geometry import coerce_number

MM_TO_M = 1.0 / 1000.0
M_TO_MM = 1000.0

MOTIONS = ("rotational", "linear")

DEFAULT_LIMITS = {
    "rotational": (-90.0, 90.0),
    "linear": (0.0, 150.0),
}


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class Joint:
    """
    A rotational or linear degree of freedom.

    Writes to ``limits`` and ``value`` never fail: limits are reordered so
    that min <= max, and the value is clamped into them.  NaN writes are
    ignored.

    Attributes
    ----------
    name             : str    External key for this joint (unique per tree).
    motion           : str    'rotational' (degrees) or 'linear' (millimetres).
    axis             : str    Motion axis in the link's local frame: 'x', 'y' or 'z'.
    limits           : tuple  (min, max) bounds of ``value``.
    value            : float  Current joint value.
    pivot            : tuple  Fixed point of the motion, in the link's local frame.
    external_control : bool   Whether an external channel may drive this joint.
    """

    def __init__(self, name: str, motion: str = 'rotational', axis: str = 'z',
                 limits: Optional[tuple[float, float]] = None,
                 value: Optional[float] = None,
                 pivot: tuple[float, float, float] = (0.0, 0.0, 0.0),
                 id: Optional[str] = None,
                 external_control: bool = False) -> None:
        if motion not in MOTIONS:
            raise ValueError(f"Invalid motion '{motion}', must be 'rotational' or 'linear'")
        if axis not in ('x', 'y', 'z'):
            raise ValueError(f"Invalid axis '{axis}', must be 'x', 'y', or 'z'")
        self.id = id or name
        self.name = name
        self.motion = motion
        self.axis = axis
        self.pivot = (float(pivot[0]), float(pivot[1]), float(pivot[2]))
        self.external_control = external_control

        low, high = limits if limits is not None else DEFAULT_LIMITS[motion]
        self._limits = (min(low, high), max(low, high))
        if value is None:
            value = 0.0 if motion == 'rotational' else self._limits[0]
        self._value = 0.0
        self.value = value

    # ── Value and limits ──────────────────────────────────────────────────────

    @property
    def limits(self) -> tuple[float, float]:
        return self._limits

    @limits.setter
    def limits(self, bounds: tuple[float, float]) -> None:
        low, high = float(bounds[0]), float(bounds[1])
        if math.isnan(low) or math.isnan(high):
            return
        self._limits = (min(low, high), max(low, high))
        self._value = clamp(self._value, *self._limits)

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, value: float) -> None:
        value = float(value)
        if math.isnan(value):
            return
        self._value = clamp(value, *self._limits)

    @property
    def is_rotational(self) -> bool:
        return self.motion == 'rotational'

    # ── Kinematics ────────────────────────────────────────────────────────────

    def axis_vector(self) -> np.ndarray:
        """Unit motion axis in the link's local (pre-joint) frame."""
        return axis_vector(self.axis)

    def get_transform(self) -> np.ndarray:
        """
        Return the 4x4 transform contributed by this joint at its current value.

        The motion is sandwiched between a translation to the pivot and back,
        so the pivot itself does not move.
        """
        if self.is_rotational:
            motion = rotation(self.axis, self._value)
        else:
            motion = translation(self.axis_vector() * (self._value * MM_TO_M))
        return translation(self.pivot) @ motion @ translation([-p for p in self.pivot])

    # ── Serialisation ─────────────────────────────────────────────────────────

    def copy(self) -> Joint:
        return Joint(
            name=self.name,
            motion=self.motion,
            axis=self.axis,
            limits=self._limits,
            value=self._value,
            pivot=self.pivot,
            id=self.id,
            external_control=self.external_control,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the joint in the scene-file format."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.motion,
            "axis": self.axis,
            "limits": list(self._limits),
            "currentValue": self._value,
            "pivot": list(self.pivot),
            "externalControl": self.external_control,
        }

    def __repr__(self) -> str:
        return (
            f"Joint({self.name!r}, {self.motion}, axis={self.axis}, "
            f"value={self._value:g}, limits={self._limits})"
        )


def parse_joint(raw: Any, fallback_name: str) -> Joint:
    """Build a Joint from a scene-file mapping, normalising bad fields.

    Unknown motion types become rotational, unknown axes become 'z', and
    missing names or ids take *fallback_name*.
    """
    raw = raw if isinstance(raw, dict) else {}
    motion = 'linear' if raw.get("type") == 'linear' else 'rotational'
    axis = raw.get("axis") if raw.get("axis") in ('x', 'y') else 'z'

    default_low, default_high = DEFAULT_LIMITS[motion]
    raw_limits = raw.get("limits")
    if isinstance(raw_limits, (list, tuple)) and len(raw_limits) >= 2:
        limits = (coerce_number(raw_limits[0], default_low), coerce_number(raw_limits[1], default_high))
    else:
        limits = (default_low, default_high)

    default_value = 0.0 if motion == 'rotational' else min(limits)
    pivot = raw.get("pivot")
    if not isinstance(pivot, (list, tuple)) or len(pivot) < 3:
        pivot = (0.0, 0.0, 0.0)

    name = raw.get("name")
    name = name if isinstance(name, str) and name.strip() else fallback_name
    joint_id = raw.get("id")
    joint_id = joint_id if isinstance(joint_id, str) and joint_id.strip() else fallback_name

    return Joint(
        name=name,
        motion=motion,
        axis=axis,
        limits=limits,
        value=coerce_number(raw.get("currentValue"), default_value),
        pivot=(coerce_number(pivot[0], 0.0), coerce_number(pivot[1], 0.0), coerce_number(pivot[2], 0.0)),
        id=joint_id,
        external_control=bool(raw.get("externalControl", False)),
    )
