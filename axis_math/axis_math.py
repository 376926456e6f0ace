"""
axis_math.py
------------
Homogeneous transform and Euler rotation utilities.

All matrices are 4x4 numpy arrays acting on column vectors, so a chain
``A @ B @ C`` applies C first.  Angles are in degrees at the API surface.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

AXES: dict[str, tuple[float, float, float]] = {
    'x': (1.0, 0.0, 0.0),
    'y': (0.0, 1.0, 0.0),
    'z': (0.0, 0.0, 1.0),
}


@dataclass
class Transform:
    """Rigid transform: position and rotation (Euler XYZ, degrees)."""
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def to_dict(self) -> dict[str, list[float]]:
        return {
            "position": list(self.position),
            "rotation": list(self.rotation),
        }

    def to_matrix(self) -> np.ndarray:
        """Convert to a 4x4 matrix: translate(position) · rotate(rotation)."""
        mat = np.eye(4)
        mat[:3, :3] = euler_to_matrix(self.rotation)
        mat[:3, 3] = self.position
        return mat

    @classmethod
    def from_matrix(cls, mat: np.ndarray) -> Transform:
        """Decompose a rigid 4x4 matrix into position and Euler XYZ rotation."""
        position = tuple(float(v) for v in mat[:3, 3])
        return cls(position=position, rotation=matrix_to_euler(mat[:3, :3]))


def euler_to_matrix(euler: tuple[float, float, float]) -> np.ndarray:
    """3x3 rotation matrix from Euler XYZ angles in degrees.

    Intrinsic X, then Y, then Z: ``R = Rx @ Ry @ Rz``.
    """
    rx, ry, rz = np.radians(euler)
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)
    return np.array([
        [cy * cz,                 -cy * sz,                 sy],
        [cx * sz + sx * sy * cz,  cx * cz - sx * sy * sz,  -sx * cy],
        [sx * sz - cx * sy * cz,  sx * cz + cx * sy * sz,   cx * cy],
    ])


def matrix_to_euler(m: np.ndarray) -> tuple[float, float, float]:
    """Extract Euler XYZ angles (degrees) from a 3x3 rotation matrix."""
    sy = max(-1.0, min(1.0, m[0, 2]))
    ry = math.asin(sy)
    if abs(sy) < 1.0 - 1e-7:
        rx = math.atan2(-m[1, 2], m[2, 2])
        rz = math.atan2(-m[0, 1], m[0, 0])
    else:
        # gimbal lock
        rx = math.atan2(m[2, 1], m[1, 1])
        rz = 0.0
    return (math.degrees(rx), math.degrees(ry), math.degrees(rz))


def axis_vector(axis: str) -> np.ndarray:
    """Unit vector for the axis name 'x', 'y' or 'z'."""
    return np.array(AXES[axis])


def translation(offset) -> np.ndarray:
    """4x4 matrix translating by *offset*."""
    mat = np.eye(4)
    mat[:3, 3] = offset
    return mat


def rotation(axis: str, angle: float) -> np.ndarray:
    """4x4 matrix rotating by *angle* degrees about the named axis."""
    theta = math.radians(angle)
    c, s = math.cos(theta), math.sin(theta)
    mat = np.eye(4)
    if axis == 'x':
        mat[1:3, 1:3] = [[c, -s], [s, c]]
    elif axis == 'y':
        mat[0, 0], mat[0, 2], mat[2, 0], mat[2, 2] = c, s, -s, c
    else:
        mat[0:2, 0:2] = [[c, -s], [s, c]]
    return mat


def transform_point(mat: np.ndarray, point) -> np.ndarray:
    """Apply a 4x4 matrix to a 3D point."""
    return mat[:3, :3] @ np.asarray(point, dtype=float) + mat[:3, 3]


def transform_direction(mat: np.ndarray, direction) -> np.ndarray:
    """Rotate a direction by the rotation part of *mat* and normalise it."""
    v = mat[:3, :3] @ np.asarray(direction, dtype=float)
    length = np.linalg.norm(v)
    return v / length if length > 0.0 else v


def project_onto_plane(vector: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of *vector* along the unit *normal*."""
    return vector - normal * float(np.dot(vector, normal))


def signed_angle(a: np.ndarray, b: np.ndarray, axis: np.ndarray) -> float:
    """Angle in radians from unit vector *a* to unit vector *b* about *axis*."""
    angle = math.acos(max(-1.0, min(1.0, float(np.dot(a, b)))))
    return -angle if float(np.dot(np.cross(a, b), axis)) < 0.0 else angle
