"""
axis_math
---------
Spatial transform helpers shared by the kinematics and scene packages.
"""

from axis_math.axis_math import (
    Transform,
    axis_vector,
    euler_to_matrix,
    matrix_to_euler,
    project_onto_plane,
    rotation,
    signed_angle,
    transform_direction,
    transform_point,
    translation,
)

__all__ = [
    "Transform",
    "axis_vector",
    "euler_to_matrix",
    "matrix_to_euler",
    "project_onto_plane",
    "rotation",
    "signed_angle",
    "transform_direction",
    "transform_point",
    "translation",
]
