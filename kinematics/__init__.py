"""
kinematics
----------
Link trees and their kinematics: geometry bounds, joints, forward
kinematics and the inverse-kinematics solver.
"""

from kinematics.forward import JointWorldState, LinkWorldState, WorldState, compute_kinematics
from kinematics.geometry import (
    BoxGeometry,
    CapsuleGeometry,
    ConeGeometry,
    CustomGeometry,
    CylinderGeometry,
    GeometryBounds,
    SphereGeometry,
    get_geometry_bounds,
)
from kinematics.inverse import IkResult, solve_ik
from kinematics.joint import Joint
from kinematics.link import Link
from kinematics.tree import KinematicTree

__all__ = [
    "BoxGeometry",
    "CapsuleGeometry",
    "ConeGeometry",
    "CustomGeometry",
    "CylinderGeometry",
    "GeometryBounds",
    "IkResult",
    "Joint",
    "JointWorldState",
    "KinematicTree",
    "Link",
    "LinkWorldState",
    "SphereGeometry",
    "WorldState",
    "compute_kinematics",
    "get_geometry_bounds",
    "solve_ik",
]
