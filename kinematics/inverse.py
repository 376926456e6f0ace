"""
inverse.py
----------
Position-only inverse kinematics by cyclic coordinate descent.

Only the joints on the path from the root to the driven link move.  Each
sweep visits them from the most distal joint back to the root, turning
(or sliding) one joint at a time so the driven link's origin moves
towards the target, then checks the remaining distance.  Forward
kinematics is recomputed from scratch before every single-joint step.

The caller's tree is never modified: the solver works on a copy of the
links along the path and returns it for the caller to adopt.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from axis_math import project_onto_plane, signed_angle
from kinematics.forward import compute_kinematics
from kinematics.joint import M_TO_MM, clamp
from kinematics.tree import KinematicTree

MAX_ITERATIONS = 12
TOLERANCE = 0.005            # metres

MIN_PROJECTION = 1e-5        # metres
MIN_ANGLE = 1e-4             # radians
MIN_TRANSLATION = 1e-5       # metres
MIN_VALUE_CHANGE = 1e-3      # degrees or millimetres


@dataclass
class IkResult:
    """
    Outcome of a solve.

    Attributes
    ----------
    tree         : KinematicTree     Tree holding the solved joint values.
    joint_values : dict[str, float]  Every joint value of ``tree``, keyed by name.
    success      : bool              True if the target was reached within tolerance.
    iterations   : int               Number of sweeps performed.
    """
    tree: KinematicTree
    joint_values: dict[str, float] = field(default_factory=dict)
    success: bool = False
    iterations: int = 0


def _step(joint, pivot: np.ndarray, axis: np.ndarray,
          effector: np.ndarray, target: np.ndarray) -> bool:
    """Move one joint towards the target; return True if its value changed."""
    to_effector = effector - pivot
    to_target = target - pivot
    axis = axis / np.linalg.norm(axis)

    if joint.is_rotational:
        current = project_onto_plane(to_effector, axis)
        wanted = project_onto_plane(to_target, axis)
        current_length = np.linalg.norm(current)
        wanted_length = np.linalg.norm(wanted)
        if current_length < MIN_PROJECTION or wanted_length < MIN_PROJECTION:
            # effector or target on the axis
            return False
        angle = signed_angle(current / current_length, wanted / wanted_length, axis)
        if not math.isfinite(angle) or abs(angle) < MIN_ANGLE:
            return False
        delta = math.degrees(angle)
    else:
        distance = float(np.dot(to_target, axis) - np.dot(to_effector, axis))
        if not math.isfinite(distance) or abs(distance) < MIN_TRANSLATION:
            return False
        delta = distance * M_TO_MM

    next_value = clamp(joint.value + delta, *joint.limits)
    if abs(next_value - joint.value) < MIN_VALUE_CHANGE:
        return False
    joint.value = next_value
    return True


def solve_ik(tree: KinematicTree, target_id: str, target,
             max_iterations: int = MAX_ITERATIONS,
             tolerance: float = TOLERANCE) -> IkResult:
    """
    Drive the origin of link *target_id* towards the world point *target*.

    Returns immediately with ``success=False`` and the original tree when
    the root→target path has no joints (or the link does not exist).
    Otherwise runs up to *max_iterations* sweeps, stopping early when the
    effector is within *tolerance* metres of the target or when a sweep
    changes nothing.
    """
    target = np.asarray(target, dtype=float)
    path = tree.path_to(target_id)
    chain = [(link_id, index) for link_id, index, _ in tree.joint_chain(target_id)]
    if not chain:
        return IkResult(tree=tree, joint_values=tree.collect_joint_values())

    working = tree.copy_along_path(path)
    success = False
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        updated = False
        for link_id, index in reversed(chain):
            joint = working.get_link(link_id).joints[index]
            state = compute_kinematics(working)
            link_state = state.get(link_id)
            effector_state = state.get(target_id)
            if link_state is None or effector_state is None:
                continue
            joint_state = link_state.joints[index]
            if _step(joint, joint_state.pivot, joint_state.axis, effector_state.position, target):
                updated = True

        effector = compute_kinematics(working).get(target_id)
        if effector is not None and np.linalg.norm(effector.position - target) <= tolerance:
            success = True
            break
        if not updated:
            break

    return IkResult(
        tree=working,
        joint_values=working.collect_joint_values(),
        success=success,
        iterations=iterations,
    )
