"""
composer.py
-----------
Builds a link's transform from its mount and its joints.

    parent · T(base) · R(static) · J0 · J1 · ... · Jn

where each ``Ji`` is the pivot-sandwiched motion of joint *i*.  The frame
accumulated just before ``Ji`` is kept so callers can report where that
joint sits in the world and which way it moves.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from kinematics.geometry import get_geometry_bounds
from kinematics.link import Link


@dataclass
class LinkFrames:
    """Result of composing one link.

    Attributes
    ----------
    matrix       : np.ndarray        Frame after the last joint (children attach here).
    joint_frames : list[np.ndarray]  Frame at the moment each joint is evaluated.
    """
    matrix: np.ndarray
    joint_frames: list[np.ndarray] = field(default_factory=list)


def mount_matrix(link: Link, is_root: bool = False) -> np.ndarray:
    """``T(base) · R(static)`` for *link*.

    The root is lifted by half its bounding height so its base rests on the
    ground plane (z = 0) rather than its centroid.
    """
    lift = get_geometry_bounds(link.geometry).height / 2 if is_root else 0.0
    return link.mount_transform(lift).to_matrix()


def compose_link(link: Link, parent: Optional[np.ndarray] = None,
                 is_root: bool = False) -> LinkFrames:
    """Compose *link* onto *parent* (identity when omitted)."""
    matrix = (np.eye(4) if parent is None else parent) @ mount_matrix(link, is_root)
    frames = LinkFrames(matrix=matrix)
    for joint in link.joints:
        frames.joint_frames.append(frames.matrix)
        frames.matrix = frames.matrix @ joint.get_transform()
    return frames
