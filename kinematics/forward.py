"""
forward.py
----------
Forward kinematics over a link tree.

Every call walks the whole tree from the root and recomputes all world
frames; nothing is cached between calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

import numpy as np

from axis_math import transform_direction, transform_point
from kinematics.composer import compose_link
from kinematics.joint import Joint

if TYPE_CHECKING:
    from kinematics.tree import KinematicTree


@dataclass
class JointWorldState:
    """World-space pivot and motion axis of one joint."""
    link_id: str
    index: int
    joint: Joint
    pivot: np.ndarray
    axis: np.ndarray


@dataclass
class LinkWorldState:
    """World frame of one link after all of its joints."""
    id: str
    matrix: np.ndarray
    position: np.ndarray
    joints: list[JointWorldState] = field(default_factory=list)


@dataclass
class WorldState:
    """World frames for every link reachable from the root, keyed by link id."""
    links: dict[str, LinkWorldState] = field(default_factory=dict)

    def __getitem__(self, link_id: str) -> LinkWorldState:
        return self.links[link_id]

    def __contains__(self, link_id: object) -> bool:
        return link_id in self.links

    def __iter__(self) -> Iterator[str]:
        return iter(self.links)

    def __len__(self) -> int:
        return len(self.links)

    def get(self, link_id: str) -> LinkWorldState | None:
        return self.links.get(link_id)


def compute_kinematics(tree: KinematicTree) -> WorldState:
    """
    Compute world frames for every link of *tree*.

    Depth-first, parents before children.  For each joint the pivot and
    axis are taken from the frame accumulated before that joint moves.
    Child ids that do not resolve are skipped.
    """
    state = WorldState()
    root_id = tree.root_id

    def visit(link_id: str, parent: np.ndarray) -> None:
        link = tree.find_link(link_id)
        if link is None:
            return
        frames = compose_link(link, parent, is_root=(link_id == root_id))

        joints = [
            JointWorldState(
                link_id=link_id,
                index=index,
                joint=joint,
                pivot=transform_point(frame, joint.pivot),
                axis=transform_direction(frame, joint.axis_vector()),
            )
            for index, (joint, frame) in enumerate(zip(link.joints, frames.joint_frames))
        ]
        state.links[link_id] = LinkWorldState(
            id=link_id,
            matrix=frames.matrix,
            position=transform_point(frames.matrix, (0.0, 0.0, 0.0)),
            joints=joints,
        )
        for child_id in link.children:
            visit(child_id, frames.matrix)

    visit(root_id, np.eye(4))
    return state
