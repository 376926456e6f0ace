"""
scene.py
--------
Owner of the live link tree.

Wraps a KinematicTree behind a lock, commits solver results, and builds
the typed message dicts a renderer consumes: the static structure of the
tree and the per-frame world state.
"""
from __future__ import annotations

import threading
from typing import Any, Optional

from axis_math import Transform
from kinematics import KinematicTree, compute_kinematics
from kinematics.geometry import get_geometry_bounds
from kinematics.inverse import MAX_ITERATIONS, TOLERANCE, IkResult, solve_ik


def _floats(values) -> list[float]:
    return [float(v) for v in values]


class Scene:
    """Thread-safe holder of the current link tree.

    Every read and write goes through the lock, so a solve started from
    one thread never interleaves with a slider write or another solve.
    """

    def __init__(self, tree: Optional[KinematicTree] = None,
                 max_iterations: int = MAX_ITERATIONS,
                 tolerance: float = TOLERANCE) -> None:
        self._tree = tree if tree is not None else KinematicTree()
        self._lock = threading.Lock()
        self.max_iterations = max_iterations
        self.tolerance = tolerance

    @property
    def tree(self) -> KinematicTree:
        return self._tree

    def load(self, tree: KinematicTree) -> None:
        """Replace the current tree."""
        with self._lock:
            self._tree = tree

    # ── Messages ──────────────────────────────────────────────────────────────

    def static_definition(self) -> dict[str, Any]:
        """Return the tree structure as a typed message.

        Returns:
            {
                "type": "static_scene_definition",
                "root": <root link id>,
                "links": [ {id, name, parent, geometry, bounds, color, joints}, ... ]
            }

        Links are ordered depth-first, parents before children.
        """
        with self._lock:
            links = [
                {
                    "id": link.id,
                    "name": link.name,
                    "parent": link.parent_id,
                    "geometry": link.geometry.to_dict(),
                    "bounds": get_geometry_bounds(link.geometry).to_dict(),
                    "color": link.color,
                    "joints": [joint.to_dict() for joint in link.joints],
                }
                for link in self._tree.links()
            ]
            return {
                "type": "static_scene_definition",
                "root": self._tree.root_id,
                "links": links,
            }

    def get_state(self) -> dict[str, Any]:
        """Return world-space frames for every link as a typed message.

        Returns:
            {
                "type": "state_update",
                "links": [ {id, matrix, position, rotation, joints: [{name, motion,
                            value, limits, pivot, axis}, ...]}, ... ]
            }

        ``matrix`` is the 4x4 world matrix flattened row by row; ``position``
        and ``rotation`` (Euler XYZ, degrees) are the same frame decomposed.
        """
        with self._lock:
            state = compute_kinematics(self._tree)
            links = []
            for link_state in state.links.values():
                links.append({
                    "id": link_state.id,
                    "matrix": link_state.matrix.flatten().tolist(),
                    **Transform.from_matrix(link_state.matrix).to_dict(),
                    "joints": [
                        {
                            "name": js.joint.name,
                            "motion": js.joint.motion,
                            "value": js.joint.value,
                            "limits": list(js.joint.limits),
                            "pivot": _floats(js.pivot),
                            "axis": _floats(js.axis),
                        }
                        for js in link_state.joints
                    ],
                })
            return {
                "type": "state_update",
                "links": links,
            }

    # ── Joint writes ──────────────────────────────────────────────────────────

    def joint_values(self) -> dict[str, float]:
        with self._lock:
            return self._tree.collect_joint_values()

    def set_joint_value(self, name: str, value: float) -> Optional[float]:
        """Write one joint by name; returns the clamped value or None if unknown."""
        with self._lock:
            return self._tree.set_joint_value(name, value)

    def apply_joint_values(self, values: dict[str, float], external: bool = False) -> dict[str, float]:
        """Write several joints by name; returns the values that changed."""
        with self._lock:
            return self._tree.apply_joint_values(values, external=external)

    # ── Inverse kinematics ────────────────────────────────────────────────────

    def solve_for_target(self, link_id: str, target,
                         max_iterations: Optional[int] = None,
                         tolerance: Optional[float] = None) -> IkResult:
        """
        Move link *link_id* towards the world point *target* and commit the
        resulting joint values, whether or not the target was reached.
        """
        with self._lock:
            result = solve_ik(
                self._tree,
                link_id,
                target,
                max_iterations=self.max_iterations if max_iterations is None else max_iterations,
                tolerance=self.tolerance if tolerance is None else tolerance,
            )
            self._tree = result.tree
            return result


if __name__ == "__main__":
    import json

    from devices import build_three_axis_robot

    scene = Scene(build_three_axis_robot())

    print("=== static_definition ===")
    print(json.dumps(scene.static_definition(), indent=2))

    tool = scene.tree.links()[-1]
    result = scene.solve_for_target(tool.id, (0.25, 0.1, 0.6))
    print(f"\n=== solve_for_target({tool.id}) success={result.success} after {result.iterations} sweeps ===")
    print(json.dumps(result.joint_values, indent=2))

    print("\n=== get_state ===")
    print(json.dumps(scene.get_state(), indent=2))
