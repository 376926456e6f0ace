"""
three_axis_robot.py
-------------------
A small arm built as a KinematicTree.

The arm consists of:
  - Base (box, 0.2 high)      waist joint    (Z-axis rotation)
  - Upper arm (cylinder, 0.5) shoulder joint (Y-axis rotation, pivot at its foot)
  - Forearm (cylinder, 0.4)   elbow joint    (Y-axis rotation, pivot at its foot)
  - Tool (box, 0.1)           slide joint    (Z-axis translation, 0–150 mm)
"""
from __future__ import annotations

from kinematics import BoxGeometry, CylinderGeometry, KinematicTree, Link


def build_three_axis_robot(name: str = "robot") -> KinematicTree:
    """
    Build the arm.  Joint names are prefixed with *name*, e.g.
    ``robot_waist``, ``robot_shoulder``, ``robot_elbow``, ``robot_slide``.

    Usage:
        tree = build_three_axis_robot()
        tree.set_joint_value("robot_shoulder", 30.0)
    """
    tree = KinematicTree(Link(
        id=f"{name}_base",
        name="Base",
        geometry=BoxGeometry(width=0.5, depth=0.5, height=0.2),
        color="#64748b",
    ))
    base = tree.root
    tree.add_joint(base.id, axis='z', name=f"{name}_waist")
    tree.update_joint(base.id, 0, limits=(-180.0, 180.0))

    upper_arm = tree.add_link(CylinderGeometry(radius=0.06, height=0.5), parent_id=base.id,
                              name="Upper Arm", with_joint=False)
    tree.add_joint(upper_arm.id, axis='y', name=f"{name}_shoulder")
    tree.update_joint(upper_arm.id, 0, limits=(-120.0, 120.0), pivot=(0.0, 0.0, -0.25))

    forearm = tree.add_link(CylinderGeometry(radius=0.05, height=0.4), parent_id=upper_arm.id,
                            name="Forearm", with_joint=False)
    tree.add_joint(forearm.id, axis='y', name=f"{name}_elbow")
    tree.update_joint(forearm.id, 0, limits=(-135.0, 135.0), pivot=(0.0, 0.0, -0.2))

    tool = tree.add_link(BoxGeometry(width=0.08, depth=0.08, height=0.1), parent_id=forearm.id,
                         name="Tool", with_joint=False)
    tree.add_joint(tool.id, motion='linear', axis='z', name=f"{name}_slide")
    return tree


# ── Example Usage ────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import json

    from kinematics import compute_kinematics, solve_ik

    tree = build_three_axis_robot()
    tool_id = tree.links()[-1].id

    print("=== Three-Axis Robot ===")
    print(f"Initial joint values: {tree.collect_joint_values()}")
    print(f"Tool position: {compute_kinematics(tree)[tool_id].position}")
    print()

    result = solve_ik(tree, tool_id, (0.3, 0.2, 0.7))
    print("=== After IK towards (0.3, 0.2, 0.7) ===")
    print(f"Success: {result.success} in {result.iterations} sweeps")
    print(f"Tool position: {compute_kinematics(result.tree)[tool_id].position}")
    print()

    print("=== Scene file (JSON) ===")
    print(json.dumps(result.tree.to_dict(), indent=2))
