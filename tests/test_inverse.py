import math

import numpy as np
from pytest import approx

import kinematics.inverse
from devices import build_three_axis_robot
from kinematics import BoxGeometry, Joint, KinematicTree, Link, compute_kinematics, solve_ik

ROOT_HEIGHT = 0.2
REACH = 0.5


def make_arm(motion='rotational'):
    """Base with one joint at its origin, and a tip link 0.5 m out along x."""
    tree = KinematicTree(Link(id="base", geometry=BoxGeometry(width=0.4, depth=0.4, height=ROOT_HEIGHT)))
    if motion == 'rotational':
        tree.root.joints.append(Joint("yaw", axis='z', limits=(-90.0, 90.0)))
    else:
        tree.root.joints.append(Joint("reach", motion='linear', axis='x', limits=(0.0, 150.0)))
    tip = tree.add_link(BoxGeometry(width=0.1, depth=0.1, height=0.1), with_joint=False)
    tree.update_link(tip.id, base_offset=(REACH, 0.0, 0.0))
    return tree, tip.id


def on_circle(degrees):
    theta = math.radians(degrees)
    return (REACH * math.cos(theta), REACH * math.sin(theta), ROOT_HEIGHT / 2)


def test_reachable_single_joint():
    tree, tip = make_arm()
    for theta in [30.0, -72.0, 89.0]:
        result = solve_ik(tree, tip, on_circle(theta))
        assert result.success
        assert result.iterations <= 12
        assert result.joint_values["yaw"] == approx(theta, abs=1.0)
        position = compute_kinematics(result.tree)[tip].position
        assert np.linalg.norm(position - np.array(on_circle(theta))) <= 0.005

def test_unreachable_stays_at_limit():
    tree, tip = make_arm()
    result = solve_ik(tree, tip, on_circle(150.0))
    assert not result.success
    assert result.joint_values["yaw"] == 90.0
    result = solve_ik(tree, tip, on_circle(-150.0))
    assert not result.success
    assert result.joint_values["yaw"] == -90.0

def test_linear_joint():
    tree, tip = make_arm('linear')
    result = solve_ik(tree, tip, (REACH + 0.1, 0.0, ROOT_HEIGHT / 2))
    assert result.success
    assert result.joint_values["reach"] == approx(100.0, abs=1e-6)

def test_linear_joint_clamped():
    tree, tip = make_arm('linear')
    result = solve_ik(tree, tip, (REACH + 1.0, 0.0, ROOT_HEIGHT / 2))
    assert not result.success
    assert result.joint_values["reach"] == 150.0

def test_no_joints_short_circuits(monkeypatch):
    tree = KinematicTree(Link(id="base"))
    tip = tree.add_link("sphere", with_joint=False)
    calls = []
    monkeypatch.setattr(kinematics.inverse, "compute_kinematics", lambda t: calls.append(t))
    before = tree.collect_joint_values()
    result = solve_ik(tree, tip.id, (1.0, 1.0, 1.0))
    assert not result.success
    assert result.tree is tree
    assert result.joint_values == before
    assert result.iterations == 0
    assert calls == []

def test_unknown_target_short_circuits():
    tree, _ = make_arm()
    result = solve_ik(tree, "nowhere", (1.0, 0.0, 0.0))
    assert not result.success
    assert result.tree is tree

def test_effector_on_axis_is_skipped():
    tree, tip = make_arm()
    # straight above the pivot: no rotation about z can help
    result = solve_ik(tree, tip, (0.0, 0.0, 1.0))
    assert not result.success
    assert result.joint_values["yaw"] == 0.0
    assert result.iterations == 1

def test_caller_tree_untouched_and_chain_isolated():
    tree, tip = make_arm()
    side = tree.add_link("box", with_joint=False)
    tree.add_joint(side.id, name="side_joint")
    tree.set_joint_value("side_joint", 20.0)
    tip_joint = tree.add_joint(tip, axis='x', name="tip_roll")

    before = tree.collect_joint_values()
    result = solve_ik(tree, tip, on_circle(40.0))

    assert result.success
    assert tree.collect_joint_values() == before
    assert result.joint_values["side_joint"] == 20.0
    for name, value in before.items():
        if name not in ("yaw", tip_joint.name):
            assert result.joint_values[name] == value
    # only the path was copied
    assert result.tree.get_link(side.id) is tree.get_link(side.id)
    assert result.tree.get_link("base") is not tree.get_link("base")
    assert result.tree.get_link(tip) is not tree.get_link(tip)

def test_multi_joint_chain_gets_closer():
    tree = build_three_axis_robot()
    tool = tree.links()[-1].id
    posed = tree.copy()
    posed.apply_joint_values({"robot_waist": 30.0, "robot_shoulder": 25.0, "robot_elbow": 40.0, "robot_slide": 60.0})
    target = compute_kinematics(posed)[tool].position

    start = np.linalg.norm(compute_kinematics(tree)[tool].position - target)
    result = solve_ik(tree, tool, target, max_iterations=50)
    end = np.linalg.norm(compute_kinematics(result.tree)[tool].position - target)
    assert end < start
    assert result.iterations <= 50
    assert result.success == (end <= 0.005)
