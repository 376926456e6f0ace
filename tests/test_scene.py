import json

import numpy as np
from pytest import approx

from devices import build_three_axis_robot
from kinematics import KinematicTree, compute_kinematics
from scene import Scene


def make_scene():
    return Scene(build_three_axis_robot())


def test_default_scene_has_a_base():
    scene = Scene()
    definition = scene.static_definition()
    assert len(definition["links"]) == 1
    assert definition["links"][0]["parent"] is None

def test_static_definition():
    scene = make_scene()
    definition = scene.static_definition()
    assert definition["type"] == "static_scene_definition"
    assert definition["root"] == "robot_base"
    links = definition["links"]
    assert [link["name"] for link in links] == ["Base", "Upper Arm", "Forearm", "Tool"]
    assert links[1]["parent"] == "robot_base"
    assert links[1]["bounds"]["height"] == approx(0.5)
    assert links[1]["geometry"]["kind"] == "cylinder"
    assert links[0]["joints"][0]["name"] == "robot_waist"
    json.dumps(definition)

def test_state_matches_forward_kinematics():
    scene = make_scene()
    scene.apply_joint_values({"robot_waist": 45.0, "robot_elbow": -30.0})
    message = scene.get_state()
    assert message["type"] == "state_update"
    state = compute_kinematics(scene.tree)
    for link in message["links"]:
        expected = state[link["id"]]
        assert link["matrix"] == approx(expected.matrix.flatten().tolist())
        assert link["position"] == approx(expected.position.tolist())
    assert message["links"][0]["rotation"] == approx([0.0, 0.0, 45.0])
    elbow = message["links"][2]["joints"][0]
    assert elbow["name"] == "robot_elbow"
    assert elbow["value"] == -30.0
    assert np.linalg.norm(elbow["axis"]) == approx(1.0)
    json.dumps(message, allow_nan=False)

def test_joint_writes_are_clamped():
    scene = make_scene()
    assert scene.set_joint_value("robot_elbow", 400.0) == 135.0
    assert scene.set_joint_value("unknown", 1.0) is None
    assert scene.apply_joint_values({"robot_slide": -5.0, "robot_waist": 12.0}) == {"robot_waist": 12.0}
    assert scene.joint_values()["robot_elbow"] == 135.0

def test_solve_commits_result():
    scene = make_scene()
    original = scene.tree
    tool = original.links()[-1].id
    result = scene.solve_for_target(tool, (0.3, 0.2, 0.7))
    assert scene.tree is result.tree
    assert scene.joint_values() == result.joint_values
    assert result.iterations <= scene.max_iterations

def test_solve_overrides():
    scene = Scene(build_three_axis_robot(), max_iterations=3)
    tool = scene.tree.links()[-1].id
    assert scene.solve_for_target(tool, (0.3, 0.2, 0.7)).iterations <= 3
    assert scene.solve_for_target(tool, (0.3, 0.2, 0.7), max_iterations=1).iterations <= 1

def test_load_replaces_tree():
    scene = make_scene()
    tree = KinematicTree()
    scene.load(tree)
    assert scene.tree is tree
