import json

from pytest import approx, raises

from devices import build_three_axis_robot
from kinematics import BoxGeometry, CylinderGeometry, KinematicTree, Link


def test_default_tree():
    tree = KinematicTree()
    assert len(tree) == 1
    assert tree.root.name == "Base"
    assert tree.root.parent_id is None
    tree.validate()

def test_add_link_stacks_on_parent():
    tree = KinematicTree()
    link = tree.add_link("box")
    assert link.parent_id == tree.root_id
    assert tree.root.children == [link.id]
    # base 0.2 high, default box 0.4 high, 5 cm gap
    assert link.base_offset == approx((0.0, 0.0, 0.35))
    assert len(link.joints) == 1
    joint = link.joints[0]
    assert (joint.motion, joint.axis, joint.limits, joint.value) == ('rotational', 'z', (-90.0, 90.0), 0.0)
    tree.validate()

def test_generated_names_unique():
    tree = KinematicTree()
    names = set()
    for _ in range(5):
        link = tree.add_link("sphere")
        names.add(link.joints[0].name)
        names.add(tree.add_joint(link.id, motion='linear').name)
    assert len(names) == 10

def test_add_joint_defaults():
    tree = KinematicTree()
    joint = tree.add_joint(tree.root_id, motion='linear', axis='x', name="slide")
    assert joint.name == "slide"
    assert joint.limits == (0.0, 150.0)
    assert joint.value == 0.0

def test_duplicate_joint_name_renamed():
    tree = KinematicTree()
    first = tree.add_joint(tree.root_id, name="shoulder")
    second = tree.add_joint(tree.root_id, name="shoulder")
    assert first.name == "shoulder"
    assert second.name != "shoulder"
    third = tree.add_joint(tree.root_id, name="elbow")
    tree.update_joint(tree.root_id, 2, name="shoulder")
    assert third.name not in ("shoulder", second.name)
    # keeping its own name is not a collision
    tree.update_joint(tree.root_id, 0, name="shoulder")
    assert first.name == "shoulder"

def test_update_joint_limits_then_value():
    tree = KinematicTree()
    tree.add_joint(tree.root_id, name="j")
    joint = tree.update_joint(tree.root_id, 0, limits=(50.0, -50.0), value=1000.0)
    assert joint.limits == (-50.0, 50.0)
    assert joint.value == 50.0
    tree.update_joint(tree.root_id, 0, limits=(0.0, 10.0))
    assert joint.value == 10.0
    with raises(ValueError):
        tree.update_joint(tree.root_id, 0, axis='q')
    with raises(ValueError):
        tree.update_joint(tree.root_id, 0, speed=3)
    with raises(IndexError):
        tree.update_joint(tree.root_id, 5, value=1.0)

def test_remove_joint():
    tree = KinematicTree()
    tree.add_joint(tree.root_id, name="a")
    tree.add_joint(tree.root_id, name="b")
    removed = tree.remove_joint(tree.root_id, 0)
    assert removed.name == "a"
    assert [j.name for j in tree.root.joints] == ["b"]
    assert tree.find_joint("a") is None

def test_set_joint_value_clamps():
    tree = build_three_axis_robot()
    assert tree.set_joint_value("robot_shoulder", 500.0) == 120.0
    assert tree.get_joint("robot_shoulder").value == 120.0
    assert tree.set_joint_value("missing", 1.0) is None
    with raises(KeyError):
        tree.get_joint("missing")

def test_apply_joint_values():
    tree = build_three_axis_robot()
    tree.update_joint(tree.root_id, 0, external_control=True)
    changed = tree.apply_joint_values({"robot_waist": 10.0, "robot_elbow": 20.0}, external=True)
    assert changed == {"robot_waist": 10.0}
    changed = tree.apply_joint_values({"robot_waist": 10.0, "robot_elbow": 20.0, "nope": 3.0})
    assert changed == {"robot_elbow": 20.0}
    assert tree.collect_joint_values()["robot_slide"] == 0.0

def test_path_and_chain():
    tree = build_three_axis_robot()
    ids = [link.id for link in tree.links()]
    assert tree.path_to(ids[-1]) == ids
    assert tree.path_to("nowhere") == []
    names = [joint.name for _, _, joint in tree.joint_chain(ids[2])]
    assert names == ["robot_waist", "robot_shoulder", "robot_elbow"]

def test_remove_link_removes_subtree():
    tree = build_three_axis_robot()
    ids = [link.id for link in tree.links()]
    removed = tree.remove_link(ids[1])
    assert sorted(removed) == sorted(ids[1:])
    assert len(tree) == 1
    assert tree.root.children == []
    with raises(ValueError):
        tree.remove_link(tree.root_id)
    with raises(KeyError):
        tree.remove_link(ids[1])

def test_reparent():
    tree = KinematicTree()
    a = tree.add_link("box")
    b = tree.add_link("cylinder", parent_id=a.id)
    c = tree.add_link("sphere")
    tree.reparent(b.id, c.id)
    assert b.parent_id == c.id
    assert a.children == []
    assert c.children == [b.id]
    tree.validate()
    with raises(ValueError):
        tree.reparent(c.id, b.id)
    with raises(ValueError):
        tree.reparent(tree.root_id, a.id)

def test_update_link_restacks_children():
    tree = KinematicTree()
    arm = tree.add_link("box")
    tool = tree.add_link("box", parent_id=arm.id)
    tree.update_link(tool.id, base_offset=(0.1, 0.0, 0.0))
    tree.update_link(arm.id, geometry=CylinderGeometry(radius=0.1, height=1.0))
    assert tool.base_offset == approx((0.1, 0.0, 0.5 + 0.2 + 0.05))

def test_validate_rejects_broken_parent():
    tree = KinematicTree()
    link = tree.add_link("box")
    link.parent_id = "elsewhere"
    with raises(ValueError):
        tree.validate()

def test_copy_along_path_shares_other_links():
    tree = build_three_axis_robot()
    ids = [link.id for link in tree.links()]
    copy = tree.copy_along_path(ids[:2])
    assert copy.get_link(ids[0]) is not tree.get_link(ids[0])
    assert copy.get_link(ids[3]) is tree.get_link(ids[3])
    copy.set_joint_value("robot_waist", 45.0)
    assert tree.get_joint("robot_waist").value == 0.0


SCENE = {
    "rootId": "missing-root",
    "nodes": {
        "link-1": {
            "name": "Base",
            "geometry": {"kind": "box", "width": 0.5, "depth": 0.5, "height": 0.2},
            "children": ["link-2", "ghost"],
            "baseOffset": [0, 0, 0],
            "joints": [],
        },
        "link-2": {
            "name": "Arm",
            "geometry": {"kind": "capsule", "radius": 0.1, "length": 0.3},
            "parentId": "link-1",
            "children": ["link-7"],
            "baseOffset": [0, 0, 0.4],
            "staticRotation": [0, 90, 0],
            "joints": [
                {"name": "joint-3", "type": "rotational", "axis": "y", "limits": [45, -45], "currentValue": 90},
            ],
        },
        "link-7": {
            "name": "Legacy",
            "parentId": "link-2",
            "joint": {"name": "joint-3", "type": "linear", "axis": "x", "limits": [0, 100], "currentValue": 30},
        },
    },
}


def test_from_dict_normalises():
    tree = KinematicTree.from_dict(SCENE)
    assert tree.root_id == "link-1"
    assert tree.root.children == ["link-2"]
    arm = tree.get_link("link-2")
    assert arm.static_rotation == (0.0, 90.0, 0.0)
    assert arm.joints[0].limits == (-45.0, 45.0)
    assert arm.joints[0].value == 45.0
    legacy = tree.get_link("link-7")
    assert legacy.joints[0].motion == 'linear'
    assert legacy.joints[0].value == 30.0
    # duplicate joint name repaired
    assert legacy.joints[0].name != "joint-3"
    assert len(tree.collect_joint_values()) == 2
    # new ids continue after the highest imported suffix
    assert tree.add_link("box").id == "link-9"

def test_round_trip_through_file(tmp_path):
    tree = build_three_axis_robot()
    tree.apply_joint_values({"robot_waist": 12.5, "robot_slide": 40.0})
    path = tmp_path / "arm.json"
    tree.save(path)
    loaded = KinematicTree.from_file(path)
    assert loaded.to_dict() == tree.to_dict()
    assert json.loads(path.read_text())["rootId"] == "robot_base"

def test_from_dict_errors():
    with raises(ValueError):
        KinematicTree.from_dict([])
    with raises(ValueError):
        KinematicTree.from_dict({"rootId": "a"})
    with raises(ValueError):
        KinematicTree.from_dict({"nodes": {}})
    with raises(ValueError):
        # parent that does not exist
        KinematicTree.from_dict({"rootId": "a", "nodes": {"a": {}, "b": {"parentId": "zzz"}}})

def test_custom_root():
    tree = KinematicTree(Link(id="frame", geometry=BoxGeometry(width=1.0, depth=1.0, height=0.1)))
    assert tree.root_id == "frame"
    assert tree.add_link("box").id == "link-1"

def test_nan_joint_write_is_not_a_change():
    tree = build_three_axis_robot()
    tree.set_joint_value("robot_elbow", 30.0)
    assert tree.apply_joint_values({"robot_elbow": float("nan")}) == {}
    assert tree.set_joint_value("robot_elbow", float("nan")) == 30.0
