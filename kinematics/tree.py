"""
tree.py
-------
KinematicTree holds the links of a mechanism keyed by id, with parent and
child relationships stored as ids.  It owns every structural edit and
every joint write, so the tree invariants (one root, no cycles, child
lists agreeing with parent ids, unique joint names) are enforced here
and nowhere else.
"""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from kinematics.geometry import (
    BoxGeometry,
    coerce_number,
    Geometry,
    create_default_geometry,
    get_geometry_bounds,
    parse_geometry,
)
from kinematics.joint import Joint, parse_joint
from kinematics.link import Link

MOUNT_GAP = 0.05

_NUMERIC_SUFFIX = re.compile(r"-(\d+)$")


def compute_mount_offset(parent: Link, child: Link) -> tuple[float, float, float]:
    """Offset stacking *child* on top of *parent* with a small gap."""
    parent_height = get_geometry_bounds(parent.geometry).height
    child_height = get_geometry_bounds(child.geometry).height
    return (0.0, 0.0, parent_height / 2 + child_height / 2 + MOUNT_GAP)


def _vector(raw: Any) -> tuple[float, float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) < 3:
        return (0.0, 0.0, 0.0)
    return (coerce_number(raw[0], 0.0), coerce_number(raw[1], 0.0), coerce_number(raw[2], 0.0))


def _parse_link(key: str, raw: Any) -> Link:
    raw = raw if isinstance(raw, dict) else {}
    link_id = raw.get("id") if isinstance(raw.get("id"), str) and raw["id"].strip() else key

    raw_joints = raw.get("joints")
    if not isinstance(raw_joints, list):
        # single-joint scene files
        raw_joints = [raw["joint"]] if isinstance(raw.get("joint"), dict) else []

    children = raw.get("children")
    return Link(
        id=link_id,
        name=raw["name"] if isinstance(raw.get("name"), str) else "Link",
        geometry=parse_geometry(raw.get("geometry")),
        base_offset=_vector(raw.get("baseOffset")),
        static_rotation=_vector(raw.get("staticRotation")),
        joints=[parse_joint(j, f"{link_id}-joint-{i}") for i, j in enumerate(raw_joints, start=1)],
        parent_id=raw["parentId"] if isinstance(raw.get("parentId"), str) else None,
        children=[c for c in children if isinstance(c, str)] if isinstance(children, list) else [],
        color=raw["color"] if isinstance(raw.get("color"), str) else "#94a3b8",
        notes=raw["notes"] if isinstance(raw.get("notes"), str) else None,
    )


class KinematicTree:
    """
    A tree of links connected through their joints.

    Usage:
        tree = KinematicTree()                       # a single base link
        arm = tree.add_link("cylinder")              # child of the root
        tree.add_joint(arm.id, motion="linear")      # second joint on the arm
        tree.set_joint_value(arm.joints[0].name, 45.0)

    Structural edits raise ``KeyError`` for unknown ids and ``ValueError``
    when they would break the tree.  Joint writes never fail: values are
    clamped and duplicate names are replaced by generated ones.
    """

    def __init__(self, root: Optional[Link] = None) -> None:
        self._links: dict[str, Link] = {}
        self._counter = 0
        if root is None:
            root = Link(
                id=self._create_id("link"),
                name="Base",
                geometry=BoxGeometry(width=0.5, depth=0.5, height=0.2),
                color="#64748b",
            )
        root.parent_id = None
        self._links[root.id] = root
        self._root_id = root.id
        self._sync_counter()

    @classmethod
    def _from_links(cls, links: dict[str, Link], root_id: str, counter: int = 0) -> KinematicTree:
        tree = cls.__new__(cls)
        tree._links = links
        tree._root_id = root_id
        tree._counter = counter
        return tree

    # ── Lookup ────────────────────────────────────────────────────────────────

    @property
    def root_id(self) -> str:
        return self._root_id

    @property
    def root(self) -> Link:
        return self._links[self._root_id]

    def find_link(self, link_id: str) -> Optional[Link]:
        """Return the link with *link_id*, or ``None``."""
        return self._links.get(link_id)

    def get_link(self, link_id: str) -> Link:
        """Return the link with *link_id*."""
        link = self._links.get(link_id)
        if link is None:
            raise KeyError(f"Link '{link_id}' not found in tree")
        return link

    def links(self) -> list[Link]:
        """All links, parents before children."""
        ordered: list[Link] = []

        def visit(link_id: str) -> None:
            link = self._links.get(link_id)
            if link is None:
                return
            ordered.append(link)
            for child_id in link.children:
                visit(child_id)

        visit(self._root_id)
        return ordered

    def __contains__(self, link_id: object) -> bool:
        return link_id in self._links

    def __len__(self) -> int:
        return len(self._links)

    def iter_joints(self) -> Iterator[tuple[Link, int, Joint]]:
        for link in self._links.values():
            for index, joint in enumerate(link.joints):
                yield link, index, joint

    def find_joint(self, name: str) -> Optional[Joint]:
        for _, _, joint in self.iter_joints():
            if joint.name == name:
                return joint
        return None

    def get_joint(self, name: str) -> Joint:
        joint = self.find_joint(name)
        if joint is None:
            raise KeyError(f"Joint '{name}' not found in tree")
        return joint

    def path_to(self, link_id: str) -> list[str]:
        """Link ids from the root down to *link_id* (empty if unknown)."""
        path: list[str] = []
        current: Optional[str] = link_id
        while current is not None and current in self._links and current not in path:
            path.append(current)
            current = self._links[current].parent_id
        path.reverse()
        return path

    def joint_chain(self, link_id: str) -> list[tuple[str, int, Joint]]:
        """``(link_id, index, joint)`` for every joint on the root→link path."""
        return [
            (node_id, index, joint)
            for node_id in self.path_to(link_id)
            for index, joint in enumerate(self._links[node_id].joints)
        ]

    def collect_joint_values(self) -> dict[str, float]:
        """Current value of every named joint, keyed by joint name."""
        return {joint.name: joint.value for _, _, joint in self.iter_joints() if joint.name}

    def is_ancestor(self, ancestor_id: str, link_id: str) -> bool:
        return ancestor_id in self.path_to(link_id)[:-1]

    # ── Identifiers ───────────────────────────────────────────────────────────

    def _create_id(self, prefix: str) -> str:
        while True:
            self._counter += 1
            candidate = f"{prefix}-{self._counter}"
            if candidate not in self._links and self.find_joint(candidate) is None:
                return candidate

    def _sync_counter(self) -> None:
        for link in self._links.values():
            keys = [link.id] + [joint.name for joint in link.joints]
            for key in keys:
                match = _NUMERIC_SUFFIX.search(key)
                if match:
                    self._counter = max(self._counter, int(match.group(1)))

    def _unique_joint_name(self, name: Optional[str], owner: Optional[Joint] = None) -> str:
        """Return *name* if no other joint uses it, else a fresh generated name."""
        if name:
            taken = any(
                joint.name == name and joint is not owner
                for _, _, joint in self.iter_joints()
            )
            if not taken:
                return name
        return self._create_id("joint")

    def _repair_joint_names(self) -> None:
        seen: set[str] = set()
        for link in self.links():
            for joint in link.joints:
                if not joint.name or joint.name in seen:
                    joint.name = self._create_id("joint")
                seen.add(joint.name)

    # ── Structure ─────────────────────────────────────────────────────────────

    def add_link(self, geometry: Union[str, Geometry] = "box", parent_id: Optional[str] = None,
                 name: Optional[str] = None, with_joint: bool = True) -> Link:
        """
        Add a new link under *parent_id* (the root by default).

        The link is stacked on its parent and, unless *with_joint* is False,
        receives a default rotational joint about z.
        """
        parent = self.get_link(parent_id or self._root_id)
        if isinstance(geometry, str):
            kind = geometry
            geometry = create_default_geometry(kind)
        else:
            kind = geometry.kind

        link = Link(
            id=self._create_id("link"),
            name=name or f"Link {kind.capitalize()}",
            geometry=geometry,
            parent_id=parent.id,
        )
        link.base_offset = compute_mount_offset(parent, link)
        if with_joint:
            link.joints.append(Joint(name=self._create_id("joint")))
        self._links[link.id] = link
        parent.children.append(link.id)
        return link

    def remove_link(self, link_id: str) -> list[str]:
        """Remove *link_id* and its whole subtree; return the removed ids."""
        link = self.get_link(link_id)
        if link_id == self._root_id:
            raise ValueError("The root link cannot be removed")

        removed: list[str] = []
        pending = [link_id]
        while pending:
            current = self._links.pop(pending.pop(), None)
            if current is None:
                continue
            removed.append(current.id)
            pending.extend(current.children)

        parent = self._links.get(link.parent_id) if link.parent_id else None
        if parent is not None:
            parent.children = [c for c in parent.children if c != link_id]
        return removed

    def reparent(self, link_id: str, parent_id: str) -> Link:
        """Move *link_id* (with its subtree) under *parent_id*."""
        link = self.get_link(link_id)
        parent = self.get_link(parent_id)
        if link_id == self._root_id:
            raise ValueError("The root link cannot be reparented")
        if link_id == parent_id or self.is_ancestor(link_id, parent_id):
            raise ValueError(f"Moving '{link_id}' under '{parent_id}' would create a cycle")
        if link.parent_id == parent_id:
            return link

        previous = self._links.get(link.parent_id) if link.parent_id else None
        if previous is not None:
            previous.children = [c for c in previous.children if c != link_id]
        link.parent_id = parent_id
        link.base_offset = compute_mount_offset(parent, link)
        parent.children.append(link_id)
        return link

    def update_link(self, link_id: str, **patch: Any) -> Link:
        """
        Update link fields: ``name``, ``geometry``, ``base_offset``,
        ``static_rotation``, ``color``, ``notes``.

        A geometry change re-stacks the direct children on the new height.
        """
        link = self.get_link(link_id)
        unknown = set(patch) - {"name", "geometry", "base_offset", "static_rotation", "color", "notes"}
        if unknown:
            raise ValueError(f"Unknown link fields: {', '.join(sorted(unknown))}")

        for key in ("base_offset", "static_rotation"):
            if key in patch:
                patch[key] = tuple(float(v) for v in patch[key])
        for key, value in patch.items():
            setattr(link, key, value)

        if "geometry" in patch:
            for child_id in link.children:
                child = self._links.get(child_id)
                if child is None:
                    continue
                x, y, _ = child.base_offset
                child.base_offset = (x, y, compute_mount_offset(link, child)[2])
        return link

    # ── Joints ────────────────────────────────────────────────────────────────

    def add_joint(self, link_id: str, motion: str = 'rotational', axis: str = 'z',
                  name: Optional[str] = None) -> Joint:
        """Append a joint with default limits to *link_id*."""
        link = self.get_link(link_id)
        joint = Joint(name=self._unique_joint_name(name), motion=motion, axis=axis)
        link.joints.append(joint)
        return joint

    def remove_joint(self, link_id: str, index: int) -> Joint:
        """Remove and return joint *index* of *link_id*."""
        link = self.get_link(link_id)
        if not 0 <= index < len(link.joints):
            raise IndexError(f"Link '{link_id}' has no joint {index}")
        return link.joints.pop(index)

    def update_joint(self, link_id: str, index: int, **patch: Any) -> Joint:
        """
        Update joint *index* of *link_id*.

        Accepted fields: ``name``, ``motion``, ``axis``, ``limits``,
        ``value``, ``pivot``, ``external_control``.  Limits are applied
        before the value so the value is clamped to the new range.  A
        duplicate name is replaced by a generated one.
        """
        link = self.get_link(link_id)
        if not 0 <= index < len(link.joints):
            raise IndexError(f"Link '{link_id}' has no joint {index}")
        joint = link.joints[index]

        unknown = set(patch) - {"name", "motion", "axis", "limits", "value", "pivot", "external_control"}
        if unknown:
            raise ValueError(f"Unknown joint fields: {', '.join(sorted(unknown))}")
        if patch.get("motion", joint.motion) not in ("rotational", "linear"):
            raise ValueError(f"Invalid motion '{patch['motion']}'")
        if patch.get("axis", joint.axis) not in ("x", "y", "z"):
            raise ValueError(f"Invalid axis '{patch['axis']}'")

        if "name" in patch:
            joint.name = self._unique_joint_name(patch["name"], owner=joint)
        if "motion" in patch:
            joint.motion = patch["motion"]
        if "axis" in patch:
            joint.axis = patch["axis"]
        if "pivot" in patch:
            joint.pivot = tuple(float(v) for v in patch["pivot"])
        if "external_control" in patch:
            joint.external_control = bool(patch["external_control"])
        if "limits" in patch:
            joint.limits = patch["limits"]
        if "value" in patch:
            joint.value = patch["value"]
        return joint

    def set_joint_value(self, name: str, value: float) -> Optional[float]:
        """Write *value* to the joint called *name*; return the clamped value."""
        joint = self.find_joint(name)
        if joint is None:
            return None
        joint.value = value
        return joint.value

    def apply_joint_values(self, values: dict[str, float], external: bool = False) -> dict[str, float]:
        """
        Write several joint values by name.

        With *external* set, joints whose ``external_control`` flag is off
        are left alone.  Returns the clamped values of the joints that
        actually changed.
        """
        changed: dict[str, float] = {}
        for _, _, joint in self.iter_joints():
            if joint.name not in values:
                continue
            if external and not joint.external_control:
                continue
            previous = joint.value
            joint.value = values[joint.name]
            if joint.value != previous:
                changed[joint.name] = joint.value
        return changed

    # ── Copies ────────────────────────────────────────────────────────────────

    def copy_along_path(self, path: list[str]) -> KinematicTree:
        """
        Return a tree sharing every link with this one except those on
        *path*, which are cloned together with their joints.
        """
        links = dict(self._links)
        for link_id in path:
            link = self._links.get(link_id)
            if link is not None:
                links[link_id] = link.clone()
        return KinematicTree._from_links(links, self._root_id, self._counter)

    def copy(self) -> KinematicTree:
        return self.copy_along_path(list(self._links))

    # ── Invariants ────────────────────────────────────────────────────────────

    def validate(self) -> None:
        """Raise ``ValueError`` unless the links form a single rooted tree."""
        root = self._links.get(self._root_id)
        if root is None:
            raise ValueError(f"Root link '{self._root_id}' not found")
        if root.parent_id is not None:
            raise ValueError(f"Root link '{self._root_id}' has a parent")

        for link in self._links.values():
            for child_id in link.children:
                child = self._links.get(child_id)
                if child is None:
                    raise ValueError(f"Link '{link.id}' lists missing child '{child_id}'")
                if child.parent_id != link.id:
                    raise ValueError(f"Link '{child_id}' is listed by '{link.id}' but has parent '{child.parent_id}'")
            if link.id != self._root_id:
                parent = self._links.get(link.parent_id) if link.parent_id else None
                if parent is None:
                    raise ValueError(f"Link '{link.id}' has no valid parent")
                if link.id not in parent.children:
                    raise ValueError(f"Link '{link.id}' is missing from the children of '{parent.id}'")

        seen: set[str] = set()
        pending = [self._root_id]
        while pending:
            link_id = pending.pop()
            if link_id in seen:
                raise ValueError(f"Link '{link_id}' is reachable twice")
            seen.add(link_id)
            pending.extend(self._links[link_id].children)
        if len(seen) != len(self._links):
            raise ValueError("Tree contains links unreachable from the root")

    # ── Serialisation ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Return the tree in the scene-file format."""
        return {
            "rootId": self._root_id,
            "nodes": {link.id: link.to_dict() for link in self._links.values()},
        }

    @classmethod
    def from_dict(cls, raw: Any) -> KinematicTree:
        """
        Build a tree from a scene-file mapping.

        Bad field values are normalised; missing child ids are dropped and
        parent ids are taken from the child lists.  Raises ``ValueError``
        when the payload has no nodes or does not form a tree.
        """
        if not isinstance(raw, dict):
            raise ValueError("Scene payload must be an object")
        nodes = raw.get("nodes")
        if not isinstance(nodes, dict):
            raise ValueError("Scene payload is missing nodes")

        links: dict[str, Link] = {}
        for key, raw_node in nodes.items():
            link = _parse_link(str(key), raw_node)
            links[link.id] = link
        if not links:
            raise ValueError("Scene payload does not contain any nodes")

        root_id = raw.get("rootId")
        if not isinstance(root_id, str) or root_id not in links:
            root_id = next(iter(links))

        for link in links.values():
            link.children = [c for c in dict.fromkeys(link.children) if c in links and c != root_id]
            for child_id in link.children:
                links[child_id].parent_id = link.id
        for link in links.values():
            parent = links.get(link.parent_id) if link.parent_id else None
            if parent is not None and link.id not in parent.children and link.id != root_id:
                parent.children.append(link.id)
        links[root_id].parent_id = None

        tree = cls._from_links(links, root_id)
        tree.validate()
        tree._sync_counter()
        tree._repair_joint_names()
        return tree

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> KinematicTree:
        """Load a tree from a JSON scene file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Union[str, Path]) -> None:
        """Write the tree to a JSON scene file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
