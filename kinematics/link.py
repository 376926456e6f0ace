from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from axis_math import Transform
from kinematics.geometry import BoxGeometry, Geometry
from kinematics.joint import Joint


@dataclass
class Link:
    """
    A rigid body in a link tree.

    The link's frame is reached from its parent's final frame (or from the
    world origin, for the root) by ``base_offset`` followed by
    ``static_rotation``; its joints are then applied in order and the
    children hang off the last one.

    Attributes
    ----------
    id              : str        Unique identifier.
    name            : str        Display name.
    geometry        : Geometry   Shape used for bounds and rendering.
    base_offset     : tuple      Mount translation in the parent frame (metres).
    static_rotation : tuple      Fixed Euler XYZ orientation (degrees).
    joints          : list       Ordered joints, closest to the link frame first.
    parent_id       : str | None Parent link id, None for the root.
    children        : list[str]  Child link ids (display order only).
    """
    id: str
    name: str = "Link"
    geometry: Geometry = field(default_factory=BoxGeometry)
    base_offset: tuple[float, float, float] = (0.0, 0.0, 0.0)
    static_rotation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    joints: list[Joint] = field(default_factory=list)
    parent_id: Optional[str] = None
    children: list[str] = field(default_factory=list)
    color: str = "#94a3b8"
    notes: Optional[str] = None

    def mount_transform(self, lift: float = 0.0) -> Transform:
        """Fixed mount of this link relative to its parent, raised by *lift* along z."""
        x, y, z = self.base_offset
        return Transform(position=(x, y, z + lift), rotation=self.static_rotation)

    def clone(self) -> Link:
        """Copy of this link owning its own joints and child list."""
        return replace(
            self,
            joints=[joint.copy() for joint in self.joints],
            children=list(self.children),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the link in the scene-file format."""
        node: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "geometry": self.geometry.to_dict(),
            "color": self.color,
            "children": list(self.children),
            "baseOffset": list(self.base_offset),
            "staticRotation": list(self.static_rotation),
            "joints": [joint.to_dict() for joint in self.joints],
        }
        if self.parent_id is not None:
            node["parentId"] = self.parent_id
        if self.notes is not None:
            node["notes"] = self.notes
        return node
