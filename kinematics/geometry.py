"""
geometry.py
-----------
Primitive link shapes and their axis-aligned bounding envelopes.

The bounds are used to lift the root link onto the ground plane, to stack
newly added links on their parent, and by renderers to size limit
indicators.  Shape parsing is forgiving: anything unrecognised becomes a
small box so a scene always loads.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

MIN_DIMENSION = 1e-3


@dataclass(frozen=True)
class GeometryBounds:
    """Bounding envelope of a shape in its local frame (metres)."""
    width: float
    depth: float
    height: float
    radial: float

    def to_dict(self) -> dict[str, float]:
        return {
            "width": self.width,
            "depth": self.depth,
            "height": self.height,
            "radial": self.radial,
        }


FALLBACK_BOUNDS = GeometryBounds(width=0.3, depth=0.3, height=0.3, radial=0.15)


@dataclass
class BoxGeometry:
    kind: ClassVar[str] = "box"
    width: float = 0.3
    depth: float = 0.3
    height: float = 0.4

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "width": self.width, "depth": self.depth, "height": self.height}


@dataclass
class CylinderGeometry:
    kind: ClassVar[str] = "cylinder"
    radius: float = 0.15
    height: float = 0.4

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "radius": self.radius, "height": self.height}


@dataclass
class SphereGeometry:
    kind: ClassVar[str] = "sphere"
    radius: float = 0.18

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "radius": self.radius}


@dataclass
class ConeGeometry:
    kind: ClassVar[str] = "cone"
    radius: float = 0.16
    height: float = 0.38

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "radius": self.radius, "height": self.height}


@dataclass
class CapsuleGeometry:
    kind: ClassVar[str] = "capsule"
    radius: float = 0.12
    length: float = 0.28

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "radius": self.radius, "length": self.length}


@dataclass
class CustomGeometry:
    """
    An imported mesh.

    Attributes
    ----------
    source_name   : str             Original file name of the mesh.
    data          : str             Encoded mesh payload (opaque to kinematics).
    scale         : float           Uniform scale applied to the mesh.
    unit_scale    : float           Conversion from file units to metres.
    bounds        : GeometryBounds  Unscaled bounds measured at import time.
    origin_offset : tuple           Mesh-local origin offset.
    """
    kind: ClassVar[str] = "custom"
    source_name: str = "Custom Mesh"
    data: str = ""
    scale: float = 1.0
    unit_scale: float = 1.0
    bounds: GeometryBounds = FALLBACK_BOUNDS
    origin_offset: tuple[float, float, float] = field(default=(0.0, 0.0, 0.0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "sourceName": self.source_name,
            "data": self.data,
            "scale": self.scale,
            "unitScale": self.unit_scale,
            "bounds": self.bounds.to_dict(),
            "originOffset": list(self.origin_offset),
        }


Geometry = Union[
    BoxGeometry,
    CylinderGeometry,
    SphereGeometry,
    ConeGeometry,
    CapsuleGeometry,
    CustomGeometry,
]

_DEFAULTS: dict[str, type] = {
    "box": BoxGeometry,
    "cylinder": CylinderGeometry,
    "sphere": SphereGeometry,
    "cone": ConeGeometry,
    "capsule": CapsuleGeometry,
}


def get_geometry_bounds(geometry: Geometry | None) -> GeometryBounds:
    """Return the bounding envelope of *geometry*.

    Unknown or missing shapes fall back to a 0.3 m box.
    """
    if isinstance(geometry, BoxGeometry):
        return GeometryBounds(
            width=geometry.width,
            depth=geometry.depth,
            height=geometry.height,
            radial=max(geometry.width, geometry.depth) / 2,
        )
    if isinstance(geometry, (CylinderGeometry, ConeGeometry)):
        return GeometryBounds(
            width=geometry.radius * 2,
            depth=geometry.radius * 2,
            height=geometry.height,
            radial=geometry.radius,
        )
    if isinstance(geometry, SphereGeometry):
        return GeometryBounds(
            width=geometry.radius * 2,
            depth=geometry.radius * 2,
            height=geometry.radius * 2,
            radial=geometry.radius,
        )
    if isinstance(geometry, CapsuleGeometry):
        return GeometryBounds(
            width=geometry.radius * 2,
            depth=geometry.radius * 2,
            height=geometry.length + geometry.radius * 2,
            radial=geometry.radius,
        )
    if isinstance(geometry, CustomGeometry):
        scale = geometry.scale if math.isfinite(geometry.scale) else 1.0
        b = geometry.bounds
        return GeometryBounds(
            width=b.width * scale,
            depth=b.depth * scale,
            height=b.height * scale,
            radial=b.radial * scale,
        )
    return FALLBACK_BOUNDS


def create_default_geometry(kind: str) -> Geometry:
    """Return a new primitive of *kind* with the authoring defaults."""
    try:
        return _DEFAULTS[kind]()
    except KeyError:
        raise ValueError(f"Unknown geometry kind '{kind}'") from None


# ── Parsing ──────────────────────────────────────────────────────────────────

def coerce_number(value: Any, fallback: float) -> float:
    """Return *value* as a finite float, or *fallback*."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return fallback
    return result if math.isfinite(result) else fallback


def _dimension(raw: dict, key: str, fallback: float) -> float:
    return max(coerce_number(raw.get(key), fallback), MIN_DIMENSION)


def _parse_bounds(raw: Any) -> GeometryBounds:
    raw = raw if isinstance(raw, dict) else {}
    return GeometryBounds(
        width=_dimension(raw, "width", FALLBACK_BOUNDS.width),
        depth=_dimension(raw, "depth", FALLBACK_BOUNDS.depth),
        height=_dimension(raw, "height", FALLBACK_BOUNDS.height),
        radial=_dimension(raw, "radial", FALLBACK_BOUNDS.radial),
    )


def parse_geometry(raw: Any) -> Geometry:
    """Coerce a JSON mapping into a geometry variant.

    Non-numeric dimensions fall back to per-kind defaults, every dimension
    is floored at 1 mm, and unknown kinds become a 0.3 m box.
    """
    if not isinstance(raw, dict):
        return BoxGeometry(width=0.3, depth=0.3, height=0.3)

    kind = raw.get("kind")
    if kind == "box":
        return BoxGeometry(
            width=_dimension(raw, "width", 0.3),
            depth=_dimension(raw, "depth", 0.3),
            height=_dimension(raw, "height", 0.3),
        )
    if kind == "cylinder":
        return CylinderGeometry(
            radius=_dimension(raw, "radius", 0.18),
            height=_dimension(raw, "height", 0.5),
        )
    if kind == "sphere":
        return SphereGeometry(radius=_dimension(raw, "radius", 0.24))
    if kind == "cone":
        return ConeGeometry(
            radius=_dimension(raw, "radius", 0.16),
            height=_dimension(raw, "height", 0.38),
        )
    if kind == "capsule":
        return CapsuleGeometry(
            radius=_dimension(raw, "radius", 0.12),
            length=_dimension(raw, "length", 0.28),
        )
    if kind == "custom":
        origin = raw.get("originOffset")
        if not isinstance(origin, (list, tuple)) or len(origin) < 3:
            origin = (0.0, 0.0, 0.0)
        return CustomGeometry(
            source_name=raw["sourceName"] if isinstance(raw.get("sourceName"), str) else "Custom Mesh",
            data=raw["data"] if isinstance(raw.get("data"), str) else "",
            scale=_dimension(raw, "scale", 1.0),
            unit_scale=_dimension(raw, "unitScale", 1.0),
            bounds=_parse_bounds(raw.get("bounds")),
            origin_offset=(
                coerce_number(origin[0], 0.0),
                coerce_number(origin[1], 0.0),
                coerce_number(origin[2], 0.0),
            ),
        )
    return BoxGeometry(width=0.3, depth=0.3, height=0.3)
