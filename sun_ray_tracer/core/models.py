"""Data models for the sun ray path simulation.

Scene graph types (surface elements and groups), the per-request read-only
scene snapshot, and the JSON configuration describing a room.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np

from .geometry import identity_matrix, transform_point


class SurfaceTag(Enum):
    """How a surface interacts with a traced ray."""

    GLAZING = "GLAZING"
    FRAME = "FRAME"
    OPAQUE = "OPAQUE"

    @classmethod
    def parse(cls, value: Optional[Union[str, SurfaceTag]]) -> SurfaceTag:
        """Parse a tag name, defaulting untagged surfaces to OPAQUE.

        Room-part names (walls, floor, ceiling, shading devices) are opaque.
        """
        if value is None:
            return cls.OPAQUE
        if isinstance(value, cls):
            return value
        name = str(value).strip().upper()
        if name in cls.__members__:
            return cls[name]
        if name in _OPAQUE_ALIASES:
            return cls.OPAQUE
        raise ValueError(f"Unknown surface tag: {value!r}")


_OPAQUE_ALIASES = {
    "INTERIOR_WALL",
    "INTERIOR_FLOOR",
    "INTERIOR_CEILING",
    "SHADING_DEVICE",
    "WALL",
    "FLOOR",
    "CEILING",
    "SHADING",
    "CONTEXT",
}


class SurfaceShape(Enum):
    """Local geometry of a surface element."""

    PANEL = "panel"  # width x height rectangle in local XY, normal +Z
    BOX = "box"  # width x height x depth, centered on the local origin


@dataclass
class SurfaceElement:
    """A piece of scene geometry that rays can hit.

    Attributes:
        id: Identifier, unique within a scene.
        shape: PANEL or BOX.
        width: Extent along local X.
        height: Extent along local Y.
        depth: Extent along local Z (BOX only).
        tag: Ray interaction tag.
        transform: Local 4x4 transform relative to the parent group.
    """

    id: str
    shape: SurfaceShape
    width: float
    height: float
    depth: float = 0.0
    tag: SurfaceTag = SurfaceTag.OPAQUE
    transform: np.ndarray = field(default_factory=identity_matrix)

    @classmethod
    def panel(
        cls,
        id: str,
        width: float,
        height: float,
        tag: SurfaceTag = SurfaceTag.OPAQUE,
        transform: Optional[np.ndarray] = None,
    ) -> SurfaceElement:
        """Create a rectangular panel."""
        return cls(
            id=id,
            shape=SurfaceShape.PANEL,
            width=float(width),
            height=float(height),
            tag=tag,
            transform=identity_matrix() if transform is None else transform,
        )

    @classmethod
    def box(
        cls,
        id: str,
        width: float,
        height: float,
        depth: float,
        tag: SurfaceTag = SurfaceTag.OPAQUE,
        transform: Optional[np.ndarray] = None,
    ) -> SurfaceElement:
        """Create a box centered on its local origin."""
        return cls(
            id=id,
            shape=SurfaceShape.BOX,
            width=float(width),
            height=float(height),
            depth=float(depth),
            tag=tag,
            transform=identity_matrix() if transform is None else transform,
        )


@dataclass
class SceneGroup:
    """A node of the scene graph holding surfaces and nested groups."""

    name: str
    children: list = field(default_factory=list)
    transform: np.ndarray = field(default_factory=identity_matrix)

    def add(self, *nodes: Union[SceneGroup, SurfaceElement]) -> SceneGroup:
        """Append child nodes and return self for chaining."""
        self.children.extend(nodes)
        return self

    def iter_surfaces(
        self, parent_matrix: Optional[np.ndarray] = None
    ) -> Iterator[tuple[SurfaceElement, np.ndarray]]:
        """Yield every reachable surface with its world matrix, depth first."""
        world = self.transform if parent_matrix is None else parent_matrix @ self.transform
        for child in self.children:
            if isinstance(child, SceneGroup):
                yield from child.iter_surfaces(world)
            else:
                yield child, world @ child.transform


class PlacedSurface:
    """A surface element frozen at its world placement for one trace request."""

    def __init__(self, element: SurfaceElement, matrix: np.ndarray):
        # Copy the element so later edits to the scene graph do not leak in.
        self.element = replace(element, transform=np.array(element.transform, dtype=float))
        self.matrix = np.array(matrix, dtype=float)
        self.inverse = np.linalg.inv(self.matrix)

    @property
    def id(self) -> str:
        return self.element.id

    @property
    def tag(self) -> SurfaceTag:
        return self.element.tag

    @property
    def shape(self) -> SurfaceShape:
        return self.element.shape

    def to_world(self, local_point) -> np.ndarray:
        """Map a point from the surface's local space to world space."""
        return transform_point(self.matrix, local_point)

    def __repr__(self) -> str:
        return f"PlacedSurface({self.element.id!r}, {self.element.tag.name})"


class SceneSnapshot:
    """Read-only list of placed surfaces taken at the start of a trace.

    Edits made to the scene graph after the snapshot is taken do not affect
    it. Discard the snapshot when the request completes.
    """

    def __init__(self, surfaces: list[PlacedSurface]):
        self._surfaces = tuple(surfaces)

    @classmethod
    def from_root(cls, root: SceneGroup) -> SceneSnapshot:
        return cls([PlacedSurface(element, matrix) for element, matrix in root.iter_surfaces()])

    @property
    def surfaces(self) -> tuple[PlacedSurface, ...]:
        return self._surfaces

    def __iter__(self) -> Iterator[PlacedSurface]:
        return iter(self._surfaces)

    def __len__(self) -> int:
        return len(self._surfaces)


def ensure_snapshot(scene: Union[SceneGroup, SceneSnapshot]) -> SceneSnapshot:
    """Return ``scene`` if it is already a snapshot, else snapshot it."""
    if isinstance(scene, SceneSnapshot):
        return scene
    return SceneSnapshot.from_root(scene)


# --- Configuration ---------------------------------------------------------

WALL_KEYS = ("n", "s", "e", "w")


def _parse_wall_key(value: str, owner: str) -> str:
    key = str(value).strip().lower()[:1]
    if key not in WALL_KEYS:
        raise ValueError(f"{owner} has unknown wall {value!r}; use one of n, s, e, w")
    return key


@dataclass
class Location:
    """Geographic location for sun position calculations.

    Attributes:
        latitude: Latitude in degrees (positive = North).
        longitude: Longitude in degrees (positive = East).
    """

    latitude: float
    longitude: float


@dataclass
class RoomSpec:
    """Box-shaped room: x spans the width (East), y the length (North).

    Attributes:
        width: Interior extent along x in meters.
        length: Interior extent along y in meters.
        height: Interior floor-to-ceiling height in meters.
        wall_thickness: Wall thickness, built outward from the interior face.
        slab_thickness: Floor and ceiling slab thickness.
    """

    width: float = 6.0
    length: float = 8.0
    height: float = 3.0
    wall_thickness: float = 0.2
    slab_thickness: float = 0.2

    def wall_length(self, wall: str) -> float:
        """Interior length of a wall."""
        return self.width if wall in ("n", "s") else self.length


@dataclass
class WindowSpec:
    """A row of identical windows on one wall.

    Attributes:
        wall: Wall key (n, s, e, w).
        width: Opening width in meters.
        height: Opening height in meters.
        sill_height: Height of the opening's bottom edge above the floor.
        count: Number of windows in the row, centered on the wall.
        spacing: Gap between neighbouring openings (default: half the width).
        frame_thickness: Frame bar thickness; the glazing is inset by it.
        frame_depth: Frame bar depth through the wall.
        depth_position: Glazing distance from the interior wall face
            (default: middle of the wall).
        id: Prefix for generated surface ids.
    """

    wall: str
    width: float
    height: float
    sill_height: float = 0.9
    count: int = 1
    spacing: Optional[float] = None
    frame_thickness: float = 0.05
    frame_depth: float = 0.1
    depth_position: Optional[float] = None
    id: Optional[str] = None

    @property
    def gap(self) -> float:
        return self.width / 2 if self.spacing is None else self.spacing

    @property
    def head_height(self) -> float:
        return self.sill_height + self.height


@dataclass
class OverhangSpec:
    """Horizontal shading device projecting outward above a wall's windows.

    Attributes:
        wall: Wall key (n, s, e, w).
        depth: Projection from the exterior wall face.
        gap: Clearance between the window head and the overhang underside.
        thickness: Slab thickness.
        extension: Extra length past the outermost windows on each side.
    """

    wall: str
    depth: float = 0.6
    gap: float = 0.1
    thickness: float = 0.05
    extension: float = 0.2


@dataclass
class ContextSurfaceSpec:
    """Free-standing geometry around the room, e.g. a neighbouring facade.

    Attributes:
        id: Surface id.
        shape: "panel" or "box".
        width, height, depth: Local extents.
        center: World position of the local origin.
        rotation_deg: Rotation about the Up axis (counter-clockwise from East).
        tag: Surface tag name (default OPAQUE).
    """

    id: str
    shape: str
    width: float
    height: float
    depth: float = 0.0
    center: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation_deg: float = 0.0
    tag: SurfaceTag = SurfaceTag.OPAQUE


@dataclass
class TraceSettings:
    """Default trace request parameters.

    Attributes:
        date: "YYYY-MM-DD".
        time: "HH:MM" local civil time.
        ray_count: Total rays distributed across all glazing.
        max_bounces: Cap on interior reflections per ray.
    """

    date: str = "2024-06-21"
    time: str = "12:00"
    ray_count: int = 200
    max_bounces: int = 3


@dataclass
class Config:
    """Complete configuration for a trace session.

    Attributes:
        room: Room dimensions.
        windows: Window rows.
        shading: Overhangs.
        context: Extra surfaces outside the room.
        location: Geographic location.
        trace: Default trace parameters.
        units: Units for measurements (default "meters").
    """

    room: RoomSpec = field(default_factory=RoomSpec)
    windows: list[WindowSpec] = field(default_factory=list)
    shading: list[OverhangSpec] = field(default_factory=list)
    context: list[ContextSurfaceSpec] = field(default_factory=list)
    location: Location = field(default_factory=lambda: Location(0.0, 0.0))
    trace: TraceSettings = field(default_factory=TraceSettings)
    units: str = "meters"

    @classmethod
    def from_json_file(cls, path: str | Path) -> Config:
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create configuration from a dictionary."""
        room_data = data.get("room", {})
        room = RoomSpec(
            width=float(room_data.get("width", 6.0)),
            length=float(room_data.get("length", 8.0)),
            height=float(room_data.get("height", 3.0)),
            wall_thickness=float(room_data.get("wall_thickness", 0.2)),
            slab_thickness=float(room_data.get("slab_thickness", 0.2)),
        )
        if room.width <= 0 or room.length <= 0 or room.height <= 0:
            raise ValueError("Room width, length and height must be positive")
        if room.wall_thickness <= 0 or room.slab_thickness <= 0:
            raise ValueError("Room wall and slab thickness must be positive")

        windows = []
        for index, w in enumerate(data.get("windows", [])):
            window_id = w.get("id") or f"window_{index + 1}"
            if "width" not in w or "height" not in w:
                raise ValueError(f"Window {window_id} missing width/height")
            if "wall" not in w:
                raise ValueError(f"Window {window_id} missing wall")

            window = WindowSpec(
                wall=_parse_wall_key(w["wall"], f"Window {window_id}"),
                width=float(w["width"]),
                height=float(w["height"]),
                sill_height=float(w.get("sill_height", 0.9)),
                count=int(w.get("count", 1)),
                spacing=None if w.get("spacing") is None else float(w["spacing"]),
                frame_thickness=float(w.get("frame_thickness", 0.05)),
                frame_depth=float(w.get("frame_depth", 0.1)),
                depth_position=None if w.get("depth_position") is None else float(w["depth_position"]),
                id=window_id,
            )
            if window.width <= 0 or window.height <= 0:
                raise ValueError(f"Window {window_id} must have positive width and height")
            if window.count < 1:
                raise ValueError(f"Window {window_id} count must be at least 1")
            if window.frame_thickness < 0 or window.frame_depth < 0:
                raise ValueError(f"Window {window_id} frame dimensions must not be negative")
            windows.append(window)

        shading = []
        for s in data.get("shading", []):
            kind = s.get("type", "overhang")
            if kind != "overhang":
                raise ValueError(f"Unsupported shading type: {kind!r}")
            shading.append(
                OverhangSpec(
                    wall=_parse_wall_key(s.get("wall", ""), "Overhang"),
                    depth=float(s.get("depth", 0.6)),
                    gap=float(s.get("gap", 0.1)),
                    thickness=float(s.get("thickness", 0.05)),
                    extension=float(s.get("extension", 0.2)),
                )
            )

        context = []
        for index, c in enumerate(data.get("context", [])):
            surface_id = c.get("id") or f"context_{index + 1}"
            shape = str(c.get("shape", "box")).lower()
            if shape not in ("panel", "box"):
                raise ValueError(f"Context surface {surface_id} has unknown shape {shape!r}")
            center = c.get("center", [0.0, 0.0, 0.0])
            if len(center) != 3:
                raise ValueError(f"Context surface {surface_id} center must have 3 coordinates")
            context.append(
                ContextSurfaceSpec(
                    id=surface_id,
                    shape=shape,
                    width=float(c["width"]),
                    height=float(c["height"]),
                    depth=float(c.get("depth", 0.0)),
                    center=tuple(float(v) for v in center),
                    rotation_deg=float(c.get("rotation_deg", 0.0)),
                    tag=SurfaceTag.parse(c.get("tag")),
                )
            )

        location_data = data.get("location", {})
        location = Location(
            latitude=float(location_data.get("latitude", 0.0)),
            longitude=float(location_data.get("longitude", 0.0)),
        )

        trace_data = data.get("trace", {})
        trace = TraceSettings(
            date=str(trace_data.get("date", "2024-06-21")),
            time=str(trace_data.get("time", "12:00")),
            ray_count=int(trace_data.get("ray_count", 200)),
            max_bounces=int(trace_data.get("max_bounces", 3)),
        )

        return cls(
            room=room,
            windows=windows,
            shading=shading,
            context=context,
            location=location,
            trace=trace,
            units=data.get("units", "meters"),
        )

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return {
            "units": self.units,
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
            },
            "room": {
                "width": self.room.width,
                "length": self.room.length,
                "height": self.room.height,
                "wall_thickness": self.room.wall_thickness,
                "slab_thickness": self.room.slab_thickness,
            },
            "windows": [self._window_to_dict(w) for w in self.windows],
            "shading": [
                {
                    "type": "overhang",
                    "wall": s.wall,
                    "depth": s.depth,
                    "gap": s.gap,
                    "thickness": s.thickness,
                    "extension": s.extension,
                }
                for s in self.shading
            ],
            "context": [
                {
                    "id": c.id,
                    "shape": c.shape,
                    "width": c.width,
                    "height": c.height,
                    "depth": c.depth,
                    "center": list(c.center),
                    "rotation_deg": c.rotation_deg,
                    "tag": c.tag.value,
                }
                for c in self.context
            ],
            "trace": {
                "date": self.trace.date,
                "time": self.trace.time,
                "ray_count": self.trace.ray_count,
                "max_bounces": self.trace.max_bounces,
            },
        }

    @staticmethod
    def _window_to_dict(window: WindowSpec) -> dict:
        data = {
            "id": window.id,
            "wall": window.wall,
            "width": window.width,
            "height": window.height,
            "sill_height": window.sill_height,
            "count": window.count,
            "frame_thickness": window.frame_thickness,
            "frame_depth": window.frame_depth,
        }
        if window.spacing is not None:
            data["spacing"] = window.spacing
        if window.depth_position is not None:
            data["depth_position"] = window.depth_position
        return data
