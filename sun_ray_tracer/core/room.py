"""Build a tagged scene graph for a box-shaped room.

The room interior spans x in [0, width] (East), y in [0, length] (North) and
z in [0, height]. Each wall is a group whose local axes are
(along the wall, up, outward), with the interior face at local z = 0 and the
wall thickness built outward. Window openings are left as gaps between the
wall boxes; each opening holds a glazing panel and optional frame bars.
"""

import logging
from typing import Optional

import numpy as np

from .geometry import frame_matrix, rotation_z_matrix, translation_matrix
from .models import (
    Config,
    ContextSurfaceSpec,
    OverhangSpec,
    RoomSpec,
    SceneGroup,
    SurfaceElement,
    SurfaceTag,
    WindowSpec,
)

logger = logging.getLogger(__name__)

UP = (0.0, 0.0, 1.0)


def wall_frame(room: RoomSpec, wall: str) -> np.ndarray:
    """Transform from a wall's local (along, up, outward) axes to world space."""
    w, l = room.width, room.length
    frames = {
        "s": ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, -1.0, 0.0)),
        "e": ((w, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)),
        "n": ((w, l, 0.0), (-1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
        "w": ((0.0, l, 0.0), (0.0, -1.0, 0.0), (-1.0, 0.0, 0.0)),
    }
    origin, along, outward = frames[wall]
    return frame_matrix(origin, along, UP, outward)


def window_centers(room: RoomSpec, window: WindowSpec) -> list[float]:
    """Opening centers along the wall for a centered row of windows.

    Raises:
        ValueError: If the row does not fit on the wall.
    """
    wall_length = room.wall_length(window.wall)
    gap = window.gap
    if gap < 0:
        raise ValueError(f"Window {window.id} spacing must not be negative")

    group_width = window.count * window.width + (window.count - 1) * gap
    start = (wall_length - group_width) / 2
    if start < 0:
        raise ValueError(
            f"Window {window.id}: {window.count} x {window.width} m does not fit "
            f"on wall {window.wall} ({wall_length} m)"
        )
    if window.sill_height < 0 or window.head_height > room.height:
        raise ValueError(f"Window {window.id} does not fit between floor and ceiling")

    return [start + window.width / 2 + i * (window.width + gap) for i in range(window.count)]


def _box(id: str, s0: float, s1: float, z0: float, z1: float, n0: float, n1: float,
         tag: SurfaceTag = SurfaceTag.OPAQUE) -> SurfaceElement:
    center = ((s0 + s1) / 2, (z0 + z1) / 2, (n0 + n1) / 2)
    return SurfaceElement.box(id, s1 - s0, z1 - z0, n1 - n0, tag, translation_matrix(center))


def build_wall(room: RoomSpec, wall: str, window: Optional[WindowSpec] = None) -> SceneGroup:
    """Build one wall with its window openings, glazing and frames."""
    t = room.wall_thickness
    h = room.height
    group = SceneGroup(name=f"wall_{wall}", transform=wall_frame(room, wall))

    # Walls run past both corners so neighbouring walls close the box.
    s_start, s_end = -t, room.wall_length(wall) + t

    if window is None:
        group.add(_box(f"wall_{wall}", s_start, s_end, 0.0, h, 0.0, t))
        return group

    depth = t / 2 if window.depth_position is None else window.depth_position
    if not 0 <= depth <= t:
        raise ValueError(f"Window {window.id} depth_position must lie within the wall thickness")

    ww, wh = window.width, window.height
    sill, head = window.sill_height, window.head_height
    ft, fd = window.frame_thickness, window.frame_depth
    if ft > 0 and 2 * ft >= min(ww, wh):
        raise ValueError(f"Window {window.id} frame leaves no room for glazing")

    cursor = s_start
    for i, center in enumerate(window_centers(room, window)):
        left, right = center - ww / 2, center + ww / 2
        prefix = f"{window.id}_{i + 1}"

        if left > cursor:
            group.add(_box(f"wall_{wall}_pier_{i + 1}", cursor, left, 0.0, h, 0.0, t))
        if sill > 0:
            group.add(_box(f"wall_{wall}_sill_{i + 1}", left, right, 0.0, sill, 0.0, t))
        if head < h:
            group.add(_box(f"wall_{wall}_head_{i + 1}", left, right, head, h, 0.0, t))
        cursor = right

        group.add(
            SurfaceElement.panel(
                f"{prefix}_glazing",
                ww - 2 * ft,
                wh - 2 * ft,
                SurfaceTag.GLAZING,
                translation_matrix((center, sill + wh / 2, depth)),
            )
        )

        if ft > 0 and fd > 0:
            n0, n1 = depth - fd / 2, depth + fd / 2
            group.add(
                _box(f"{prefix}_frame_left", left, left + ft, sill, head, n0, n1, SurfaceTag.FRAME),
                _box(f"{prefix}_frame_right", right - ft, right, sill, head, n0, n1, SurfaceTag.FRAME),
                _box(f"{prefix}_frame_bottom", left + ft, right - ft, sill, sill + ft, n0, n1, SurfaceTag.FRAME),
                _box(f"{prefix}_frame_top", left + ft, right - ft, head - ft, head, n0, n1, SurfaceTag.FRAME),
            )

    if s_end > cursor:
        group.add(_box(f"wall_{wall}_pier_end", cursor, s_end, 0.0, h, 0.0, t))

    return group


def build_overhang(room: RoomSpec, overhang: OverhangSpec, window: Optional[WindowSpec]) -> SceneGroup:
    """Build a horizontal overhang above a wall's window row."""
    if window is None:
        raise ValueError(f"Overhang on wall {overhang.wall} has no windows to shade")
    if overhang.depth <= 0 or overhang.thickness <= 0:
        raise ValueError(f"Overhang on wall {overhang.wall} needs positive depth and thickness")

    centers = window_centers(room, window)
    s0 = centers[0] - window.width / 2 - overhang.extension
    s1 = centers[-1] + window.width / 2 + overhang.extension
    z0 = window.head_height + overhang.gap
    t = room.wall_thickness

    group = SceneGroup(name=f"overhang_{overhang.wall}", transform=wall_frame(room, overhang.wall))
    group.add(
        _box(f"overhang_{overhang.wall}", s0, s1, z0, z0 + overhang.thickness, t, t + overhang.depth)
    )
    return group


def build_context_surface(spec: ContextSurfaceSpec) -> SurfaceElement:
    """Place a free-standing context surface in world space."""
    transform = translation_matrix(spec.center) @ rotation_z_matrix(spec.rotation_deg)
    if spec.shape == "panel":
        return SurfaceElement.panel(spec.id, spec.width, spec.height, spec.tag, transform)
    return SurfaceElement.box(spec.id, spec.width, spec.height, spec.depth, spec.tag, transform)


def build_room_scene(config: Config) -> SceneGroup:
    """Build the complete scene graph for a configuration.

    Args:
        config: Room, windows, shading and context geometry.

    Returns:
        Root SceneGroup with "room", "walls", "shading" and "context" groups.

    Raises:
        ValueError: If windows do not fit, or two rows share a wall.
    """
    room = config.room
    t, slab = room.wall_thickness, room.slab_thickness

    windows_by_wall = {}
    for window in config.windows:
        if window.wall in windows_by_wall:
            raise ValueError(f"Wall {window.wall} already has a window row")
        windows_by_wall[window.wall] = window

    root = SceneGroup(name="scene")

    slabs = SceneGroup(name="room")
    slabs.add(
        SurfaceElement.box(
            "floor",
            room.width + 2 * t,
            room.length + 2 * t,
            slab,
            transform=translation_matrix((room.width / 2, room.length / 2, -slab / 2)),
        ),
        SurfaceElement.box(
            "ceiling",
            room.width + 2 * t,
            room.length + 2 * t,
            slab,
            transform=translation_matrix((room.width / 2, room.length / 2, room.height + slab / 2)),
        ),
    )

    walls = SceneGroup(name="walls")
    for wall in ("n", "e", "s", "w"):
        walls.add(build_wall(room, wall, windows_by_wall.get(wall)))

    shading = SceneGroup(name="shading")
    for overhang in config.shading:
        shading.add(build_overhang(room, overhang, windows_by_wall.get(overhang.wall)))

    context = SceneGroup(name="context")
    for spec in config.context:
        context.add(build_context_surface(spec))

    root.add(slabs, walls, shading, context)
    logger.debug(
        "Built room %.2f x %.2f x %.2f m with %d window rows",
        room.width, room.length, room.height, len(windows_by_wall),
    )
    return root
