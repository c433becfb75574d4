"""Per-ray bounce tracing.

A ray starts outside the room, crosses glazing (toggling between outside and
inside), reflects off opaque surfaces and stops when it escapes the scene,
runs out of interior bounces, exceeds its segment budget, or strikes a
window frame from outside.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .geometry import normalize, reflect
from .models import SurfaceTag
from .ray_casting import RAY_EPSILON, SceneIntersector

# Index 0 is a ray that has not entered through glazing yet; index n is the
# path after n - 1 interior bounces. Deeper paths reuse the last color.
RAY_COLORS = (
    "#ffff00",  # Initial ray (yellow)
    "#ffd700",  # Bounce 1
    "#ffa500",  # Bounce 2 (orange)
    "#ff7f50",  # Bounce 3
    "#ff4500",  # Bounce 4 (orange-red)
    "#ff0000",  # Bounce 5 (red)
    "#dc143c",  # Bounce 6
    "#c71585",  # Bounce 7 (medium violet-red)
    "#8a2be2",  # Bounce 8 (blue-violet)
    "#4b0082",  # Bounce 9 (indigo)
    "#200040",  # Bounce 10 (dark purple)
)

# Segments allowed on top of the interior bounce budget, for reflections
# that happen before the ray enters the room.
EXTRA_SEGMENTS = 5


class Termination(Enum):
    """Why a ray path ended."""

    ESCAPED = "escaped"
    EXHAUSTED = "exhausted"
    BLOCKED_BY_FRAME = "blocked_by_frame"
    SEGMENT_LIMIT = "segment_limit"


@dataclass
class Segment:
    """One straight piece of a traced ray path.

    Attributes:
        start: World-space start point.
        end: World-space end point.
        color_index: Palette slot in RAY_COLORS.
    """

    start: np.ndarray
    end: np.ndarray
    color_index: int

    @property
    def color(self) -> str:
        return RAY_COLORS[self.color_index]

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))


@dataclass
class TraceState:
    """Mutable state of a single ray while it is being traced."""

    position: np.ndarray
    direction: np.ndarray
    is_inside: bool = False
    interior_bounces: int = 0
    segments: list[Segment] = field(default_factory=list)

    @property
    def color_index(self) -> int:
        index = self.interior_bounces + 1 if self.is_inside else 0
        return min(index, len(RAY_COLORS) - 1)


@dataclass
class RayPath:
    """Result of tracing one ray.

    Attributes:
        segments: Emitted segments in path order.
        termination: Why tracing stopped.
        interior_bounces: Reflections counted while inside the room.
        is_inside: Whether the ray ended inside the room.
    """

    segments: list[Segment]
    termination: Termination
    interior_bounces: int
    is_inside: bool


def _check_bounce_budget(max_interior_bounces) -> int:
    if isinstance(max_interior_bounces, bool) or not isinstance(max_interior_bounces, (int, np.integer)):
        raise ValueError(f"max_interior_bounces must be an integer, got {max_interior_bounces!r}")
    if max_interior_bounces < 0:
        raise ValueError("max_interior_bounces must not be negative")
    return int(max_interior_bounces)


def trace_ray_path(
    origin: np.ndarray,
    direction: np.ndarray,
    intersector: SceneIntersector,
    max_interior_bounces: int,
) -> RayPath:
    """Trace a ray through the scene and report how its path ended.

    Args:
        origin: World-space start point, outside the room.
        direction: Initial travel direction.
        intersector: Intersection queries over the scene snapshot.
        max_interior_bounces: Reflections allowed once the ray is inside.

    Returns:
        RayPath with at most ``max_interior_bounces + 5`` segments.
    """
    max_interior_bounces = _check_bounce_budget(max_interior_bounces)
    state = TraceState(
        position=np.array(origin, dtype=float),
        direction=normalize(np.asarray(direction, dtype=float)),
    )
    termination = Termination.SEGMENT_LIMIT

    for _ in range(max_interior_bounces + EXTRA_SEGMENTS):
        if state.interior_bounces >= max_interior_bounces:
            termination = Termination.EXHAUSTED
            break

        start = state.position + RAY_EPSILON * state.direction
        hit = intersector.first_hit(start, state.direction, RAY_EPSILON)
        if hit is None:
            termination = Termination.ESCAPED
            break

        state.segments.append(Segment(start=state.position, end=hit.point, color_index=state.color_index))
        state.position = hit.point

        if hit.tag is SurfaceTag.GLAZING:
            state.is_inside = not state.is_inside
            continue

        if hit.tag is SurfaceTag.FRAME and not state.is_inside:
            termination = Termination.BLOCKED_BY_FRAME
            break

        if hit.tag is SurfaceTag.FRAME or hit.tag is SurfaceTag.OPAQUE:
            if state.is_inside:
                state.interior_bounces += 1
            state.direction = normalize(reflect(state.direction, hit.normal))
        else:
            raise ValueError(f"Unhandled surface tag: {hit.tag}")

    return RayPath(
        segments=state.segments,
        termination=termination,
        interior_bounces=state.interior_bounces,
        is_inside=state.is_inside,
    )


def trace_ray(
    origin: np.ndarray,
    direction: np.ndarray,
    intersector: SceneIntersector,
    max_interior_bounces: int,
) -> list[Segment]:
    """Trace a ray and return only its segments."""
    return trace_ray_path(origin, direction, intersector, max_interior_bounces).segments
