"""Ray casting against scene surfaces.

Rays are intersected with each surface in the surface's local space: the
world-space origin and direction are mapped through the inverse world matrix,
so the ray parameter ``t`` is the same in both spaces and equals the world
distance when the world direction has unit length.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Union

import numpy as np

from .geometry import normalize, transform_normal, transform_point, transform_vector
from .models import PlacedSurface, SceneGroup, SceneSnapshot, SurfaceShape, SurfaceTag, ensure_snapshot

# Offset used to step off a surface before casting the next ray.
RAY_EPSILON = 1e-3


@dataclass
class LocalIntersection:
    """Intersection in a surface's local space.

    Attributes:
        t: Ray parameter of the hit.
        normal: Local-space surface normal at the hit.
    """

    t: float
    normal: np.ndarray


@dataclass
class RayHit:
    """A ray-surface intersection in world space.

    Attributes:
        point: World-space hit point.
        distance: Distance from the ray origin.
        normal: Unit world-space surface normal at the hit.
        surface: The surface that was hit.
    """

    point: np.ndarray
    distance: float
    normal: np.ndarray
    surface: PlacedSurface

    @property
    def tag(self) -> SurfaceTag:
        return self.surface.tag


def intersect_panel(
    origin: np.ndarray,
    direction: np.ndarray,
    width: float,
    height: float,
    epsilon: float = 1e-10,
) -> Optional[LocalIntersection]:
    """Intersect a local-space ray with a centered rectangle in the XY plane.

    The panel is double sided; the returned normal is local +Z.

    Args:
        origin: Ray origin in panel space.
        direction: Ray direction in panel space.
        width: Extent along local X.
        height: Extent along local Y.
        epsilon: Small value for numerical comparisons.

    Returns:
        LocalIntersection, or None if the ray misses or runs parallel.
    """
    if abs(direction[2]) < epsilon:
        return None

    t = -origin[2] / direction[2]
    if t <= 0:
        return None

    point = origin + t * direction
    if abs(point[0]) > width / 2 + epsilon or abs(point[1]) > height / 2 + epsilon:
        return None

    return LocalIntersection(t=t, normal=np.array([0.0, 0.0, 1.0]))


def intersect_box(
    origin: np.ndarray,
    direction: np.ndarray,
    half_extents: np.ndarray,
    epsilon: float = 1e-10,
) -> Optional[LocalIntersection]:
    """Intersect a local-space ray with a centered box (slab method).

    Only the face where the ray enters the box counts as a hit, so a ray that
    starts inside a box does not see it.

    Args:
        origin: Ray origin in box space.
        direction: Ray direction in box space.
        half_extents: Half sizes along local X, Y and Z.
        epsilon: Small value for numerical comparisons.

    Returns:
        LocalIntersection whose normal faces against the ray, or None.
    """
    t_near = -np.inf
    t_far = np.inf
    near_axis = -1

    for axis in range(3):
        if abs(direction[axis]) < epsilon:
            if abs(origin[axis]) > half_extents[axis]:
                return None
            continue

        t1 = (-half_extents[axis] - origin[axis]) / direction[axis]
        t2 = (half_extents[axis] - origin[axis]) / direction[axis]
        if t1 > t2:
            t1, t2 = t2, t1

        if t1 > t_near:
            t_near = t1
            near_axis = axis
        t_far = min(t_far, t2)

        if t_near > t_far:
            return None

    if near_axis < 0 or t_near <= 0:
        return None

    normal = np.zeros(3)
    normal[near_axis] = -np.sign(direction[near_axis])
    return LocalIntersection(t=t_near, normal=normal)


def intersect_surface(
    origin: np.ndarray,
    direction: np.ndarray,
    surface: PlacedSurface,
) -> Optional[RayHit]:
    """Intersect a world-space ray with one placed surface."""
    local_origin = transform_point(surface.inverse, origin)
    local_direction = transform_vector(surface.inverse, direction)
    element = surface.element

    if element.shape is SurfaceShape.PANEL:
        local = intersect_panel(local_origin, local_direction, element.width, element.height)
    elif element.shape is SurfaceShape.BOX:
        half = np.array([element.width, element.height, element.depth]) / 2
        local = intersect_box(local_origin, local_direction, half)
    else:
        raise ValueError(f"Unsupported surface shape: {element.shape}")

    if local is None:
        return None

    distance = local.t * float(np.linalg.norm(direction))
    return RayHit(
        point=origin + local.t * direction,
        distance=distance,
        normal=transform_normal(surface.inverse, local.normal),
        surface=surface,
    )


class SceneIntersector:
    """Answers ray queries against a read-only scene snapshot."""

    def __init__(self, scene: Union[SceneGroup, SceneSnapshot]):
        self.snapshot = ensure_snapshot(scene)

    def intersect_objects(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        candidates: Optional[Iterable[PlacedSurface]] = None,
    ) -> list[RayHit]:
        """Return every hit along the ray, nearest first.

        Args:
            origin: World-space ray origin.
            direction: World-space ray direction (normalized internally).
            candidates: Surfaces to test; defaults to the whole snapshot.
        """
        origin = np.asarray(origin, dtype=float)
        direction = normalize(np.asarray(direction, dtype=float))
        surfaces = self.snapshot if candidates is None else candidates

        hits = []
        for surface in surfaces:
            hit = intersect_surface(origin, direction, surface)
            if hit is not None:
                hits.append(hit)
        hits.sort(key=lambda h: h.distance)
        return hits

    def first_hit(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        min_distance: float = RAY_EPSILON,
    ) -> Optional[RayHit]:
        """Nearest hit farther than ``min_distance`` from the origin, if any."""
        for hit in self.intersect_objects(origin, direction):
            if hit.distance > min_distance:
                return hit
        return None
