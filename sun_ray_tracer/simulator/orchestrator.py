"""Trace orchestration: seeding rays on glazing and collecting their paths.

A trace request distributes a ray budget across the glazing panels in
proportion to their area, seeds a regular grid of samples on each panel, and
traces one ray per sample from outside the room along the sun's direction.
The result is a TraceGroup owned by the caller; SunRayTraceSession is the
caller-side owner that replaces one group with the next.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from ..core.glazing import GlazingPanel, find_glazing_panels
from ..core.models import SceneGroup, SceneSnapshot, ensure_snapshot
from ..core.ray_casting import SceneIntersector
from ..core.sun_position import DateLike, InvalidSolarInputError, SolarPosition, calculate_solar_position
from ..core.tracer import Segment, Termination, trace_ray_path

logger = logging.getLogger(__name__)

# Rays start this far from their glazing sample, on the sun's side.
RAY_ORIGIN_DISTANCE = 50.0

# Distance from the origin at which the sun indicator is drawn.
SUN_MARKER_DISTANCE = 20.0


class InvalidTraceRequestError(ValueError):
    """Raised when the ray count or bounce budget is unusable."""


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def validate_trace_request(ray_count, max_bounces) -> None:
    """Check the ray budget and bounce cap of a trace request.

    Raises:
        InvalidTraceRequestError: If ray_count is not a positive integer or
            max_bounces is not a non-negative integer.
    """
    if not _is_int(ray_count) or ray_count < 1:
        raise InvalidTraceRequestError(f"ray_count must be a positive integer, got {ray_count!r}")
    if not _is_int(max_bounces) or max_bounces < 0:
        raise InvalidTraceRequestError(f"max_bounces must be a non-negative integer, got {max_bounces!r}")


@dataclass
class PanelSampling:
    """Ray budget assigned to one glazing panel.

    Attributes:
        panel: The glazing panel.
        ray_count: Rays allotted by area share.
        grid_dimension: Grid cells per side; (grid_dimension + 1)^2 samples.
    """

    panel: GlazingPanel
    ray_count: int
    grid_dimension: int

    @property
    def sample_count(self) -> int:
        return (self.grid_dimension + 1) ** 2


def plan_panel_sampling(
    panels: list[GlazingPanel],
    total_area: float,
    ray_count: int,
) -> list[PanelSampling]:
    """Split the ray budget across panels in proportion to their area."""
    plans = []
    for panel in panels:
        rays = max(1, _round_half_up(ray_count * panel.area / total_area))
        grid = max(1, math.floor(math.sqrt(rays)))
        plans.append(PanelSampling(panel=panel, ray_count=rays, grid_dimension=grid))
    return plans


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def panel_sample_points(panel: GlazingPanel, grid_dimension: int) -> list[np.ndarray]:
    """World-space sample points on an evenly spaced grid across a panel.

    Samples include the panel edges: local u and v run from -0.5 to 0.5 of
    the panel width and height in ``grid_dimension`` steps.
    """
    element = panel.surface.element
    points = []
    for i in range(grid_dimension + 1):
        for j in range(grid_dimension + 1):
            u = i / grid_dimension - 0.5
            v = j / grid_dimension - 0.5
            points.append(panel.surface.to_world((u * element.width, v * element.height, 0.0)))
    return points


def sun_marker_position(
    solar_position: SolarPosition,
    distance: float = SUN_MARKER_DISTANCE,
) -> Optional[np.ndarray]:
    """Where to draw the sun indicator, or None when the sun is down."""
    if not solar_position.is_visible:
        return None
    return solar_position.direction * distance


class TraceGroup:
    """The output of one trace request, handed to the renderer as a unit.

    The group is replaced as a whole by the next trace; once disposed it
    must not be drawn again.
    """

    name = "SunRayTraces"

    def __init__(
        self,
        segments: list[Segment],
        sun_marker: Optional[np.ndarray] = None,
        terminations: Optional[Counter] = None,
        ray_count: int = 0,
    ):
        self._segments = segments
        self.sun_marker = sun_marker
        self.terminations = terminations if terminations is not None else Counter()
        self.ray_count = ray_count
        self.visible = True
        self.disposed = False

    @property
    def segments(self) -> list[Segment]:
        if self.disposed:
            raise RuntimeError("Trace group has been disposed")
        return self._segments

    def set_visible(self, visible: bool) -> None:
        """Show or hide the group without recomputing it."""
        self.visible = bool(visible)

    def dispose(self) -> None:
        """Release the segments; the group cannot be used afterwards."""
        self._segments = []
        self.sun_marker = None
        self.disposed = True

    def segments_by_color(self) -> dict[int, list[Segment]]:
        """Segments grouped by palette index, in ascending index order."""
        grouped: dict[int, list[Segment]] = {}
        for segment in self.segments:
            grouped.setdefault(segment.color_index, []).append(segment)
        return dict(sorted(grouped.items()))

    def summary(self) -> dict:
        """Counts describing the trace, for logs and reports."""
        return {
            "rays": self.ray_count,
            "segments": len(self.segments),
            "visible": self.visible,
            "sun_marker": None if self.sun_marker is None else self.sun_marker.tolist(),
            "terminations": {t.value: self.terminations.get(t, 0) for t in Termination},
        }

    def __len__(self) -> int:
        return len(self.segments)


def run_trace(
    ray_count: int,
    max_bounces: int,
    solar_position: SolarPosition,
    scene: Union[SceneGroup, SceneSnapshot],
    intersector: Optional[SceneIntersector] = None,
) -> Optional[TraceGroup]:
    """Trace sun rays through every glazing panel in the scene.

    Args:
        ray_count: Total rays to distribute across all glazing.
        max_bounces: Interior reflections allowed per ray.
        solar_position: Sun position for this request.
        scene: Scene root or snapshot; a single snapshot is used for the
            whole request.
        intersector: Intersection queries to use instead of one built from
            the snapshot.

    Returns:
        TraceGroup with every traced segment, or None if the sun is below the
        horizon or the scene has no glazing.

    Raises:
        InvalidTraceRequestError: If ray_count or max_bounces is invalid.
    """
    validate_trace_request(ray_count, max_bounces)

    if not solar_position.is_visible:
        logger.warning(
            "Sun is below the horizon (altitude %.2f°); no rays traced",
            solar_position.altitude_deg,
        )
        return None

    snapshot = ensure_snapshot(scene)
    panels, total_area = find_glazing_panels(snapshot)
    if not panels:
        logger.warning("Could not find any glazing surfaces to trace rays through")
        return None

    if intersector is None:
        intersector = SceneIntersector(snapshot)

    sun_direction = -solar_position.direction
    segments: list[Segment] = []
    terminations: Counter = Counter()
    traced = 0

    for plan in plan_panel_sampling(panels, total_area, ray_count):
        logger.debug(
            "Panel %s: area %.3f, %d rays, %dx%d grid",
            plan.panel.surface.id, plan.panel.area, plan.ray_count,
            plan.grid_dimension + 1, plan.grid_dimension + 1,
        )
        for target in panel_sample_points(plan.panel, plan.grid_dimension):
            origin = target - RAY_ORIGIN_DISTANCE * sun_direction
            path = trace_ray_path(origin, sun_direction, intersector, max_bounces)
            segments.extend(path.segments)
            terminations[path.termination] += 1
            traced += 1

    group = TraceGroup(
        segments=segments,
        sun_marker=sun_marker_position(solar_position),
        terminations=terminations,
        ray_count=traced,
    )
    logger.info(
        "Traced %d rays through %d glazing panels: %d segments",
        traced, len(panels), len(segments),
    )
    return group


class SunRayTraceSession:
    """Owns the trace currently shown for a scene.

    Each call to ``trace`` runs to completion before the previous group is
    disposed, so a failed request never leaves partial output behind.
    """

    def __init__(self, scene: SceneGroup):
        self.scene = scene
        self.current: Optional[TraceGroup] = None
        self.solar_position: Optional[SolarPosition] = None
        self.sun_marker: Optional[np.ndarray] = None
        self.visible = True

    def trace(
        self,
        target_date: DateLike,
        time_of_day: str,
        latitude: float,
        longitude: float,
        ray_count: int,
        max_bounces: int,
    ) -> Optional[TraceGroup]:
        """Compute the sun position and trace rays, replacing prior output.

        Invalid input leaves the current output untouched. When the sun is
        down or the scene has no glazing the current output is cleared.

        Returns:
            The new TraceGroup, or None if nothing was traced.
        """
        try:
            validate_trace_request(ray_count, max_bounces)
            solar_position = calculate_solar_position(target_date, time_of_day, latitude, longitude)
        except (InvalidSolarInputError, InvalidTraceRequestError) as exc:
            logger.warning("Invalid trace request: %s", exc)
            return None

        self.solar_position = solar_position
        self.sun_marker = sun_marker_position(solar_position)

        group = run_trace(ray_count, max_bounces, solar_position, self.scene)
        self._replace(group)
        return group

    def set_visible(self, visible: bool) -> None:
        """Show or hide the current trace without recomputing it.

        The setting carries over to later traces.
        """
        self.visible = bool(visible)
        if self.current is not None:
            self.current.set_visible(visible)

    def clear(self) -> None:
        """Dispose the current trace."""
        self._replace(None)

    def _replace(self, group: Optional[TraceGroup]) -> None:
        previous = self.current
        if group is not None:
            group.set_visible(self.visible)
        self.current = group
        if previous is not None and previous is not group:
            previous.dispose()
