"""Core solar geometry, scene model and ray tracing components."""

from .models import Config, SceneGroup, SceneSnapshot, SurfaceElement, SurfaceShape, SurfaceTag
from .geometry import sun_direction_from_angles
from .sun_position import InvalidSolarInputError, SolarPosition, calculate_solar_position
from .ray_casting import RayHit, SceneIntersector
from .glazing import GLAZING_AREA_EPSILON, GlazingPanel, find_glazing_panels
from .tracer import RAY_COLORS, RayPath, Segment, Termination, trace_ray, trace_ray_path
from .room import build_room_scene

__all__ = [
    "Config",
    "SceneGroup",
    "SceneSnapshot",
    "SurfaceElement",
    "SurfaceShape",
    "SurfaceTag",
    "sun_direction_from_angles",
    "InvalidSolarInputError",
    "SolarPosition",
    "calculate_solar_position",
    "RayHit",
    "SceneIntersector",
    "GLAZING_AREA_EPSILON",
    "GlazingPanel",
    "find_glazing_panels",
    "RAY_COLORS",
    "RayPath",
    "Segment",
    "Termination",
    "trace_ray",
    "trace_ray_path",
    "build_room_scene",
]
