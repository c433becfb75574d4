"""Plotly 3D visualization module."""

from .scene_builder import build_trace_figure, create_ray_traces, create_surface_meshes

__all__ = [
    "build_trace_figure",
    "create_ray_traces",
    "create_surface_meshes",
]
