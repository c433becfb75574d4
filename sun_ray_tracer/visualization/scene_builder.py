"""Plotly 3D visualization of the room and traced sun rays.

This module turns a scene snapshot and a TraceGroup into an interactive
figure: surfaces as meshes colored by tag, ray segments as colored lines,
the sun indicator and optionally the day's sun path.
"""

from typing import Optional, Union

import numpy as np
import plotly.graph_objects as go

from ..core.geometry import sun_direction_from_angles
from ..core.models import PlacedSurface, SceneGroup, SceneSnapshot, SurfaceShape, SurfaceTag, ensure_snapshot
from ..core.sun_position import SolarPosition
from ..core.tracer import RAY_COLORS
from ..simulator.orchestrator import SUN_MARKER_DISTANCE, TraceGroup

SURFACE_STYLES = {
    SurfaceTag.GLAZING: ("lightblue", 0.35),
    SurfaceTag.FRAME: ("dimgray", 0.9),
    SurfaceTag.OPAQUE: ("lightgray", 0.25),
}

RAY_TRACE_GROUP = "sun_rays"

# Triangles of a box whose corners are ordered by their (x, y, z) sign bits.
_BOX_TRIANGLES = (
    (0, 1, 3), (0, 3, 2),  # -x
    (4, 6, 7), (4, 7, 5),  # +x
    (0, 4, 5), (0, 5, 1),  # -y
    (2, 3, 7), (2, 7, 6),  # +y
    (0, 2, 6), (0, 6, 4),  # -z
    (1, 5, 7), (1, 7, 3),  # +z
)


def surface_vertices(surface: PlacedSurface) -> tuple[np.ndarray, list[tuple[int, int, int]]]:
    """World-space vertices and triangle indices for a surface.

    Returns:
        Tuple of (vertices as an (N, 3) array, triangles as index triples).
    """
    element = surface.element
    hw, hh = element.width / 2, element.height / 2

    if element.shape is SurfaceShape.PANEL:
        local = [(-hw, -hh, 0.0), (hw, -hh, 0.0), (hw, hh, 0.0), (-hw, hh, 0.0)]
        triangles = [(0, 1, 2), (0, 2, 3)]
    else:
        hd = element.depth / 2
        local = [
            (sx * hw, sy * hh, sz * hd)
            for sx in (-1, 1)
            for sy in (-1, 1)
            for sz in (-1, 1)
        ]
        triangles = list(_BOX_TRIANGLES)

    vertices = np.array([surface.to_world(p) for p in local])
    return vertices, triangles


def create_surface_meshes(scene: Union[SceneGroup, SceneSnapshot]) -> list[go.Mesh3d]:
    """Create one Mesh3d per surface tag, merging all surfaces with that tag."""
    traces = []
    for tag in SurfaceTag:
        xs, ys, zs, ii, jj, kk = [], [], [], [], [], []
        for surface in ensure_snapshot(scene):
            if surface.tag is not tag:
                continue
            vertices, triangles = surface_vertices(surface)
            offset = len(xs)
            xs.extend(vertices[:, 0])
            ys.extend(vertices[:, 1])
            zs.extend(vertices[:, 2])
            for a, b, c in triangles:
                ii.append(offset + a)
                jj.append(offset + b)
                kk.append(offset + c)

        if not xs:
            continue

        color, opacity = SURFACE_STYLES[tag]
        traces.append(
            go.Mesh3d(
                x=xs,
                y=ys,
                z=zs,
                i=ii,
                j=jj,
                k=kk,
                color=color,
                opacity=opacity,
                flatshading=True,
                name=tag.name.capitalize(),
                showlegend=True,
            )
        )
    return traces


def create_ray_traces(trace_group: TraceGroup, width: int = 3) -> list[go.Scatter3d]:
    """Create line traces for ray segments, one trace per palette color.

    Segments of the same color are joined into one trace, separated by gaps.
    """
    traces = []
    for color_index, segments in trace_group.segments_by_color().items():
        xs, ys, zs = [], [], []
        for segment in segments:
            xs.extend([segment.start[0], segment.end[0], None])
            ys.extend([segment.start[1], segment.end[1], None])
            zs.extend([segment.start[2], segment.end[2], None])

        label = "Incoming ray" if color_index == 0 else f"Inside, bounce {color_index - 1}"
        if color_index == len(RAY_COLORS) - 1:
            label += "+"

        traces.append(
            go.Scatter3d(
                x=xs,
                y=ys,
                z=zs,
                mode="lines",
                line=dict(color=RAY_COLORS[color_index], width=width),
                name=label,
                legendgroup=RAY_TRACE_GROUP,
                visible=trace_group.visible,
                showlegend=True,
            )
        )
    return traces


def create_sun_indicator(solar_position: SolarPosition, size: int = 12) -> Optional[go.Scatter3d]:
    """Create a marker at the sun indicator position, or None when the sun is down."""
    if not solar_position.is_visible:
        return None

    sun_pos = solar_position.direction * SUN_MARKER_DISTANCE
    return go.Scatter3d(
        x=[sun_pos[0]],
        y=[sun_pos[1]],
        z=[sun_pos[2]],
        mode="markers",
        marker=dict(size=size, color="yellow", symbol="circle"),
        name=f"Sun (az={solar_position.azimuth_deg:.0f}°, alt={solar_position.altitude_deg:.0f}°)",
        showlegend=True,
    )


def create_sun_path(sun_path: list[dict], distance: float = SUN_MARKER_DISTANCE) -> go.Scatter3d:
    """Draw a day's sun path as points on a sphere around the origin."""
    points = np.array([
        sun_direction_from_angles(p["azimuth_deg"], p["altitude_deg"]) * distance
        for p in sun_path
    ]).reshape(-1, 3)
    return go.Scatter3d(
        x=points[:, 0],
        y=points[:, 1],
        z=points[:, 2],
        mode="lines+markers",
        line=dict(color="orange", width=2, dash="dot"),
        marker=dict(size=2, color="orange"),
        text=[p["timestamp"] for p in sun_path],
        hoverinfo="text",
        name="Sun path",
        showlegend=True,
    )


def _visibility_buttons(figure: go.Figure) -> list[dict]:
    ray_mask = [trace.legendgroup == RAY_TRACE_GROUP for trace in figure.data]
    # Non-ray traces keep their own visibility; unset means shown.
    others = [trace.visible is not False for trace in figure.data]
    shown = [True if is_ray else other for is_ray, other in zip(ray_mask, others)]
    hidden = [False if is_ray else other for is_ray, other in zip(ray_mask, others)]
    return [
        dict(label="Show rays", method="restyle", args=[{"visible": shown}]),
        dict(label="Hide rays", method="restyle", args=[{"visible": hidden}]),
    ]


def build_trace_figure(
    scene: Union[SceneGroup, SceneSnapshot],
    trace_group: Optional[TraceGroup] = None,
    solar_position: Optional[SolarPosition] = None,
    sun_path: Optional[list[dict]] = None,
    show_surfaces: bool = True,
    title: str = "Sun Ray Trace",
) -> go.Figure:
    """Build a complete Plotly 3D figure of the scene and traced rays.

    Args:
        scene: Scene root or snapshot to draw.
        trace_group: Traced rays to draw; skipped if None.
        solar_position: Adds the sun indicator when the sun is up.
        sun_path: Output of ``sun_path_for_date`` to draw as an arc.
        show_surfaces: Whether to draw scene surfaces.
        title: Plot title.

    Returns:
        Plotly Figure with show/hide buttons for the ray traces.
    """
    if trace_group is not None and trace_group.disposed:
        raise ValueError("Cannot draw a disposed trace group")

    fig = go.Figure()

    if show_surfaces:
        for trace in create_surface_meshes(scene):
            fig.add_trace(trace)

    if trace_group is not None:
        for trace in create_ray_traces(trace_group):
            fig.add_trace(trace)

    if solar_position is not None:
        indicator = create_sun_indicator(solar_position)
        if indicator is not None:
            fig.add_trace(indicator)

    if sun_path:
        fig.add_trace(create_sun_path(sun_path))

    fig.update_layout(
        title=dict(text=title, x=0.5),
        scene=dict(
            xaxis_title="East (m)",
            yaxis_title="North (m)",
            zaxis_title="Up (m)",
            aspectmode="data",
            camera=dict(eye=dict(x=1.5, y=-1.5, z=1.0)),
        ),
        legend=dict(yanchor="top", y=0.99, xanchor="left", x=0.01),
        margin=dict(l=0, r=0, t=40, b=0),
    )

    if trace_group is not None:
        fig.update_layout(
            updatemenus=[
                dict(
                    type="buttons",
                    direction="right",
                    x=0.99,
                    xanchor="right",
                    y=0.99,
                    yanchor="top",
                    active=0 if trace_group.visible else 1,
                    buttons=_visibility_buttons(fig),
                )
            ]
        )

    return fig
