"""Tests for the Plotly figure builder."""

import numpy as np
import plotly.graph_objects as go
import pytest

from sun_ray_tracer.core.geometry import sun_direction_from_angles
from sun_ray_tracer.core.models import Config, PlacedSurface, SurfaceElement, SurfaceTag
from sun_ray_tracer.core.room import build_room_scene
from sun_ray_tracer.core.sun_position import SolarPosition, sun_path_for_date
from sun_ray_tracer.core.tracer import RAY_COLORS
from sun_ray_tracer.simulator.orchestrator import SUN_MARKER_DISTANCE, run_trace
from sun_ray_tracer.visualization.scene_builder import (
    RAY_TRACE_GROUP,
    build_trace_figure,
    create_sun_indicator,
    surface_vertices,
)


def create_scene():
    return build_room_scene(Config.from_dict({
        "windows": [{"wall": "s", "width": 2.0, "height": 1.5}],
    }))


def create_solar_position(altitude: float = 30.0) -> SolarPosition:
    return SolarPosition(
        altitude_deg=altitude,
        azimuth_deg=180.0,
        direction=sun_direction_from_angles(180.0, altitude),
    )


def ray_traces(fig: go.Figure) -> list:
    return [t for t in fig.data if t.legendgroup == RAY_TRACE_GROUP]


class TestSurfaceVertices:
    def test_panel(self):
        surface = PlacedSurface(SurfaceElement.panel("p", 2.0, 1.0), np.eye(4))
        vertices, triangles = surface_vertices(surface)

        assert vertices.shape == (4, 3)
        assert len(triangles) == 2
        assert np.allclose(vertices[:, 2], 0.0)

    def test_box(self):
        surface = PlacedSurface(SurfaceElement.box("b", 2.0, 2.0, 2.0), np.eye(4))
        vertices, triangles = surface_vertices(surface)

        assert vertices.shape == (8, 3)
        assert len(triangles) == 12
        assert np.allclose(np.abs(vertices), 1.0)


class TestBuildTraceFigure:
    """Tests for build_trace_figure."""

    def test_scene_only(self):
        fig = build_trace_figure(create_scene())

        meshes = [t for t in fig.data if isinstance(t, go.Mesh3d)]
        assert {m.name for m in meshes} == {"Glazing", "Frame", "Opaque"}
        assert not ray_traces(fig)
        assert not fig.layout.updatemenus

    def test_rays_grouped_by_color(self):
        scene = create_scene()
        solar_position = create_solar_position()
        group = run_trace(50, 3, solar_position, scene)

        fig = build_trace_figure(scene, trace_group=group, solar_position=solar_position)
        traces = ray_traces(fig)

        assert len(traces) == len(group.segments_by_color())
        assert {t.line.color for t in traces} <= set(RAY_COLORS)
        assert all(t.visible for t in traces)

        points = sum(len(t.x) for t in traces)
        assert points == 3 * len(group)

    def test_hidden_group_draws_hidden_traces(self):
        scene = create_scene()
        group = run_trace(20, 2, create_solar_position(), scene)
        group.set_visible(False)

        fig = build_trace_figure(scene, trace_group=group)
        assert all(t.visible is False for t in ray_traces(fig))
        assert fig.layout.updatemenus[0].active == 1

    def test_visibility_buttons(self):
        scene = create_scene()
        group = run_trace(20, 2, create_solar_position(), scene)
        fig = build_trace_figure(scene, trace_group=group)

        show, hide = fig.layout.updatemenus[0].buttons
        ray_mask = [t.legendgroup == RAY_TRACE_GROUP for t in fig.data]
        shown = show.args[0]["visible"]
        hidden = hide.args[0]["visible"]

        assert all(shown)
        assert [not v for v in hidden] == ray_mask

    def test_sun_indicator_and_path(self):
        scene = create_scene()
        solar_position = create_solar_position(45.0)
        path = sun_path_for_date(45.0, 0.0, "2024-06-21", interval_minutes=60)

        fig = build_trace_figure(scene, solar_position=solar_position, sun_path=path)
        names = [t.name for t in fig.data]

        assert "Sun path" in names
        sun = next(t for t in fig.data if t.name.startswith("Sun ("))
        np.testing.assert_array_almost_equal(
            [sun.x[0], sun.y[0], sun.z[0]], solar_position.direction * SUN_MARKER_DISTANCE
        )

    def test_no_indicator_below_horizon(self):
        below = SolarPosition(altitude_deg=-10.0, azimuth_deg=0.0, direction=np.zeros(3))
        assert create_sun_indicator(below) is None

    def test_disposed_group_rejected(self):
        scene = create_scene()
        group = run_trace(10, 2, create_solar_position(), scene)
        group.dispose()

        with pytest.raises(ValueError):
            build_trace_figure(scene, trace_group=group)

    def test_glazing_only_scene(self):
        root = build_room_scene(Config.from_dict({}))
        root.add(SurfaceElement.panel("pane", 1.0, 1.0, SurfaceTag.GLAZING))

        fig = build_trace_figure(root, show_surfaces=True)
        assert any(t.name == "Glazing" for t in fig.data)
