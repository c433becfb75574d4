"""Tests for the ray casting module."""

import numpy as np
import pytest

from sun_ray_tracer.core.geometry import frame_matrix, translation_matrix
from sun_ray_tracer.core.models import PlacedSurface, SceneGroup, SceneSnapshot, SurfaceElement, SurfaceTag
from sun_ray_tracer.core.ray_casting import (
    RAY_EPSILON,
    SceneIntersector,
    intersect_box,
    intersect_panel,
    intersect_surface,
)


def create_floor_panel(z: float, id: str = "panel", size: float = 4.0) -> SurfaceElement:
    """Create a horizontal panel at height z."""
    return SurfaceElement.panel(id, size, size, transform=translation_matrix((0, 0, z)))


class TestIntersectPanel:
    """Tests for intersect_panel in local space."""

    def test_direct_hit(self):
        hit = intersect_panel(np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, -1.0]), 2.0, 2.0)
        assert hit is not None
        assert hit.t == pytest.approx(5.0)
        np.testing.assert_array_almost_equal(hit.normal, [0.0, 0.0, 1.0])

    def test_double_sided(self):
        hit = intersect_panel(np.array([0.0, 0.0, -3.0]), np.array([0.0, 0.0, 1.0]), 2.0, 2.0)
        assert hit is not None
        assert hit.t == pytest.approx(3.0)

    def test_miss_outside_bounds(self):
        assert intersect_panel(np.array([1.5, 0.0, 5.0]), np.array([0.0, 0.0, -1.0]), 2.0, 2.0) is None

    def test_parallel_ray_misses(self):
        assert intersect_panel(np.array([0.0, 0.0, 1.0]), np.array([1.0, 0.0, 0.0]), 2.0, 2.0) is None

    def test_panel_behind_ray(self):
        assert intersect_panel(np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, 1.0]), 2.0, 2.0) is None


class TestIntersectBox:
    """Tests for intersect_box in local space."""

    def test_entry_face_hit(self):
        hit = intersect_box(np.array([-5.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]), np.ones(3))
        assert hit is not None
        assert hit.t == pytest.approx(4.0)
        np.testing.assert_array_almost_equal(hit.normal, [-1.0, 0.0, 0.0])

    def test_normal_faces_against_ray(self):
        hit = intersect_box(np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, -1.0]), np.ones(3))
        np.testing.assert_array_almost_equal(hit.normal, [0.0, 0.0, 1.0])

    def test_ray_starting_inside_sees_nothing(self):
        assert intersect_box(np.zeros(3), np.array([1.0, 0.0, 0.0]), np.ones(3)) is None

    def test_miss(self):
        assert intersect_box(np.array([-5.0, 3.0, 0.0]), np.array([1.0, 0.0, 0.0]), np.ones(3)) is None

    def test_box_behind_ray(self):
        assert intersect_box(np.array([5.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]), np.ones(3)) is None


class TestIntersectSurface:
    """Tests for world-space intersection of placed surfaces."""

    def test_vertical_panel_facing_south(self):
        """Panel in the XZ plane at y=5, local +Z pointing South."""
        matrix = frame_matrix((0, 5, 1), (1, 0, 0), (0, 0, 1), (0, -1, 0))
        surface = PlacedSurface(SurfaceElement.panel("window", 2.0, 2.0, SurfaceTag.GLAZING), matrix)

        hit = intersect_surface(np.array([0.0, 0.0, 1.0]), np.array([0.0, 1.0, 0.0]), surface)

        assert hit is not None
        np.testing.assert_array_almost_equal(hit.point, [0.0, 5.0, 1.0])
        assert hit.distance == pytest.approx(5.0)
        np.testing.assert_array_almost_equal(hit.normal, [0.0, -1.0, 0.0])
        assert hit.tag is SurfaceTag.GLAZING

    def test_scaled_box_distance_is_world_distance(self):
        element = SurfaceElement.box("block", 1.0, 1.0, 1.0)
        surface = PlacedSurface(element, np.diag([2.0, 1.0, 1.0, 1.0]))

        hit = intersect_surface(np.array([-5.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0]), surface)

        assert hit.distance == pytest.approx(4.0)
        np.testing.assert_array_almost_equal(hit.point, [-1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(hit.normal, [-1.0, 0.0, 0.0])


class TestSceneIntersector:
    """Tests for SceneIntersector queries."""

    def create_scene(self) -> SceneGroup:
        return SceneGroup(name="scene").add(
            create_floor_panel(1.0, "low"),
            SceneGroup(name="upper").add(create_floor_panel(3.0, "high")),
        )

    def test_hits_sorted_nearest_first(self):
        intersector = SceneIntersector(self.create_scene())
        hits = intersector.intersect_objects([0, 0, 5], [0, 0, -1])

        assert [h.surface.id for h in hits] == ["high", "low"]
        assert [h.distance for h in hits] == pytest.approx([2.0, 4.0])

    def test_direction_is_normalized(self):
        intersector = SceneIntersector(self.create_scene())
        hits = intersector.intersect_objects([0, 0, 5], [0, 0, -10])
        assert hits[0].distance == pytest.approx(2.0)

    def test_candidates_limit_query(self):
        intersector = SceneIntersector(self.create_scene())
        low = [s for s in intersector.snapshot if s.id == "low"]

        hits = intersector.intersect_objects([0, 0, 5], [0, 0, -1], candidates=low)
        assert [h.surface.id for h in hits] == ["low"]

    def test_first_hit_skips_hits_within_min_distance(self):
        intersector = SceneIntersector(self.create_scene())
        hit = intersector.first_hit([0, 0, 3.0 + RAY_EPSILON / 2], [0, 0, -1])
        assert hit.surface.id == "low"

    def test_first_hit_none_when_nothing_ahead(self):
        intersector = SceneIntersector(self.create_scene())
        assert intersector.first_hit([0, 0, 5], [0, 0, 1]) is None


class TestSceneSnapshot:
    """The snapshot is frozen when taken."""

    def test_later_edits_do_not_affect_snapshot(self):
        panel = create_floor_panel(1.0)
        root = SceneGroup(name="scene").add(panel)
        snapshot = SceneSnapshot.from_root(root)

        panel.transform = translation_matrix((0, 0, 100))
        root.add(create_floor_panel(2.0, "late"))

        assert len(snapshot) == 1
        np.testing.assert_array_almost_equal(snapshot.surfaces[0].to_world((0, 0, 0)), [0.0, 0.0, 1.0])

    def test_element_edits_do_not_affect_snapshot(self):
        """Tag and size changes after the snapshot leave placed surfaces untouched."""
        pane = SurfaceElement.panel("pane", 2.0, 2.0, SurfaceTag.GLAZING)
        snapshot = SceneSnapshot.from_root(SceneGroup(name="scene").add(pane))

        pane.tag = SurfaceTag.FRAME
        pane.width = 0.0
        pane.height = 5.0
        pane.transform[:3, 3] = (0.0, 0.0, 50.0)

        (surface,) = snapshot
        assert surface.tag is SurfaceTag.GLAZING
        assert surface.element.width == pytest.approx(2.0)
        assert surface.element.height == pytest.approx(2.0)
        np.testing.assert_array_equal(surface.element.transform, np.eye(4))

        hit = SceneIntersector(snapshot).first_hit([0.9, 0.0, 5.0], [0.0, 0.0, -1.0])
        assert hit is not None and hit.tag is SurfaceTag.GLAZING

    def test_nested_group_transforms_compose(self):
        inner = SceneGroup(name="inner", transform=translation_matrix((0, 0, 2))).add(create_floor_panel(1.0))
        root = SceneGroup(name="scene", transform=translation_matrix((5, 0, 0))).add(inner)

        (surface,) = SceneSnapshot.from_root(root)
        np.testing.assert_array_almost_equal(surface.to_world((0, 0, 0)), [5.0, 0.0, 3.0])
