"""Tests for the geometry module."""

import math

import numpy as np
import pytest

from sun_ray_tracer.core.geometry import (
    axis_scales,
    frame_matrix,
    normalize,
    reflect,
    rotation_z_matrix,
    sun_direction_from_angles,
    transform_normal,
    transform_point,
    transform_vector,
    translation_matrix,
)


class TestSunDirectionFromAngles:
    """Tests for sun_direction_from_angles function."""

    def test_sun_north_horizon(self):
        """Sun in North (az=0°), on horizon (el=0°)."""
        direction = sun_direction_from_angles(0, 0)
        expected = np.array([0.0, 1.0, 0.0])  # Pointing North
        np.testing.assert_array_almost_equal(direction, expected)

    def test_sun_east_horizon(self):
        """Sun in East (az=90°), on horizon (el=0°)."""
        direction = sun_direction_from_angles(90, 0)
        expected = np.array([1.0, 0.0, 0.0])  # Pointing East
        np.testing.assert_array_almost_equal(direction, expected)

    def test_sun_south_30_elevation(self):
        """Sun in South (az=180°), 30° up."""
        direction = sun_direction_from_angles(180, 30)
        expected = np.array([0.0, -math.sqrt(3) / 2, 0.5])
        np.testing.assert_array_almost_equal(direction, expected)

    def test_sun_zenith(self):
        """Sun at zenith (el=90°), azimuth doesn't matter."""
        direction = sun_direction_from_angles(123, 90)
        np.testing.assert_array_almost_equal(direction, [0.0, 0.0, 1.0])

    def test_direction_is_unit_vector(self):
        """Direction vector should always be unit length."""
        for az in range(0, 360, 30):
            for el in range(-90, 91, 15):
                direction = sun_direction_from_angles(az, el)
                assert np.linalg.norm(direction) == pytest.approx(1.0), f"az={az}, el={el}"


class TestVectorHelpers:
    """Tests for normalize and reflect."""

    def test_normalize(self):
        np.testing.assert_array_almost_equal(normalize(np.array([3.0, 0.0, 4.0])), [0.6, 0.0, 0.8])

    def test_normalize_zero_vector_raises(self):
        with pytest.raises(ValueError):
            normalize(np.zeros(3))

    def test_reflect_off_floor(self):
        """A ray going down and north bounces up and north."""
        reflected = reflect(np.array([0.0, 1.0, -1.0]), np.array([0.0, 0.0, 1.0]))
        np.testing.assert_array_almost_equal(reflected, [0.0, 1.0, 1.0])

    def test_reflect_ignores_normal_sign(self):
        d = normalize(np.array([1.0, 2.0, -3.0]))
        n = np.array([0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(reflect(d, n), reflect(d, -n))


class TestTransforms:
    """Tests for 4x4 transform helpers."""

    def test_translation_moves_points_not_vectors(self):
        m = translation_matrix((1.0, 2.0, 3.0))
        np.testing.assert_array_almost_equal(transform_point(m, (1, 1, 1)), [2.0, 3.0, 4.0])
        np.testing.assert_array_almost_equal(transform_vector(m, (1, 1, 1)), [1.0, 1.0, 1.0])

    def test_rotation_z_quarter_turn(self):
        """East rotates onto North."""
        m = rotation_z_matrix(90)
        np.testing.assert_array_almost_equal(transform_vector(m, (1, 0, 0)), [0.0, 1.0, 0.0])

    def test_frame_matrix_maps_local_axes(self):
        m = frame_matrix((1, 2, 3), (0, 1, 0), (0, 0, 1), (1, 0, 0))
        np.testing.assert_array_almost_equal(transform_point(m, (1, 0, 0)), [1.0, 3.0, 3.0])
        np.testing.assert_array_almost_equal(transform_point(m, (0, 0, 2)), [3.0, 2.0, 3.0])

    def test_parent_child_composition(self):
        """A child's world matrix is parent @ child."""
        parent = translation_matrix((10, 0, 0))
        child = rotation_z_matrix(90) @ translation_matrix((1, 0, 0))
        np.testing.assert_array_almost_equal(transform_point(parent @ child, (0, 0, 0)), [10.0, 1.0, 0.0])

    def test_normal_stays_perpendicular_under_scaling(self):
        """Normals use the inverse transpose under non-uniform scale."""
        m = np.diag([2.0, 1.0, 1.0, 1.0])
        tangent_local = np.array([1.0, -1.0, 0.0])
        normal_local = np.array([1.0, 1.0, 0.0])

        tangent_world = transform_vector(m, tangent_local)
        normal_world = transform_normal(np.linalg.inv(m), normal_local)

        assert np.dot(tangent_world, normal_world) == pytest.approx(0.0, abs=1e-12)
        assert np.linalg.norm(normal_world) == pytest.approx(1.0)

    def test_axis_scales(self):
        m = rotation_z_matrix(30) @ np.diag([2.0, 3.0, 4.0, 1.0])
        np.testing.assert_array_almost_equal(axis_scales(m), [2.0, 3.0, 4.0])
