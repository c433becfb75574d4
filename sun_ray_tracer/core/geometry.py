"""Geometric utilities for sun directions, vector math and world transforms.

Coordinate System:
    - x = East (positive toward East)
    - y = North (positive toward North)
    - z = Up (positive upward)

Azimuth Convention:
    - 0° = North
    - 90° = East
    - 180° = South
    - 270° = West
    - Clockwise from North

Transforms are 4x4 homogeneous matrices (numpy arrays) applied to column
vectors, so a child's world matrix is ``parent_world @ child_local``.
"""

import math

import numpy as np


def sun_direction_from_angles(azimuth_deg: float, elevation_deg: float) -> np.ndarray:
    """Convert sun azimuth and elevation to a direction vector.

    Computes the unit vector pointing FROM the scene origin TOWARD the sun
    in ENU (East-North-Up) coordinates.

    Args:
        azimuth_deg: Sun azimuth in degrees, clockwise from North [0, 360).
        elevation_deg: Sun elevation above horizon in degrees [-90, +90].

    Returns:
        Unit vector [x_east, y_north, z_up] pointing toward the sun.

    Examples:
        >>> sun_direction_from_angles(90, 0)  # Sun in East, on horizon
        array([1., 0., 0.])

        >>> sun_direction_from_angles(180, 30)  # Sun in South, 30° up
        array([ 0.        , -0.8660254 ,  0.5       ])
    """
    az_rad = math.radians(azimuth_deg)
    el_rad = math.radians(elevation_deg)

    cos_el = math.cos(el_rad)

    x = cos_el * math.sin(az_rad)  # East component
    y = cos_el * math.cos(az_rad)  # North component
    z = math.sin(el_rad)  # Up component

    return np.array([x, y, z])


def normalize(v: np.ndarray) -> np.ndarray:
    """Normalize a vector to unit length.

    Raises:
        ValueError: If the vector has zero length.
    """
    length = np.linalg.norm(v)
    if length < 1e-10:
        raise ValueError("Cannot normalize zero-length vector")
    return v / length


def dot(a: np.ndarray, b: np.ndarray) -> float:
    """Compute dot product of two vectors."""
    return float(np.dot(a, b))


def reflect(direction: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Mirror a direction about a surface normal.

    Uses ``d - 2 (d . n) n``; the sign of the normal does not matter.

    Args:
        direction: Incoming direction vector.
        normal: Unit surface normal.

    Returns:
        Reflected direction with the same length as ``direction``.
    """
    return direction - 2.0 * dot(direction, normal) * normal


def identity_matrix() -> np.ndarray:
    """4x4 identity transform."""
    return np.eye(4)


def translation_matrix(offset) -> np.ndarray:
    """Transform that moves points by ``offset`` (x, y, z)."""
    m = np.eye(4)
    m[:3, 3] = np.asarray(offset, dtype=float)
    return m


def rotation_z_matrix(angle_deg: float) -> np.ndarray:
    """Counter-clockwise rotation about the Up axis, viewed from above."""
    a = math.radians(angle_deg)
    c, s = math.cos(a), math.sin(a)
    m = np.eye(4)
    m[:2, :2] = [[c, -s], [s, c]]
    return m


def frame_matrix(origin, x_axis, y_axis, z_axis) -> np.ndarray:
    """Build a transform whose local axes map onto the given world axes.

    Args:
        origin: World position of the local origin.
        x_axis: World direction of local +X.
        y_axis: World direction of local +Y.
        z_axis: World direction of local +Z.

    Returns:
        4x4 matrix with the axes as its first three columns.
    """
    m = np.eye(4)
    m[:3, 0] = np.asarray(x_axis, dtype=float)
    m[:3, 1] = np.asarray(y_axis, dtype=float)
    m[:3, 2] = np.asarray(z_axis, dtype=float)
    m[:3, 3] = np.asarray(origin, dtype=float)
    return m


def transform_point(matrix: np.ndarray, point) -> np.ndarray:
    """Apply a 4x4 transform to a 3D point."""
    p = np.asarray(point, dtype=float)
    return matrix[:3, :3] @ p + matrix[:3, 3]


def transform_vector(matrix: np.ndarray, vector) -> np.ndarray:
    """Apply the linear part of a 4x4 transform to a 3D vector (no translation)."""
    return matrix[:3, :3] @ np.asarray(vector, dtype=float)


def transform_normal(inverse_matrix: np.ndarray, normal) -> np.ndarray:
    """Map a local-space normal to a unit world-space normal.

    Normals transform with the inverse transpose so they stay perpendicular
    to the surface under non-uniform scaling.

    Args:
        inverse_matrix: Inverse of the surface's world matrix.
        normal: Normal in the surface's local space.
    """
    return normalize(inverse_matrix[:3, :3].T @ np.asarray(normal, dtype=float))


def axis_scales(matrix: np.ndarray) -> np.ndarray:
    """World-scale factors along the local X, Y and Z axes."""
    return np.linalg.norm(matrix[:3, :3], axis=0)
