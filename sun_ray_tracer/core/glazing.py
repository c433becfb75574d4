"""Discovery of glazing panels for ray seeding."""

import logging
from dataclasses import dataclass
from typing import Union

from .geometry import axis_scales
from .models import PlacedSurface, SceneGroup, SceneSnapshot, SurfaceShape, SurfaceTag, ensure_snapshot

logger = logging.getLogger(__name__)

# Floor for the total glazing area so ray shares never divide by zero.
GLAZING_AREA_EPSILON = 1e-6


@dataclass
class GlazingPanel:
    """A glazing surface and its world-space area.

    Attributes:
        surface: The placed glazing surface.
        area: World-space area in square scene units.
    """

    surface: PlacedSurface
    area: float


def panel_area(surface: PlacedSurface) -> float:
    """World-space area of a rectangular panel.

    Local width and height are multiplied by the world scale along the
    panel's local X and Y axes.
    """
    element = surface.element
    scale = axis_scales(surface.matrix)
    return element.width * element.height * float(scale[0]) * float(scale[1])


def find_glazing_panels(
    scene: Union[SceneGroup, SceneSnapshot],
) -> tuple[list[GlazingPanel], float]:
    """Find every glazing panel reachable from the scene.

    Args:
        scene: Scene root, or a snapshot already taken for this request.

    Returns:
        Tuple of (panels, total_area). ``total_area`` is floored at
        GLAZING_AREA_EPSILON, so it stays positive when no glazing exists.
    """
    panels = []
    total_area = 0.0

    for surface in ensure_snapshot(scene):
        if surface.tag is not SurfaceTag.GLAZING or surface.shape is not SurfaceShape.PANEL:
            continue
        area = panel_area(surface)
        if area <= 0:
            continue
        panels.append(GlazingPanel(surface=surface, area=area))
        total_area += area

    logger.debug("Found %d glazing panels, total area %.3f", len(panels), total_area)
    return panels, max(total_area, GLAZING_AREA_EPSILON)
