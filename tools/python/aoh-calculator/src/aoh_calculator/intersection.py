"""
AoH Calculator — Layer Intersection
====================================
Resolves the common geospatial window that a set of layers can all be
restricted to before they are read pixel-for-pixel together.

Usage::

    from aoh_calculator.intersection import calculate_intersection, restrict_layers

    area = calculate_intersection([range_layer, area_layer, dem, habitat])
    range_layer, area_layer, dem, habitat = restrict_layers(
        [range_layer, area_layer, dem, habitat], area
    )
"""

from __future__ import annotations

import logging
from typing import Sequence

from shared.python.exceptions import EmptyIntersectionError, IntersectionError, ScaleMismatchError

from aoh_calculator.layers import GeospatialArea, Layer

logger = logging.getLogger("aohtoolkit.aoh_calculator.intersection")


def calculate_intersection(layers: Sequence[Layer]) -> GeospatialArea:
    """Compute the area shared by every layer.

    All layers must have exactly the same pixel scale; this is checked
    before any overlap is computed.

    Args:
        layers: The layers to intersect, at least one.

    Returns:
        The overlapping :class:`GeospatialArea`.

    Raises:
        ScaleMismatchError: If any layer's pixel scale differs from the
            first layer's.  Every layer's scale is logged first.
        EmptyIntersectionError: If the layers share no area.
    """
    if not layers:
        raise IntersectionError("Cannot intersect an empty list of layers")

    scale = layers[0].pixel_scale
    if any(layer.pixel_scale != scale for layer in layers[1:]):
        for layer in layers:
            logger.error("%s layer pixel scale: %s", layer.name, layer.pixel_scale)
        raise ScaleMismatchError([layer.pixel_scale for layer in layers])

    areas = [layer.area for layer in layers]
    intersection = GeospatialArea(
        left=max(a.left for a in areas),
        top=min(a.top for a in areas),
        right=min(a.right for a in areas),
        bottom=max(a.bottom for a in areas),
    )
    if intersection.width <= 0 or intersection.height <= 0:
        raise EmptyIntersectionError(intersection)

    logger.debug("Intersection of %d layers: %s", len(layers), intersection)
    return intersection


def restrict_layers(layers: Sequence[Layer], area: GeospatialArea) -> list[Layer]:
    """Restrict each layer to *area*, preserving order and concrete types."""
    return [layer.restrict_to_area(area) for layer in layers]
