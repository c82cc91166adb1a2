"""Projected footprint construction from raw coordinate rings."""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .errors import BuildingMeshError, Diagnostics, InsufficientPoints, InvalidCoordinate
from .models import Feature, PolygonShape, is_finite_number
from .projection import RhumbProjector

logger = logging.getLogger(__name__)


def is_valid_pair(coord) -> bool:
    return (isinstance(coord, (list, tuple)) and len(coord) == 2
            and is_finite_number(coord[0]) and is_finite_number(coord[1]))


def _drop_closing_point(points: np.ndarray) -> np.ndarray:
    if len(points) > 1 and np.allclose(points[0], points[-1]):
        return points[:-1]
    return points


def build_ring(coords: Sequence, projector: RhumbProjector,
               diagnostics: Optional[Diagnostics] = None,
               feature_id: Optional[str] = None) -> Optional[np.ndarray]:
    """Project one ring into an open (N, 2) array of planar points.

    Returns None when the ring cannot be used: no finite pair at all,
    a malformed vertex anywhere in the ring, or fewer than three
    distinct points after dropping the closing duplicate.
    """
    if not isinstance(coords, (list, tuple)):
        return None
    valid = [c for c in coords if is_valid_pair(c)]
    if not valid:
        return None

    try:
        # Every input vertex is projected, so one bad pair rejects the ring
        points = projector.project_many(coords)
    except InvalidCoordinate as e:
        if diagnostics is not None:
            diagnostics.report(e, feature_id)
        else:
            logger.warning(f"Error generating shape from coordinates: {e}")
        return None

    points = _drop_closing_point(points)
    if len(points) < 3:
        if diagnostics is not None:
            diagnostics.report(InsufficientPoints(
                f"ring has {len(points)} point(s), need at least 3"), feature_id)
        return None
    return points


def build_shape(outer: Sequence, holes: List[Sequence],
                projector: RhumbProjector,
                diagnostics: Optional[Diagnostics] = None,
                feature_id: Optional[str] = None) -> Optional[PolygonShape]:
    """Build a footprint; unusable holes are dropped individually."""
    outer_pts = build_ring(outer, projector, diagnostics, feature_id)
    if outer_pts is None:
        return None
    hole_pts = []
    for hole in holes:
        pts = build_ring(hole, projector, diagnostics, feature_id)
        if pts is not None:
            hole_pts.append(pts)
    return PolygonShape(outer_pts, hole_pts)


def feature_outline(feature: Feature, projector: RhumbProjector,
                    diagnostics: Optional[Diagnostics] = None) -> Optional[PolygonShape]:
    """Outer ring of a feature as a hole-free shape, or None."""
    try:
        outer = feature.outer_ring()
    except (BuildingMeshError, IndexError, TypeError):
        return None
    return build_shape(outer, [], projector, diagnostics, feature.feature_id)
