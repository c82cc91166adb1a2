"""Drop whole buildings whose footprint already holds explicit parts.

Containment is tested on the raw (lng, lat) rings. Both operands live
in the same coordinate system, so no projection is needed.
"""

import logging
from typing import Iterable, List, Optional

import shapely as _shapely
from shapely.errors import GEOSException
from shapely.geometry import Polygon

from .errors import BuildingMeshError, Diagnostics
from .models import Feature
from .shapes import is_valid_pair

logger = logging.getLogger(__name__)


def close_ring(coords) -> Optional[list]:
    """Append the first point when the ring is open; None under 3 points."""
    if not coords or len(coords) < 3:
        return None
    first, last = coords[0], coords[-1]
    if first[0] != last[0] or first[1] != last[1]:
        return list(coords) + [first]
    return list(coords)


def footprint_polygon(feature: Feature) -> Optional[Polygon]:
    """Closed outer-ring polygon in geodesic coordinates, or None."""
    if not feature.is_polygonal:
        return None
    try:
        ring = feature.outer_ring()
    except BuildingMeshError:
        return None
    if not isinstance(ring, list) or not all(is_valid_pair(c) for c in ring):
        return None
    closed = close_ring(ring)
    if closed is None:
        return None
    try:
        return Polygon(closed)
    except (ValueError, GEOSException):
        # e.g. [a, b, a]: closed but only two distinct points
        return None


def filter_contained(buildings: Iterable[Feature], parts: Iterable[Feature],
                     diagnostics: Optional[Diagnostics] = None) -> List[Feature]:
    """Return the whole buildings that contain none of the parts.

    Features without a usable ring are never excluded and never exclude.
    """
    buildings = list(buildings)
    part_polys = [p for p in (footprint_polygon(f) for f in parts)
                  if p is not None]
    if not part_polys:
        return buildings

    tree = _shapely.STRtree(part_polys)
    kept = []
    for feature in buildings:
        poly = footprint_polygon(feature)
        if poly is None:
            kept.append(feature)
            continue
        try:
            hits = tree.query(poly, predicate='contains')
        except GEOSException as e:
            err = BuildingMeshError(f"containment test failed: {e}")
            if diagnostics is None:
                logger.warning(str(err))
            else:
                diagnostics.report(err, feature.feature_id)
            kept.append(feature)
            continue
        if len(hits) > 0:
            logger.debug(f"{feature.feature_id}: superseded by "
                         f"{len(hits)} building part(s)")
            continue
        kept.append(feature)

    logger.info(f"Containment filter kept {len(kept)} of "
                f"{len(buildings)} whole buildings")
    return kept
