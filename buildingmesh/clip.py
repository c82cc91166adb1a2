"""Clip regions: user-drawn polygons or geodesic circles, and the ground slab."""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np
from pyproj import Geod
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon, mapping, shape
from shapely.prepared import prep

from .constants import CIRCLE_STEPS, GROUND_THICKNESS
from .errors import BuildingMeshError, Diagnostics, InsufficientPoints
from .geometry import generate_walls, lifted
from .models import FeatureCollection, PolygonShape, SolidMesh, SolidRole
from .projection import RhumbProjector
from .shapes import build_ring

logger = logging.getLogger(__name__)

_GEOD = Geod(ellps='WGS84')


def _lng_lat(point) -> Tuple[float, float]:
    if isinstance(point, Mapping):
        return float(point['lng']), float(point['lat'])
    return float(point[0]), float(point[1])


@dataclass(frozen=True)
class ClipRegion:
    """Closed (lng, lat) ring bounding the area to keep."""
    ring: Tuple[Tuple[float, float], ...]
    center: Optional[Tuple[float, float]] = None
    radius_m: Optional[float] = None

    @classmethod
    def from_polygon(cls, points: Sequence) -> "ClipRegion":
        """Ring of ``(lng, lat)`` pairs or ``{'lng', 'lat'}`` records."""
        ring = [_lng_lat(p) for p in points]
        if len(ring) < 3:
            raise InsufficientPoints(
                f"clip polygon needs at least 3 points, got {len(ring)}")
        if ring[0] != ring[-1]:
            ring.append(ring[0])
        return cls(tuple(ring))

    @classmethod
    def from_circle(cls, lng: float, lat: float, radius_m: float,
                    steps: int = CIRCLE_STEPS) -> "ClipRegion":
        """Geodesic circle approximated by ``steps`` vertices."""
        if not radius_m > 0:
            raise InsufficientPoints(f"circle radius must be positive: {radius_m}")
        # Counter-clockwise, starting due north
        azimuths = -np.linspace(0.0, 360.0, steps, endpoint=False)
        lons, lats, _ = _GEOD.fwd(np.full(steps, lng), np.full(steps, lat),
                                  azimuths, np.full(steps, radius_m))
        ring = [(float(x), float(y)) for x, y in zip(lons, lats)]
        ring.append(ring[0])
        return cls(tuple(ring), center=(lng, lat), radius_m=radius_m)

    def to_polygon(self) -> Polygon:
        return Polygon(self.ring)

    @property
    def bbox(self) -> List[float]:
        """``[west, south, east, north]``."""
        return list(self.to_polygon().bounds)

    def to_config(self):
        """Clip description as written to a bundle's config.json."""
        if self.center is not None:
            return {'center': {'lng': self.center[0], 'lat': self.center[1]},
                    'radius': self.radius_m}
        return [{'lng': lng, 'lat': lat} for lng, lat in self.ring]


def _polygonal(geom):
    """Keep only the polygonal part of an intersection result."""
    if geom.is_empty:
        return None
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    polys = []
    for part in getattr(geom, 'geoms', []):
        if isinstance(part, Polygon) and not part.is_empty:
            polys.append(part)
        elif isinstance(part, MultiPolygon):
            polys.extend(part.geoms)
    if not polys:
        return None
    return polys[0] if len(polys) == 1 else MultiPolygon(polys)


def _as_lists(coords):
    if isinstance(coords, (list, tuple)) and coords and isinstance(coords[0], (int, float)):
        return [float(c) for c in coords]
    return [_as_lists(c) for c in coords]


def clip_features(collection: FeatureCollection, region: ClipRegion,
                  diagnostics: Optional[Diagnostics] = None) -> FeatureCollection:
    """Intersect every polygonal feature with the region.

    Features that fall outside, are not polygonal, or fail to intersect
    are dropped; failures are reported and the rest carry on.
    """
    clip = region.to_polygon()
    prepared = prep(clip)
    kept = []
    for feature in collection:
        if not feature.is_polygonal:
            continue
        try:
            geom = shape({'type': feature.geometry_type,
                          'coordinates': feature.coordinates})
            if not prepared.intersects(geom):
                continue
            clipped = _polygonal(geom.intersection(clip))
        except (GEOSException, ValueError, TypeError, IndexError) as e:
            err = BuildingMeshError(f"Error clipping feature: {e}")
            if diagnostics is None:
                logger.warning(str(err))
            else:
                diagnostics.report(err, feature.feature_id)
            continue
        if clipped is None:
            continue
        mapped = mapping(clipped)
        kept.append(feature.with_geometry(mapped['type'],
                                          _as_lists(mapped['coordinates'])))

    logger.info(f"Clipped {len(collection)} features to {len(kept)}")
    return FeatureCollection(tuple(kept))


def ground_solid(region: ClipRegion, projector: RhumbProjector,
                 thickness: float = GROUND_THICKNESS) -> SolidMesh:
    """Slab under the clip region whose top face is the ground plane."""
    ring = build_ring(list(region.ring), projector)
    if ring is None:
        raise InsufficientPoints("clip region does not project to a polygon")
    solid = generate_walls(PolygonShape(ring), thickness,
                           name='Ground', role=SolidRole.GROUND)
    return lifted(solid, -thickness)
